import os
import secrets
from datetime import datetime

from flask import Flask, abort, request, session
from markupsafe import Markup, escape

from .auth import gate_request
from .extensions import cache
from .models import db

_TRUTHY = ("1", "true", "yes", "on")


def create_app(test_config=None):
    app = Flask(__name__)
    # Use a stable secret so session cookies remain valid across reloads
    app.config["SECRET_KEY"] = os.environ.get(
        "FLASK_SECRET_KEY", "dev-secret-key-change-me"
    )
    # Database & Cache config
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
        "DATABASE_URL", "sqlite:///goodnews.db"
    )
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config.setdefault("CACHE_TYPE", "SimpleCache")
    app.config.setdefault("CACHE_DEFAULT_TIMEOUT", 300)
    # Security settings
    app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")
    scs = os.environ.get("SESSION_COOKIE_SAMESITE")
    if scs:
        app.config["SESSION_COOKIE_SAMESITE"] = scs
    app.config["SESSION_COOKIE_SECURE"] = (
        os.environ.get("SESSION_COOKIE_SECURE", "0").lower() in _TRUTHY
    )
    app.config["CSRF_ENABLED"] = os.environ.get("GOODNEWS_CSRF", "1").lower() in _TRUTHY
    # Content length limit (characters) for posts and replies
    try:
        app.config["CONTENT_MAX_LEN"] = int(os.environ.get("GOODNEWS_MAX_LEN", "1000"))
    except ValueError:
        app.config["CONTENT_MAX_LEN"] = 1000
    # Lowest sentiment score a post or reply may have
    try:
        app.config["MODERATION_MIN_SCORE"] = float(
            os.environ.get("GOODNEWS_MIN_SCORE", "0")
        )
    except ValueError:
        app.config["MODERATION_MIN_SCORE"] = 0.0
    # Accounts registered with these emails get the manager role
    mgrs = os.environ.get("GOODNEWS_MANAGERS", "").strip()
    app.config["MANAGERS"] = [e.strip().lower() for e in mgrs.split(",") if e.strip()]

    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(os.environ.get("GOODNEWS_LOG_LEVEL", "INFO").upper())

    db.init_app(app)
    cache.init_app(app)

    # Blueprints: API and UI kept separate for modularity
    from .api import api_bp
    from .ui import ui_bp

    app.register_blueprint(api_bp, url_prefix="/api/v1")
    app.register_blueprint(ui_bp)

    with app.app_context():
        db.create_all()

    # --- CSRF token setup and validation ---
    @app.before_request
    def _ensure_csrf_token():
        if "csrf_token" not in session:
            session["csrf_token"] = secrets.token_urlsafe(32)

    # Auth gate runs before the CSRF check so anonymous POSTs get the login page
    app.before_request(gate_request)

    @app.before_request
    def _csrf_protect():
        if not app.config.get("CSRF_ENABLED", True):
            return None
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            sent = request.form.get("csrf_token") or request.headers.get(
                "X-CSRF-Token", ""
            )
            tok = session.get("csrf_token", "")
            if not tok or not secrets.compare_digest(sent, tok):
                app.logger.warning("[csrf] rejected %s %s", request.method, request.path)
                return abort(403)
        return None

    @app.context_processor
    def _inject_csrf_token():
        return {"csrf_token": session.get("csrf_token", "")}

    # --- Jinja Filters ---
    @app.template_filter("tolocaltime")
    def jinja_to_local_time(value):
        """
        Render a <time> element that the client will convert to local time via JS.
        Accepts a datetime or an ISO-8601 string. Falls back to str(value).
        """
        if isinstance(value, datetime):
            iso = value.isoformat()
        else:
            iso = str(value or "")
        safe_iso = escape(iso)
        return Markup(f'<time class="ts-local" datetime="{safe_iso}">{safe_iso}</time>')

    return app
