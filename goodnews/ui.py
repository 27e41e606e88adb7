from flask import (
    Blueprint,
    abort,
    current_app,
    g,
    redirect,
    render_template,
    request,
    url_for,
)
from sqlalchemy.exc import SQLAlchemyError

from .accounts import RegisterStatus, authenticate, register_user
from .auth import ANONYMOUS, login_viewer, logout_viewer, with_viewer
from .content import (
    DeleteStatus,
    WriteStatus,
    create_reply,
    create_submission,
    delete_reply as _delete_reply,
    delete_submission,
    react as _react,
    unreact as _unreact,
)
from .feed import (
    REACTION_TYPES,
    FeedFilter,
    ReactionSummary,
    aggregate_reactions,
    load_feed,
)
from .helpers import markdown_render, redirect_back
from .models import Reply, Submission, db

ui_bp = Blueprint("ui", __name__)

POST_ERRORS = {
    WriteStatus.EMPTY: "Post content cannot be empty.",
    WriteStatus.TOO_LONG: "Your post is too long.",
    WriteStatus.NEGATIVE: "Oops! We only allow Good News here. Your post was detected as negative.",
    WriteStatus.FAILED: "Error adding post. Please try again.",
}

# ?error=<flag> on the post page after a refused reply
REPLY_ERRORS = {
    "negative": "Oops! We only allow Good News here. Your reply was detected as negative.",
    "length": "Your reply is too long.",
    "failed": "Error adding reply. Please try again.",
}

_REPLY_ERROR_FLAGS = {
    WriteStatus.NEGATIVE: "negative",
    WriteStatus.TOO_LONG: "length",
    WriteStatus.FAILED: "failed",
}


def _submission_item(s: Submission) -> dict:
    return {
        "subid": s.subid,
        "subtext": s.subtext,
        "html": markdown_render(s.subtext),
        "subnegativestatus": bool(s.subnegativestatus),
        "subdate": s.subdate,
        "authorid": s.userid,
        "userfirstname": s.author.userfirstname if s.author else None,
        "userlastname": s.author.userlastname if s.author else None,
    }


def _reply_item(r: Reply) -> dict:
    return {
        "replyid": r.replyid,
        "replytext": r.replytext,
        "html": markdown_render(r.replytext),
        "replydate": r.replydate,
        "authorid": r.userid,
        "userfirstname": r.author.userfirstname if r.author else None,
        "userlastname": r.author.userlastname if r.author else None,
    }


@ui_bp.route("/")
def index():
    return redirect(url_for("ui.feed"))


@ui_bp.route("/feed")
@with_viewer
def feed(viewer):
    flt = FeedFilter.from_args(request.args)
    try:
        subs, summary = load_feed(viewer, flt)
        items = [_submission_item(s) for s in subs]
        error_message = ""
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[feed] failed to load feed")
        items, summary = [], ReactionSummary()
        error_message = "The feed could not be loaded right now."
    return render_template(
        "pages/feed.html",
        viewer=viewer,
        submissions=items,
        reaction_counts=summary.reaction_counts,
        reaction_breakdown=summary.reaction_breakdown,
        my_reactions=summary.my_reactions,
        reaction_types=REACTION_TYPES,
        search=flt,
        error_message=error_message,
    )


@ui_bp.route("/register", methods=["GET", "POST"])
@with_viewer
def register(viewer):
    if request.method == "GET":
        return render_template("pages/register.html", viewer=viewer, error_message="")
    form = request.form
    result = register_user(
        form.get("firstname"),
        form.get("lastname"),
        form.get("email"),
        form.get("password"),
    )
    if result.status is RegisterStatus.CREATED:
        login_viewer(result.profile)
        return redirect(url_for("ui.feed"))
    messages = {
        RegisterStatus.MISSING_FIELDS: "All fields required",
        RegisterStatus.DUPLICATE_EMAIL: "Email already registered",
        RegisterStatus.FAILED: "Registration error",
    }
    return render_template(
        "pages/register.html",
        viewer=viewer,
        error_message=messages[result.status],
        form=form,
    )


@ui_bp.route("/login", methods=["GET", "POST"])
@with_viewer
def login(viewer):
    if request.method == "GET":
        return render_template("pages/login.html", viewer=viewer, error_message="")
    email = request.form.get("email")
    password = request.form.get("password")
    if not email or not password:
        return render_template(
            "pages/login.html",
            viewer=viewer,
            error_message="Email and password required",
        )
    profile = authenticate(email, password)
    if profile is None:
        return render_template(
            "pages/login.html", viewer=viewer, error_message="Invalid login"
        )
    login_viewer(profile)
    return redirect(url_for("ui.feed"))


@ui_bp.route("/logout")
def logout():
    logout_viewer()
    return redirect(url_for("ui.feed"))


@ui_bp.route("/newpost", methods=["GET", "POST"])
@with_viewer
def new_post(viewer):
    if request.method == "GET":
        return render_template("pages/new_post.html", viewer=viewer, error_message="")
    text = request.form.get("subtext")
    result = create_submission(viewer, text)
    if result.ok:
        return redirect(url_for("ui.feed"))
    return render_template(
        "pages/new_post.html",
        viewer=viewer,
        error_message=POST_ERRORS[result.status],
        subtext=text or "",
    )


@ui_bp.route("/post/<int:subid>")
@with_viewer
def post_page(viewer, subid: int):
    try:
        s = db.session.get(Submission, subid)
        if s is None:
            return render_template("errors/404.html", viewer=viewer), 404
        reps = (
            Reply.query.filter_by(subid=subid)
            .order_by(Reply.replydate.asc(), Reply.replyid.asc())
            .all()
        )
        summary = aggregate_reactions([subid], viewer)
        item = _submission_item(s)
        replies = [_reply_item(r) for r in reps]
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[post] failed to load subid=%s", subid)
        return render_template(
            "pages/post.html",
            viewer=viewer,
            post=None,
            replies=[],
            reaction_count=0,
            reaction_breakdown={},
            my_reaction=None,
            reaction_types=REACTION_TYPES,
            error_message="This post could not be loaded right now.",
        )
    return render_template(
        "pages/post.html",
        viewer=viewer,
        post=item,
        replies=replies,
        reaction_count=summary.reaction_counts.get(subid, 0),
        reaction_breakdown=summary.reaction_breakdown.get(subid, {}),
        my_reaction=summary.my_reactions.get(subid),
        reaction_types=REACTION_TYPES,
        error_message=REPLY_ERRORS.get(request.args.get("error", ""), ""),
    )


@ui_bp.route("/reply/<int:subid>", methods=["POST"])
@with_viewer
def reply(viewer, subid: int):
    result = create_reply(viewer, subid, request.form.get("replytext"))
    flag = _REPLY_ERROR_FLAGS.get(result.status)
    if flag:
        return redirect(url_for("ui.post_page", subid=subid, error=flag))
    # Created, or empty text which is dropped silently
    return redirect(url_for("ui.post_page", subid=subid))


@ui_bp.route("/react", methods=["POST"])
@with_viewer
def react(viewer):
    _react(viewer, request.form.get("subid"), request.form.get("reactionid"))
    return redirect_back()


@ui_bp.route("/unreact", methods=["POST"])
@with_viewer
def unreact(viewer):
    _unreact(viewer, request.form.get("subid"))
    return redirect_back()


def _deleted_or_abort(result, target):
    if result.status is DeleteStatus.NOT_FOUND:
        abort(404)
    if result.status is DeleteStatus.DENIED:
        abort(403)
    if result.status is DeleteStatus.FAILED:
        abort(500)
    return redirect(target)


@ui_bp.route("/deletePost/<int:subid>", methods=["POST"])
@with_viewer
def delete_post(viewer, subid: int):
    result = delete_submission(viewer, subid)
    return _deleted_or_abort(result, url_for("ui.feed"))


@ui_bp.route("/deleteReply/<int:replyid>", methods=["POST"])
@with_viewer
def delete_reply(viewer, replyid: int):
    result = _delete_reply(viewer, replyid)
    target = (
        url_for("ui.post_page", subid=result.subid)
        if result.subid
        else url_for("ui.feed")
    )
    return _deleted_or_abort(result, target)


# --- Error handlers ---
def _viewer_for_error():
    return getattr(g, "viewer", ANONYMOUS)


@ui_bp.app_errorhandler(403)
def handle_403(error):
    return render_template("errors/403.html", viewer=_viewer_for_error()), 403


@ui_bp.app_errorhandler(404)
def handle_404(error):
    return render_template("errors/404.html", viewer=_viewer_for_error()), 404


@ui_bp.app_errorhandler(500)
def handle_500(error):
    return render_template("errors/500.html", viewer=_viewer_for_error()), 500

