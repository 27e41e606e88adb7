import pytest

from goodnews import create_app
from goodnews.accounts import register_user
from goodnews.auth import Viewer
from goodnews.models import db


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
            "CACHE_TYPE": "NullCache",
            "CSRF_ENABLED": False,
            "MANAGERS": ["boss@x.com"],
        }
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def make_viewer(ctx):
    """Create an account directly and return a logged-in Viewer for it."""

    def _make(first="Ann", last="Lee", email=None, password="pw"):
        email = email or f"{first.lower()}@x.com"
        result = register_user(first, last, email, password)
        assert result.profile is not None
        return Viewer(logged_in=True, user=result.profile)

    return _make


def register(client, first="Ann", last="Lee", email="a@x.com", password="secret"):
    return client.post(
        "/register",
        data={
            "firstname": first,
            "lastname": last,
            "email": email,
            "password": password,
        },
    )


def login(client, email="a@x.com", password="secret"):
    return client.post("/login", data={"email": email, "password": password})
