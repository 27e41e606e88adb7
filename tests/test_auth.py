"""Tests for the route access table, viewer context and session gate."""

import pytest

from conftest import login, register
from goodnews.auth import (
    ANONYMOUS,
    LOGIN_REQUIRED_MESSAGE,
    ROUTE_ACCESS,
    Access,
    UserProfile,
    Viewer,
    access_for,
)


def _profile(userid=1, manager=False) -> UserProfile:
    return UserProfile(
        userid=userid,
        userfirstname="Ann",
        userlastname="Lee",
        useremail="a@x.com",
        manager=manager,
    )


class TestRouteAccess:
    """Tests for the endpoint classification table."""

    @pytest.mark.parametrize(
        "endpoint",
        [
            "static",
            "ui.index",
            "ui.feed",
            "ui.login",
            "ui.register",
            "ui.logout",
            "ui.post_page",
            "api.api_feed",
            "api.api_post",
        ],
    )
    def test_public_endpoints(self, endpoint: str) -> None:
        assert access_for(endpoint) is Access.PUBLIC

    @pytest.mark.parametrize(
        "endpoint",
        [
            "ui.new_post",
            "ui.reply",
            "ui.react",
            "ui.unreact",
            "ui.delete_post",
            "ui.delete_reply",
        ],
    )
    def test_member_endpoints(self, endpoint: str) -> None:
        assert access_for(endpoint) is Access.MEMBER

    def test_unknown_endpoint_requires_login(self) -> None:
        assert access_for("ui.something_new") is Access.MEMBER

    def test_unmatched_route_is_left_to_404(self) -> None:
        assert access_for(None) is Access.PUBLIC

    def test_every_registered_endpoint_is_classified(self, app) -> None:
        """New routes must be added to the table deliberately."""
        endpoints = {rule.endpoint for rule in app.url_map.iter_rules()}
        assert endpoints <= set(ROUTE_ACCESS)


class TestViewer:
    """Tests for Viewer permission checks."""

    def test_anonymous_cannot_delete(self) -> None:
        assert ANONYMOUS.can_delete(1) is False
        assert ANONYMOUS.userid is None

    def test_author_can_delete_own(self) -> None:
        viewer = Viewer(logged_in=True, user=_profile(userid=7))
        assert viewer.can_delete(7) is True
        assert viewer.can_delete(8) is False

    def test_orphaned_content_only_for_managers(self) -> None:
        assert Viewer(True, _profile(userid=7)).can_delete(None) is False
        assert Viewer(True, _profile(userid=7, manager=True)).can_delete(None) is True

    def test_manager_can_delete_anything(self) -> None:
        viewer = Viewer(logged_in=True, user=_profile(userid=7, manager=True))
        assert viewer.is_manager
        assert viewer.can_delete(99) is True


class TestGate:
    """Tests for the before_request gate through the HTTP surface."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/newpost"),
            ("post", "/newpost"),
            ("post", "/reply/1"),
            ("post", "/react"),
            ("post", "/unreact"),
            ("post", "/deletePost/1"),
            ("post", "/deleteReply/1"),
        ],
    )
    def test_anonymous_member_route_renders_login(self, client, method, path) -> None:
        """No redirect: the login page is rendered in place with a notice."""
        resp = getattr(client, method)(path)
        assert resp.status_code == 200
        body = resp.get_data(as_text=True)
        assert LOGIN_REQUIRED_MESSAGE in body
        assert 'action="/login"' in body

    @pytest.mark.parametrize("path", ["/feed", "/login", "/register", "/api/v1/feed"])
    def test_public_routes_open(self, client, path) -> None:
        resp = client.get(path)
        assert resp.status_code == 200
        assert LOGIN_REQUIRED_MESSAGE not in resp.get_data(as_text=True)

    def test_unknown_path_is_404(self, client) -> None:
        assert client.get("/nope").status_code == 404

    def test_session_carries_profile(self, client) -> None:
        register(client, first="Ann", email="a@x.com")
        with client.session_transaction() as sess:
            assert sess["logged_in"] is True
            assert sess["user"]["userfirstname"] == "Ann"
            assert sess["user"]["useremail"] == "a@x.com"
            assert sess["user"]["manager"] is False

    def test_logout_clears_session(self, client) -> None:
        register(client)
        resp = client.get("/logout")
        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/feed")
        with client.session_transaction() as sess:
            assert "logged_in" not in sess
        assert LOGIN_REQUIRED_MESSAGE in client.get("/newpost").get_data(as_text=True)

    def test_login_after_logout(self, client) -> None:
        register(client)
        client.get("/logout")
        resp = login(client)
        assert resp.status_code == 302
        assert client.get("/newpost").status_code == 200
        assert LOGIN_REQUIRED_MESSAGE not in client.get("/newpost").get_data(as_text=True)

    def test_tampered_session_shape_treated_as_anonymous(self, client) -> None:
        with client.session_transaction() as sess:
            sess["logged_in"] = True
            sess["user"] = {"unexpected": 1}
        body = client.get("/newpost").get_data(as_text=True)
        assert LOGIN_REQUIRED_MESSAGE in body
