"""
Session gate and viewer context.

Every request is classified by its endpoint through ``ROUTE_ACCESS``. Member
routes reached without a session render the login page in place. The
identity stored at login is denormalized into the session cookie and turned
into an immutable ``Viewer`` that views receive as their first argument.
"""

import enum
from dataclasses import asdict, dataclass
from functools import wraps

from flask import g, render_template, request, session


class Access(enum.Enum):
    PUBLIC = "public"
    MEMBER = "member"


ROUTE_ACCESS: dict[str, Access] = {
    "static": Access.PUBLIC,
    "ui.index": Access.PUBLIC,
    "ui.feed": Access.PUBLIC,
    "ui.login": Access.PUBLIC,
    "ui.register": Access.PUBLIC,
    "ui.logout": Access.PUBLIC,
    "ui.post_page": Access.PUBLIC,
    "api.api_feed": Access.PUBLIC,
    "api.api_post": Access.PUBLIC,
    "api.api_reaction_types": Access.PUBLIC,
    "ui.new_post": Access.MEMBER,
    "ui.reply": Access.MEMBER,
    "ui.react": Access.MEMBER,
    "ui.unreact": Access.MEMBER,
    "ui.delete_post": Access.MEMBER,
    "ui.delete_reply": Access.MEMBER,
}

LOGIN_REQUIRED_MESSAGE = "Please log in to access that page"


@dataclass(frozen=True)
class UserProfile:
    userid: int
    userfirstname: str
    userlastname: str
    useremail: str
    manager: bool = False

    @classmethod
    def from_user(cls, user) -> "UserProfile":
        return cls(
            userid=user.userid,
            userfirstname=user.userfirstname,
            userlastname=user.userlastname,
            useremail=user.useremail,
            manager=bool(user.manager),
        )

    @property
    def display_name(self) -> str:
        return f"{self.userfirstname} {self.userlastname}".strip()


@dataclass(frozen=True)
class Viewer:
    logged_in: bool = False
    user: UserProfile | None = None

    @property
    def userid(self) -> int | None:
        return self.user.userid if self.user else None

    @property
    def is_manager(self) -> bool:
        return bool(self.user and self.user.manager)

    def can_delete(self, author_id: int | None) -> bool:
        """Authors may delete their own content; managers may delete anything."""
        if not self.logged_in or self.user is None:
            return False
        return self.is_manager or (
            author_id is not None and author_id == self.user.userid
        )


ANONYMOUS = Viewer()


def access_for(endpoint: str | None) -> Access:
    if endpoint is None:
        # No route matched; let the 404 handler answer
        return Access.PUBLIC
    return ROUTE_ACCESS.get(endpoint, Access.MEMBER)


def load_viewer() -> Viewer:
    if not session.get("logged_in"):
        return ANONYMOUS
    data = session.get("user") or {}
    try:
        return Viewer(logged_in=True, user=UserProfile(**data))
    except TypeError:
        # Stale or tampered cookie shape; treat as anonymous
        session.clear()
        return ANONYMOUS


def login_viewer(profile: UserProfile) -> Viewer:
    # Fresh session on login so a pre-login session id cannot be reused
    session.clear()
    session["logged_in"] = True
    session["user"] = asdict(profile)
    return Viewer(logged_in=True, user=profile)


def logout_viewer() -> None:
    session.clear()


def gate_request():
    """before_request hook: attach the viewer and stop anonymous member access."""
    viewer = load_viewer()
    g.viewer = viewer
    if access_for(request.endpoint) is Access.MEMBER and not viewer.logged_in:
        return render_template(
            "pages/login.html",
            viewer=viewer,
            error_message=LOGIN_REQUIRED_MESSAGE,
        )
    return None


def with_viewer(view):
    """Pass the request's Viewer to the view as its first positional argument."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        viewer = getattr(g, "viewer", None)
        if viewer is None:
            viewer = load_viewer()
        return view(viewer, *args, **kwargs)

    return wrapper
