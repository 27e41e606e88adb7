import enum
from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from .auth import UserProfile
from .models import User, db


class RegisterStatus(enum.Enum):
    CREATED = "created"
    MISSING_FIELDS = "missing_fields"
    DUPLICATE_EMAIL = "duplicate_email"
    FAILED = "failed"


@dataclass(frozen=True)
class RegisterResult:
    status: RegisterStatus
    profile: UserProfile | None = None


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def register_user(firstname, lastname, email, password) -> RegisterResult:
    """Create an account.

    There is no lookup before the insert: the unique index on ``useremail``
    decides, so two concurrent registrations cannot both succeed.
    """
    firstname = (firstname or "").strip()
    lastname = (lastname or "").strip()
    email = normalize_email(email)
    if not firstname or not lastname or not email or not password:
        return RegisterResult(RegisterStatus.MISSING_FIELDS)
    managers = current_app.config.get("MANAGERS") or []
    user = User(
        userfirstname=firstname,
        userlastname=lastname,
        useremail=email,
        userpassword=generate_password_hash(password),
        manager=email in managers,
    )
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.info("[register] duplicate email=%s", email)
        return RegisterResult(RegisterStatus.DUPLICATE_EMAIL)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[register] insert failed email=%s", email)
        return RegisterResult(RegisterStatus.FAILED)
    current_app.logger.info(
        "[register] created userid=%s manager=%s", user.userid, user.manager
    )
    return RegisterResult(RegisterStatus.CREATED, UserProfile.from_user(user))


def authenticate(email, password) -> UserProfile | None:
    """Return the profile for valid credentials, else None.

    Unknown emails and wrong passwords are indistinguishable to the caller.
    """
    email = normalize_email(email)
    if not email or not password:
        return None
    try:
        user = User.query.filter_by(useremail=email).first()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[login] lookup failed")
        return None
    if user is None or not check_password_hash(user.userpassword, password):
        current_app.logger.info("[login] failed attempt")
        return None
    return UserProfile.from_user(user)


def set_manager(email, manager: bool = True) -> bool:
    """Grant or revoke the manager role. Returns False when no such account."""
    user = User.query.filter_by(useremail=normalize_email(email)).first()
    if user is None:
        return False
    user.manager = bool(manager)
    db.session.commit()
    return True
