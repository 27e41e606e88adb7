import sqlite3

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class User(db.Model):
    __tablename__ = "users"
    userid = db.Column(db.Integer, primary_key=True)
    userfirstname = db.Column(db.String(64), nullable=False)
    userlastname = db.Column(db.String(64), nullable=False)
    useremail = db.Column(db.String(255), unique=True, nullable=False)
    userpassword = db.Column(db.String(255), nullable=False)  # salted hash
    manager = db.Column(db.Boolean, nullable=False, default=False)


class Submission(db.Model):
    __tablename__ = "submissions"
    subid = db.Column(db.Integer, primary_key=True)
    userid = db.Column(
        db.Integer,
        db.ForeignKey("users.userid", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    subtext = db.Column(db.Text, nullable=False)
    subnegativestatus = db.Column(db.Boolean, nullable=False, default=False)
    subdate = db.Column(db.DateTime, index=True, nullable=False)

    author = db.relationship("User", lazy="joined")


class Reply(db.Model):
    __tablename__ = "replies"
    replyid = db.Column(db.Integer, primary_key=True)
    subid = db.Column(
        db.Integer,
        db.ForeignKey("submissions.subid", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    userid = db.Column(
        db.Integer,
        db.ForeignKey("users.userid", ondelete="SET NULL"),
        nullable=True,
    )
    replytext = db.Column(db.Text, nullable=False)
    replynegativestatus = db.Column(db.Boolean, nullable=False, default=False)
    replydate = db.Column(db.DateTime, index=True, nullable=False)

    author = db.relationship("User", lazy="joined")


class SubReaction(db.Model):
    __tablename__ = "subreactions"
    # One row per (submission, user); re-reacting updates in place
    subid = db.Column(
        db.Integer,
        db.ForeignKey("submissions.subid", ondelete="CASCADE"),
        primary_key=True,
    )
    userid = db.Column(
        db.Integer,
        db.ForeignKey("users.userid", ondelete="CASCADE"),
        primary_key=True,
    )
    reactionid = db.Column(db.Integer, index=True, nullable=False)
    reactiondate = db.Column(db.DateTime, nullable=False)
