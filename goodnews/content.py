"""
Write operations for submissions, replies and reactions.

Each operation returns an explicit result; HTTP views decide how to render
it. Storage errors are rolled back and logged here so views only ever see a
FAILED status.
"""

import enum
from dataclasses import dataclass

from flask import current_app
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from .auth import Viewer
from .feed import parse_reaction_id
from .helpers import _utcnow_naive
from .moderation import Verdict, assess_text
from .models import Reply, Submission, SubReaction, db

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class WriteStatus(enum.Enum):
    CREATED = "created"
    EMPTY = "empty"
    TOO_LONG = "too_long"
    NEGATIVE = "negative"
    FAILED = "failed"


class DeleteStatus(enum.Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    DENIED = "denied"
    FAILED = "failed"


_REJECTED = {
    Verdict.EMPTY: WriteStatus.EMPTY,
    Verdict.TOO_LONG: WriteStatus.TOO_LONG,
    Verdict.NEGATIVE: WriteStatus.NEGATIVE,
}


@dataclass(frozen=True)
class WriteResult:
    status: WriteStatus
    id: int | None = None
    score: float | None = None

    @property
    def ok(self) -> bool:
        return self.status is WriteStatus.CREATED


@dataclass(frozen=True)
class DeleteResult:
    status: DeleteStatus
    subid: int | None = None


def create_submission(viewer: Viewer, text: str | None) -> WriteResult:
    assessment = assess_text(text)
    if not assessment.accepted:
        if assessment.verdict is Verdict.NEGATIVE:
            current_app.logger.warning(
                "[post] rejected negative content user=%s score=%.1f",
                viewer.userid,
                assessment.score,
            )
        return WriteResult(_REJECTED[assessment.verdict], score=assessment.score)
    sub = Submission(
        userid=viewer.userid,
        subtext=text.strip(),
        subnegativestatus=False,
        subdate=_utcnow_naive(),
    )
    try:
        db.session.add(sub)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[post] insert failed user=%s", viewer.userid)
        return WriteResult(WriteStatus.FAILED)
    current_app.logger.info("[post] created subid=%s user=%s", sub.subid, viewer.userid)
    return WriteResult(WriteStatus.CREATED, id=sub.subid, score=assessment.score)


def create_reply(viewer: Viewer, subid: int, text: str | None) -> WriteResult:
    assessment = assess_text(text)
    if not assessment.accepted:
        if assessment.verdict is Verdict.NEGATIVE:
            current_app.logger.warning(
                "[reply] rejected negative content subid=%s user=%s score=%.1f",
                subid,
                viewer.userid,
                assessment.score,
            )
        return WriteResult(_REJECTED[assessment.verdict], score=assessment.score)
    reply = Reply(
        subid=subid,
        userid=viewer.userid,
        replytext=text.strip(),
        replynegativestatus=False,
        replydate=_utcnow_naive(),
    )
    try:
        db.session.add(reply)
        db.session.commit()
    except SQLAlchemyError:
        # Includes replies to a submission that no longer exists (FK violation)
        db.session.rollback()
        current_app.logger.exception(
            "[reply] insert failed subid=%s user=%s", subid, viewer.userid
        )
        return WriteResult(WriteStatus.FAILED)
    current_app.logger.info(
        "[reply] created replyid=%s subid=%s user=%s",
        reply.replyid,
        subid,
        viewer.userid,
    )
    return WriteResult(WriteStatus.CREATED, id=reply.replyid, score=assessment.score)


def react(viewer: Viewer, subid, reactionid) -> bool:
    """Insert or overwrite the viewer's reaction in a single statement."""
    try:
        sid = int(subid)
    except (TypeError, ValueError):
        sid = None
    rid = parse_reaction_id(reactionid)
    if sid is None or rid is None or viewer.userid is None:
        current_app.logger.warning(
            "[react] invalid request subid=%r reactionid=%r", subid, reactionid
        )
        return False
    dialect = db.session.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        current_app.logger.warning("[react] no upsert for dialect=%s", dialect)
        return False
    now = _utcnow_naive()
    try:
        stmt = insert(SubReaction).values(
            subid=sid, userid=viewer.userid, reactionid=rid, reactiondate=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[SubReaction.subid, SubReaction.userid],
            set_={"reactionid": rid, "reactiondate": now},
        )
        db.session.execute(stmt)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "[react] upsert failed subid=%s user=%s", sid, viewer.userid
        )
        return False
    current_app.logger.info(
        "[react] subid=%s user=%s reactionid=%s", sid, viewer.userid, rid
    )
    return True


def unreact(viewer: Viewer, subid) -> bool:
    try:
        sid = int(subid)
    except (TypeError, ValueError):
        return False
    try:
        db.session.query(SubReaction).filter(
            SubReaction.subid == sid, SubReaction.userid == viewer.userid
        ).delete()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "[unreact] delete failed subid=%s user=%s", sid, viewer.userid
        )
        return False
    return True


def delete_submission(viewer: Viewer, subid: int) -> DeleteResult:
    try:
        owner = (
            db.session.query(Submission.userid)
            .filter(Submission.subid == subid)
            .first()
        )
        if owner is None:
            return DeleteResult(DeleteStatus.NOT_FOUND)
        if not viewer.can_delete(owner[0]):
            current_app.logger.warning(
                "[delete] denied subid=%s user=%s", subid, viewer.userid
            )
            return DeleteResult(DeleteStatus.DENIED, subid=subid)
        # Replies and reactions go with it via ON DELETE CASCADE
        db.session.query(Submission).filter(Submission.subid == subid).delete(
            synchronize_session=False
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[delete] failed subid=%s", subid)
        return DeleteResult(DeleteStatus.FAILED, subid=subid)
    current_app.logger.info("[delete] subid=%s by user=%s", subid, viewer.userid)
    return DeleteResult(DeleteStatus.DELETED, subid=subid)


def delete_reply(viewer: Viewer, replyid: int) -> DeleteResult:
    try:
        row = (
            db.session.query(Reply.userid, Reply.subid)
            .filter(Reply.replyid == replyid)
            .first()
        )
        if row is None:
            return DeleteResult(DeleteStatus.NOT_FOUND)
        author_id, subid = row
        if not viewer.can_delete(author_id):
            current_app.logger.warning(
                "[delete] denied replyid=%s user=%s", replyid, viewer.userid
            )
            return DeleteResult(DeleteStatus.DENIED, subid=subid)
        db.session.query(Reply).filter(Reply.replyid == replyid).delete(
            synchronize_session=False
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[delete] failed replyid=%s", replyid)
        return DeleteResult(DeleteStatus.FAILED)
    current_app.logger.info("[delete] replyid=%s by user=%s", replyid, viewer.userid)
    return DeleteResult(DeleteStatus.DELETED, subid=subid)
