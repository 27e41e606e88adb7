from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .auth import with_viewer
from .feed import REACTION_TYPES, FeedFilter, aggregate_reactions, load_feed
from .helpers import markdown_render
from .models import Reply, Submission, db

api_bp = Blueprint("api", __name__)


@api_bp.errorhandler(SQLAlchemyError)
def _storage_error(error):
    db.session.rollback()
    current_app.logger.exception("[api] storage error on %s", request.path)
    return jsonify({"error": "storage error"}), 500


def _author(user) -> dict | None:
    if user is None:
        return None
    return {
        "userid": user.userid,
        "firstname": user.userfirstname,
        "lastname": user.userlastname,
    }


def _submission_json(s: Submission, summary) -> dict:
    breakdown = summary.reaction_breakdown.get(s.subid, {})
    return {
        "subid": s.subid,
        "timestamp": s.subdate.isoformat(),
        "author": _author(s.author),
        "content": s.subtext,
        "html": markdown_render(s.subtext),
        "negative": bool(s.subnegativestatus),
        "reactions": int(summary.reaction_counts.get(s.subid, 0)),
        # JSON object keys are strings
        "breakdown": {str(k): v for k, v in breakdown.items()},
        "my_reaction": summary.my_reactions.get(s.subid),
    }


@api_bp.route("/reactions")
def api_reaction_types():
    items = [{"id": k, "label": v} for k, v in REACTION_TYPES.items()]
    return jsonify({"items": items, "count": len(items)})


@api_bp.route("/feed")
@with_viewer
def api_feed(viewer):
    flt = FeedFilter.from_args(request.args)
    subs, summary = load_feed(viewer, flt)
    items = [_submission_json(s, summary) for s in subs]
    return jsonify({"items": items, "count": len(items)})


@api_bp.route("/post/<int:subid>")
@with_viewer
def api_post(viewer, subid: int):
    s = db.session.get(Submission, subid)
    if s is None:
        return jsonify({"error": "not found"}), 404
    summary = aggregate_reactions([subid], viewer)
    reps = (
        Reply.query.filter_by(subid=subid)
        .order_by(Reply.replydate.asc(), Reply.replyid.asc())
        .all()
    )
    replies = [
        {
            "replyid": r.replyid,
            "timestamp": r.replydate.isoformat(),
            "author": _author(r.author),
            "content": r.replytext,
            "html": markdown_render(r.replytext),
        }
        for r in reps
    ]
    return jsonify({"item": _submission_json(s, summary), "replies": replies})
