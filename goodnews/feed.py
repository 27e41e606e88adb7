"""
Feed queries and reaction aggregation.

Aggregates are computed with one grouped query over the reactions of the
visible submissions, plus one query for the viewer's own reactions, so the
cost follows the number of reactions on the page rather than the number of
submissions times reactions.
"""

from dataclasses import dataclass, field

from .auth import Viewer
from .models import Submission, SubReaction, User, db

REACTION_TYPES: dict[int, str] = {
    1: "Like",
    2: "Love",
    3: "Celebrate",
    4: "Funny",
    5: "Inspiring",
}

SEARCH_MODES = ("content", "user", "reaction")


@dataclass
class ReactionSummary:
    reaction_counts: dict[int, int] = field(default_factory=dict)
    reaction_breakdown: dict[int, dict[int, int]] = field(default_factory=dict)
    my_reactions: dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class FeedFilter:
    mode: str = "content"
    query: str = ""
    reaction: int | None = None

    @classmethod
    def from_args(cls, args) -> "FeedFilter":
        mode = (args.get("type") or "content").strip().lower()
        if mode not in SEARCH_MODES:
            mode = "content"
        query = (args.get("q") or "").strip()
        try:
            reaction = int(args.get("reaction") or "")
        except ValueError:
            reaction = None
        return cls(mode=mode, query=query, reaction=reaction)

    @property
    def active(self) -> bool:
        if self.mode == "reaction":
            return self.reaction is not None
        return bool(self.query)


def parse_reaction_id(value) -> int | None:
    try:
        rid = int(value)
    except (TypeError, ValueError):
        return None
    return rid if rid in REACTION_TYPES else None


def feed_query(flt: FeedFilter | None = None):
    """Submissions newest first, narrowed by at most one search mode."""
    flt = flt or FeedFilter()
    q = Submission.query.outerjoin(User, Submission.userid == User.userid)
    if flt.mode == "content" and flt.query:
        q = q.filter(
            db.func.lower(Submission.subtext).contains(
                flt.query.lower(), autoescape=True
            )
        )
    elif flt.mode == "user" and flt.query:
        needle = flt.query.lower()
        q = q.filter(
            db.or_(
                db.func.lower(User.userfirstname).contains(needle, autoescape=True),
                db.func.lower(User.userlastname).contains(needle, autoescape=True),
            )
        )
    elif flt.mode == "reaction" and flt.reaction is not None:
        reacted = db.select(SubReaction.subid).where(
            SubReaction.reactionid == flt.reaction
        )
        q = q.filter(Submission.subid.in_(reacted))
    return q.order_by(Submission.subdate.desc(), Submission.subid.desc())


def aggregate_reactions(sub_ids: list[int], viewer: Viewer) -> ReactionSummary:
    summary = ReactionSummary()
    if not sub_ids:
        return summary
    rows = (
        db.session.query(
            SubReaction.subid,
            SubReaction.reactionid,
            db.func.count().label("cnt"),
        )
        .filter(SubReaction.subid.in_(sub_ids))
        .group_by(SubReaction.subid, SubReaction.reactionid)
        .all()
    )
    for subid, reactionid, cnt in rows:
        cnt = int(cnt)
        summary.reaction_breakdown.setdefault(subid, {})[reactionid] = cnt
        summary.reaction_counts[subid] = summary.reaction_counts.get(subid, 0) + cnt

    if viewer.logged_in and viewer.userid is not None:
        mine = (
            db.session.query(SubReaction.subid, SubReaction.reactionid)
            .filter(SubReaction.subid.in_(sub_ids))
            .filter(SubReaction.userid == viewer.userid)
            .all()
        )
        summary.my_reactions = {subid: reactionid for subid, reactionid in mine}
    return summary


def load_feed(viewer: Viewer, flt: FeedFilter | None = None):
    """Return (submissions, ReactionSummary) for the feed page."""
    subs = feed_query(flt).all()
    summary = aggregate_reactions([s.subid for s in subs], viewer)
    return subs, summary
