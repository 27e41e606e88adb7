"""
Content moderation for submissions and replies.

Text is scored by the AFINN sentiment word list: each known word carries a
signed weight and the score is their sum. A word directly after a negator
("not", "don't", ...) counts with its sign flipped, so "not bad" scores
positive. Anything scoring below the configured minimum (0 by default) is
refused before it reaches the database.
"""

import enum
import re
from dataclasses import dataclass

from afinn import Afinn
from flask import current_app

from .extensions import cache

_analyzer = None

_WORD_RE = re.compile(r"[a-z0-9']+")

NEGATORS = frozenset(
    {
        "not",
        "non",
        "never",
        "cant",
        "can't",
        "dont",
        "don't",
        "doesnt",
        "doesn't",
        "isnt",
        "isn't",
        "wasnt",
        "wasn't",
        "wont",
        "won't",
        "aint",
        "ain't",
    }
)


class Verdict(enum.Enum):
    ACCEPTED = "accepted"
    EMPTY = "empty"
    TOO_LONG = "too_long"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class Assessment:
    verdict: Verdict
    score: float | None = None

    @property
    def accepted(self) -> bool:
        return self.verdict is Verdict.ACCEPTED


def _get_analyzer() -> Afinn:
    global _analyzer
    if _analyzer is None:
        _analyzer = Afinn()
    return _analyzer


@cache.memoize()
def sentiment_score(text: str) -> float:
    analyzer = _get_analyzer()
    total = 0.0
    previous = None
    for word in _WORD_RE.findall(text.lower()):
        value = analyzer.score(word)
        if previous in NEGATORS:
            value = -value
        total += value
        previous = word
    return total


def assess_text(text: str | None) -> Assessment:
    """Decide whether `text` may be published.

    Empty and over-long text is refused without scoring.
    """
    body = (text or "").strip()
    if not body:
        return Assessment(Verdict.EMPTY)
    max_len = int(current_app.config.get("CONTENT_MAX_LEN", 1000))
    if len(body) > max_len:
        return Assessment(Verdict.TOO_LONG)
    score = sentiment_score(body)
    min_score = float(current_app.config.get("MODERATION_MIN_SCORE", 0))
    if score < min_score:
        return Assessment(Verdict.NEGATIVE, score)
    return Assessment(Verdict.ACCEPTED, score)
