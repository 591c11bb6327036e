"""ADPILOT — Recommendation Classifier.

Ordered keyword match: clarification, then monitor, then actionable. The
first set with a hit wins. No hit means monitor, never actionable, because
only actionable recommendations offer one-click apply.
"""

from typing import Sequence, Tuple

from app.models.recommendation_models import RecommendationType

CLARIFICATION_KEYWORDS = (
    "clarify",
    "more information",
    "unclear",
    "specify",
    "define goals",
    "what is your",
    "need to know",
    "please provide",
)

MONITOR_KEYWORDS = (
    "monitor",
    "watch",
    "track",
    "observe",
    "keep an eye",
    "continue monitoring",
    "check performance",
    "review weekly",
)

ACTIONABLE_KEYWORDS = (
    "increase",
    "decrease",
    "adjust",
    "optimize",
    "change",
    "modify",
    "add negative",
    "pause",
    "enable",
    "disable",
    "set bid",
    "update budget",
    "add keyword",
    "remove keyword",
    "split test",
)

RULES: Tuple[Tuple[RecommendationType, Sequence[str]], ...] = (
    (RecommendationType.CLARIFICATION, CLARIFICATION_KEYWORDS),
    (RecommendationType.MONITOR, MONITOR_KEYWORDS),
    (RecommendationType.ACTIONABLE, ACTIONABLE_KEYWORDS),
)


def classify(text: str) -> RecommendationType:
    lowered = (text or "").lower()
    for rec_type, keywords in RULES:
        if any(keyword in lowered for keyword in keywords):
            return rec_type
    return RecommendationType.MONITOR
