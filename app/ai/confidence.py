"""ADPILOT — Confidence Extraction from free-text responses."""

import re

NEUTRAL_CONFIDENCE = 75
CERTAIN_CONFIDENCE = 85
UNCERTAIN_CONFIDENCE = 60

_EXPLICIT = re.compile(r"confidence[:\s]*(\d+)\s*%?", re.IGNORECASE)

CERTAINTY_WORDS = ("certain", "confident", "sure", "likely", "probable")
UNCERTAINTY_WORDS = ("uncertain", "unsure", "maybe", "might", "possibly")


def _count_words(text: str, words) -> int:
    return sum(len(re.findall(rf"\b{w}\b", text)) for w in words)


def extract_confidence(text: str) -> int:
    """Confidence score 0-100 for a provider response.

    An explicit "Confidence: 82%" token wins. Otherwise whole-word counts of
    certainty vs uncertainty vocabulary pick 85 or 60; a tie is neutral (75).
    """
    if not text:
        return 0
    match = _EXPLICIT.search(text)
    if match:
        return max(0, min(100, int(match.group(1))))

    lowered = text.lower()
    certain = _count_words(lowered, CERTAINTY_WORDS)
    uncertain = _count_words(lowered, UNCERTAINTY_WORDS)
    if certain > uncertain:
        return CERTAIN_CONFIDENCE
    if uncertain > certain:
        return UNCERTAIN_CONFIDENCE
    return NEUTRAL_CONFIDENCE
