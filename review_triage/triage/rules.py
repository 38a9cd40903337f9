"""Deterministic pattern rules that label the obvious reviews locally.

Only reviews that match at least one rule group are decided here; everything
else is escalated to the remote classifier. Rule groups are independent, so a
review can collect several categories in one pass. Each group assigns a fixed
confidence for its category.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List

from review_triage.models import (
    ADVERTISEMENTS,
    IRRELEVANT_CONTENT,
    RANT_WITHOUT_VISIT,
    SPAM,
    USEFUL,
    Review,
)

logger = logging.getLogger(__name__)

REASON_SEPARATOR = " | "
ESCALATION_REASON = "No local classification rules matched - will use ML model"

CONFIDENCE = {
    ADVERTISEMENTS: 0.9,
    SPAM: 0.85,
    RANT_WITHOUT_VISIT: 0.8,
    IRRELEVANT_CONTENT: 0.85,
    USEFUL: 0.8,
}

SHORT_GENERIC_MAX_LENGTH = 15
TOO_SHORT_MAX_LENGTH = 3
GIBBERISH_MAX_LENGTH = 10
LACKS_DETAIL_MIN_LENGTH = 50
DETAILED_MIN_LENGTH = 100

URL_REGEX = re.compile(r"\bwww\.\w+\.\w+|http|\.com\b", re.IGNORECASE)
PHONE_REGEX = re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b")
PROMO_KEYWORDS = ("promo", "discount", "% off", "deal")
CALL_TO_ACTION = ("click here", "call now", "shop now", "visit our website", "get yours", "learn more")

REPEATED_PUNCTUATION_REGEX = re.compile(r"[!?,.]{4,}")
UPPERCASE_RUN_REGEX = re.compile(r"[A-Z]{8,}")
SHORT_GENERIC_REGEX = re.compile(r"^(good|bad|great)!*$", re.IGNORECASE)

NEVER_VISITED = ("never been", "never went", "never visited")
HEARSAY = ("heard from", "people say", "my friend said")
EXPERIENCE_REGEX = re.compile(r"\b(i|we|my|our|ordered|bought|tried|service|staff|food|drink)\b", re.IGNORECASE)

TEST_ONLY_REGEX = re.compile(r"^test(ing)?[.!]*$", re.IGNORECASE)
BARE_QUESTION_REGEX = re.compile(r"^(does anyone know|is this place open|when do you open)\?*$", re.IGNORECASE)
NO_LETTERS_REGEX = re.compile(r"^[^a-zA-Z]*$")

SPECIFICS_REGEX = re.compile(r"\b(ordered|tried|bought|service|manager|waiter|waitress|cashier)\b", re.IGNORECASE)
RECOMMENDATION_REGEX = re.compile(r"\b(recommend|highly recommend|would go back|will be back|loved the)\b", re.IGNORECASE)
CONTRAST_REGEX = re.compile(r"\b(but|however|although)\b", re.IGNORECASE)
SENTIMENT_REGEX = re.compile(r"\b(good|great|bad|poor)\b", re.IGNORECASE)


@dataclass
class RuleResult:
    is_classified: bool = False
    categories: List[str] = field(default_factory=list)
    confidence: float = 0.0
    scores: Dict[str, float] = field(default_factory=dict)
    reason: str = ""


def _contains_any(text: str, phrases) -> bool:
    return any(phrase in text for phrase in phrases)


def _advertisement_triggers(text: str) -> List[str]:
    triggers = []
    if URL_REGEX.search(text):
        triggers.append("URLs detected")
    if PHONE_REGEX.search(text):
        triggers.append("phone numbers detected")
    if _contains_any(text, PROMO_KEYWORDS) and _contains_any(text, CALL_TO_ACTION):
        triggers.append("promotional language + call-to-action")
    return triggers


def _spam_triggers(text: str, original: str) -> List[str]:
    # Uppercase runs are only visible before lowercasing.
    triggers = []
    if REPEATED_PUNCTUATION_REGEX.search(text) and UPPERCASE_RUN_REGEX.search(original):
        triggers.append("excessive punctuation + caps")
    if len(text) < SHORT_GENERIC_MAX_LENGTH and SHORT_GENERIC_REGEX.match(text):
        triggers.append("very short generic text")
    return triggers


def _rant_triggers(text: str) -> List[str]:
    triggers = []
    if _contains_any(text, NEVER_VISITED):
        triggers.append("never visited phrases")
    if _contains_any(text, HEARSAY):
        triggers.append("hearsay language")
    if len(text) > LACKS_DETAIL_MIN_LENGTH and not EXPERIENCE_REGEX.search(text):
        triggers.append("lacks personal details")
    return triggers


def _irrelevant_triggers(text: str) -> List[str]:
    triggers = []
    if len(text) < TOO_SHORT_MAX_LENGTH:
        triggers.append("too short")
    if TEST_ONLY_REGEX.match(text):
        triggers.append("test content")
    if BARE_QUESTION_REGEX.match(text):
        triggers.append("standalone question")
    if NO_LETTERS_REGEX.match(text) and len(text) < GIBBERISH_MAX_LENGTH:
        triggers.append("gibberish/symbols only")
    return triggers


def _useful_triggers(text: str) -> List[str]:
    if len(text) <= DETAILED_MIN_LENGTH:
        return []
    triggers = []
    specifics = {match.lower() for match in SPECIFICS_REGEX.findall(text)}
    if len(specifics) >= 2:
        triggers.append("specific details")
    if RECOMMENDATION_REGEX.search(text):
        triggers.append("recommendation language")
    if CONTRAST_REGEX.search(text) and SENTIMENT_REGEX.search(text):
        triggers.append("balanced opinion")
    if triggers:
        triggers.insert(0, "detailed review")
    return triggers


def classify_text(review_text: str) -> RuleResult:
    """Run every rule group against ``review_text`` and collect the matches."""
    original = (review_text or "").strip()
    text = original.lower()

    groups = (
        (ADVERTISEMENTS, _advertisement_triggers(text)),
        (SPAM, _spam_triggers(text, original)),
        (RANT_WITHOUT_VISIT, _rant_triggers(text)),
        (IRRELEVANT_CONTENT, _irrelevant_triggers(text)),
        (USEFUL, _useful_triggers(text)),
    )

    result = RuleResult()
    fired = []
    for category, triggers in groups:
        if not triggers:
            continue
        result.categories.append(category)
        result.scores[category] = CONFIDENCE[category]
        fired.append(f"{category}: {', '.join(triggers)}")

    if result.categories:
        result.is_classified = True
        result.confidence = max(result.scores.values())
        result.reason = REASON_SEPARATOR.join(fired)
        logger.debug("Locally classified %r as %s", text[:50], result.categories)
    else:
        result.reason = ESCALATION_REASON
        logger.debug("No local rule matched %r; escalating", text[:50])
    return result


def classify_review(review: Review) -> RuleResult:
    return classify_text(review.text)
