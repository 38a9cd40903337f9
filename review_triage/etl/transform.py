"""Utilities for turning crawler records into models and models into JSON."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from review_triage.models import ClassifiedReview, Place, Review, Source

logger = logging.getLogger(__name__)

_PHOTO_FIELDS = ("reviewImageUrls", "reviewerPhotos", "photos", "images")


def _first_present(raw: Dict[str, Any], *names: str) -> Any:
    for name in names:
        value = raw.get(name)
        if value not in (None, ""):
            return value
    return None


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _safe_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        digits = "".join(ch for ch in value if ch.isdigit())
        if digits:
            return int(digits)
    return None


def has_photos(raw: Dict[str, Any]) -> bool:
    return any(isinstance(raw.get(name), list) and raw.get(name) for name in _PHOTO_FIELDS)


def to_review(raw: Dict[str, Any]) -> Optional[Review]:
    """Normalize one crawler review record. Returns None when it has no text."""
    text = _strip_or_none(_first_present(raw, "text", "reviewText"))
    if not text:
        return None
    return Review(
        text=text,
        rating=_safe_float(_first_present(raw, "stars", "rating")),
        author=_strip_or_none(_first_present(raw, "name", "author", "authorName")),
        has_photo=has_photos(raw),
        raw=raw,
    )


def to_reviews(raw_reviews: Iterable[Any]) -> List[Review]:
    reviews: List[Review] = []
    for raw in raw_reviews or []:
        if not isinstance(raw, dict):
            continue
        review = to_review(raw)
        if review is None:
            logger.debug("Skipping review without text: %s", str(raw)[:200])
            continue
        reviews.append(review)
    return reviews


def to_place(raw: Dict[str, Any]) -> Place:
    raw_reviews = raw.get("reviews") or []
    review_count = _safe_int(raw.get("reviewsCount"))
    if review_count is None:
        review_count = len(raw_reviews)
    return Place(
        title=_strip_or_none(_first_present(raw, "title", "name")) or "Unknown Place",
        address=_strip_or_none(_first_present(raw, "address", "location")),
        rating=_safe_float(_first_present(raw, "totalScore", "rating")),
        review_count=review_count,
        reviews=to_reviews(raw_reviews),
        raw=raw,
    )


def to_review_payload(item: ClassifiedReview) -> Dict[str, Any]:
    review, classification = item.review, item.classification
    return {
        "text": review.text,
        "author": review.author,
        "rating": review.rating,
        "hasPhoto": review.has_photo,
        "classifications": list(classification.categories),
        "classificationScores": dict(classification.scores),
        "classificationSource": classification.source,
        "localClassification": classification.source == Source.LOCAL,
        "classificationReason": classification.reason,
    }


def to_place_payload(place: Place) -> Dict[str, Any]:
    return {
        "title": place.title,
        "address": place.address,
        "rating": place.rating,
        "reviewsCount": place.review_count,
        "reviews": [to_review_payload(item) for item in place.classified_reviews],
        "classificationSummary": place.classification_summary,
    }
