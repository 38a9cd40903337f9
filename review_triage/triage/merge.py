"""Restore the input order of reviews after local and remote classification."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from review_triage.models import ClassifiedReview, Review

OrderKey = Tuple[str, str, float]


def order_key(review: Review) -> OrderKey:
    """Composite (text, author, rating) key.

    Not unique: identical duplicate reviews share a key and therefore a
    position, so their relative order after merging follows concatenation
    order rather than input order.
    """
    return review.text, review.author or "", review.rating or 0


def merge(
    decided: Sequence[ClassifiedReview],
    classified_undecided: Sequence[ClassifiedReview],
    original_order: Sequence[Review],
) -> List[ClassifiedReview]:
    positions: Dict[OrderKey, int] = {order_key(review): index for index, review in enumerate(original_order)}
    combined = list(decided) + list(classified_undecided)
    combined.sort(key=lambda item: positions.get(order_key(item.review), 0))
    return combined
