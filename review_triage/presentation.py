"""Session-scoped view state for browsing classified places and reviews."""

from __future__ import annotations

from typing import List, Optional, Sequence

from review_triage.models import USEFUL, ClassifiedReview, Place, Source

ALL = "all"

_BADGES = {Source.LOCAL: "Rules", Source.MODEL: "Model", Source.FAILED: "Failed"}


class ReviewBrowser:
    """Holds the places of one search and the place currently being viewed.

    One instance per user session; nothing here is shared between sessions.
    """

    def __init__(self, places: Sequence[Place]) -> None:
        self.places: List[Place] = list(places)
        self.selected: Optional[Place] = None

    def select_place(self, index: int) -> Place:
        if not 0 <= index < len(self.places):
            raise IndexError(f"No place at position {index}")
        self.selected = self.places[index]
        return self.selected

    @property
    def current_reviews(self) -> List[ClassifiedReview]:
        if self.selected is None:
            return []
        return list(self.selected.classified_reviews)

    def filter_reviews(self, category: str = ALL) -> List[ClassifiedReview]:
        if category == ALL:
            return self.current_reviews
        return [item for item in self.current_reviews if category in item.classification.categories]

    def default_view(self) -> List[ClassifiedReview]:
        return self.filter_reviews(USEFUL)

    @staticmethod
    def provenance_badge(item: ClassifiedReview) -> str:
        return _BADGES.get(item.classification.source, item.classification.source)
