"""Core data models shared by the review triage pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

ADVERTISEMENTS = "Advertisements"
SPAM = "Spam"
RANT_WITHOUT_VISIT = "Rant Without Visit"
IRRELEVANT_CONTENT = "Irrelevant Content"
USEFUL = "Useful"
UNCLASSIFIED = "Unclassified"

CATEGORIES = (ADVERTISEMENTS, SPAM, RANT_WITHOUT_VISIT, IRRELEVANT_CONTENT, USEFUL)
VOCABULARY = frozenset(CATEGORIES + (UNCLASSIFIED,))


class Source:
    """Which stage produced a review's labels."""

    LOCAL = "local"
    MODEL = "model"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Review:
    """One normalized user review. Built once at ingestion, never mutated."""

    text: str
    rating: Optional[float] = None
    author: Optional[str] = None
    has_photo: bool = False
    raw: Optional[Dict[str, Any]] = field(default=None, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    categories: List[str]
    scores: Dict[str, float]
    source: str
    reason: str

    @classmethod
    def failed(cls, reason: str) -> "ClassificationResult":
        return cls(categories=[UNCLASSIFIED], scores={}, source=Source.FAILED, reason=reason)


@dataclass(slots=True)
class ClassifiedReview:
    review: Review
    classification: ClassificationResult


@dataclass(slots=True)
class TriageSummary:
    total: int = 0
    locally_classified: int = 0
    needs_model: int = 0
    by_category: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class TriageBatch:
    """Reviews split into those the rules decided and those left for the model."""

    decided: List[ClassifiedReview]
    undecided: List[Review]
    summary: TriageSummary


@dataclass(slots=True)
class Place:
    """A business returned by the crawler, with its reviews."""

    title: str
    address: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    reviews: List[Review] = field(default_factory=list)
    classified_reviews: List[ClassifiedReview] = field(default_factory=list)
    classification_summary: Optional[Dict[str, Any]] = None
    raw: Optional[Dict[str, Any]] = field(default=None, repr=False)
