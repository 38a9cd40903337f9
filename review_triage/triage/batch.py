"""Partition a list of reviews into locally decided and model-bound groups."""

from __future__ import annotations

import logging
from typing import Iterable

from review_triage.models import ClassificationResult, ClassifiedReview, Review, Source, TriageBatch, TriageSummary
from review_triage.triage import rules

logger = logging.getLogger(__name__)


def triage(reviews: Iterable[Review]) -> TriageBatch:
    batch = TriageBatch(decided=[], undecided=[], summary=TriageSummary())

    for review in reviews:
        batch.summary.total += 1
        outcome = rules.classify_review(review)
        if not outcome.is_classified:
            batch.undecided.append(review)
            batch.summary.needs_model += 1
            continue

        classification = ClassificationResult(
            categories=list(outcome.categories),
            scores=dict(outcome.scores),
            source=Source.LOCAL,
            reason=outcome.reason,
        )
        batch.decided.append(ClassifiedReview(review=review, classification=classification))
        batch.summary.locally_classified += 1
        for category in outcome.categories:
            batch.summary.by_category[category] = batch.summary.by_category.get(category, 0) + 1

    logger.info(
        "Triage: total=%d local=%d needs_model=%d by_category=%s",
        batch.summary.total,
        batch.summary.locally_classified,
        batch.summary.needs_model,
        batch.summary.by_category,
    )
    return batch
