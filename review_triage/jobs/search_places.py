"""Job that crawls a business's Google Maps reviews and classifies them."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from review_triage.core.config import ConfigError, Settings, get_settings
from review_triage.core.errors import ClientInputError, RemoteProtocolError, TransientRemoteError
from review_triage.etl.transform import to_place, to_place_payload
from review_triage.models import ClassificationResult, ClassifiedReview, Place, Review, Source
from review_triage.presentation import ReviewBrowser
from review_triage.triage import merge, rules
from review_triage.triage.batch import triage
from review_triage.vendors.apify import ApifyClient
from review_triage.vendors.review_model import RemoteClassifier

logger = logging.getLogger(__name__)

MIN_RATING = 1.0
MAX_RATING = 5.0


def classify_place(place: Place, classifier: RemoteClassifier, threshold: float) -> Place:
    """Triage one place's reviews, send the undecided ones to the model and merge.

    A failing model call only degrades this place: its undecided reviews are
    marked ``Unclassified`` and the locally decided ones are kept.
    """
    logger.info("Processing %d reviews for: %s", len(place.reviews), place.title)
    batch = triage(place.reviews)

    model_results: List[ClassifiedReview] = []
    failed = 0
    if batch.undecided:
        try:
            classifications = classifier.classify_batch(batch.undecided, threshold)
        except (TransientRemoteError, RemoteProtocolError) as exc:
            logger.error("ML classification failed for %s: %s", place.title, exc)
            classifications = [ClassificationResult.failed(f"ML classification failed: {exc}") for _ in batch.undecided]
            failed = len(batch.undecided)
        model_results = [
            ClassifiedReview(review=review, classification=classification)
            for review, classification in zip(batch.undecided, classifications)
        ]
    else:
        logger.info("No reviews sent to the model; all %d classified locally", batch.summary.locally_classified)

    place.classified_reviews = merge.merge(batch.decided, model_results, place.reviews)
    summary = asdict(batch.summary)
    summary["model_classified"] = len(batch.undecided) - failed
    summary["failed"] = failed
    place.classification_summary = summary
    return place


def search_places(
    query: str,
    location: Optional[str] = None,
    *,
    settings: Optional[Settings] = None,
    crawler: Optional[ApifyClient] = None,
    classifier: Optional[RemoteClassifier] = None,
    threshold: Optional[float] = None,
) -> List[Place]:
    """Crawl places matching ``query`` and return them with classified reviews.

    Crawl failures (vendor failure states or the wait budget running out)
    fail the whole search; model failures only degrade the affected place.
    """
    if not query or not query.strip():
        raise ClientInputError("Search query is required")

    settings = settings or get_settings()
    crawler = crawler or ApifyClient.from_settings(settings)
    classifier = classifier or RemoteClassifier.from_settings(settings)
    location = location or settings.default_location
    threshold = settings.classification_threshold if threshold is None else threshold

    logger.info("Starting scraper for query=%s location=%s", query, location)
    records = crawler.run_crawl(query, location)
    logger.info("Scraping completed. Found %d places. Starting classification...", len(records))

    places: List[Place] = []
    for record in records:
        if not isinstance(record, dict):
            logger.debug("Skipping non-object place record: %r", record)
            continue
        places.append(classify_place(to_place(record), classifier, threshold))
    return places


def _validate_single_review(text: Any, rating: Any) -> float:
    if not isinstance(text, str) or not text.strip():
        raise ClientInputError("Review text is required")
    try:
        value = float(rating)
    except (TypeError, ValueError) as exc:
        raise ClientInputError("Rating must be a number between 1 and 5") from exc
    if not MIN_RATING <= value <= MAX_RATING:
        raise ClientInputError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {value}")
    return value


def classify_single_review(
    text: str,
    rating: Any,
    has_photo: bool = False,
    threshold: float = 0.5,
    *,
    classifier: Optional[RemoteClassifier] = None,
) -> Dict[str, Any]:
    """Classify one review: local rules first, the model only when they are silent."""
    value = _validate_single_review(text, rating)
    review = Review(text=text.strip(), rating=value, has_photo=bool(has_photo))

    outcome = rules.classify_review(review)
    if outcome.is_classified:
        result = ClassificationResult(
            categories=outcome.categories, scores=outcome.scores, source=Source.LOCAL, reason=outcome.reason
        )
    else:
        if classifier is None:
            classifier = RemoteClassifier.from_settings(get_settings())
        result = classifier.classify_batch([review], threshold)[0]

    return {
        "predictions": [{"label": label, "score": result.scores.get(label, 0.0)} for label in result.categories],
        "scores": dict(result.scores),
        "source": result.source,
        "reason": result.reason,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape and classify Google Maps reviews")
    parser.add_argument("query", help="Business to search for, e.g. 'joe's pizza'")
    parser.add_argument("--location", dest="location", help="Location to search in (defaults to DEFAULT_LOCATION)")
    parser.add_argument("--threshold", dest="threshold", type=float, help="Model confidence threshold")
    parser.add_argument(
        "--category",
        dest="category",
        default="all",
        help="Only print reviews in this category ('all' for every review)",
    )
    parser.add_argument("--json", dest="as_json", action="store_true", help="Print the full result as JSON")
    return parser


def _print_places(places: List[Place], category: str) -> None:
    browser = ReviewBrowser(places)
    for index, place in enumerate(places):
        browser.select_place(index)
        print(f"{place.title} ({place.rating or '-'} stars, {place.review_count or 0} reviews)")
        for item in browser.filter_reviews(category):
            labels = ", ".join(item.classification.categories) or "-"
            print(f"  [{browser.provenance_badge(item)}] {labels}: {item.review.text[:80]}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args()

    try:
        places = search_places(args.query, args.location, threshold=args.threshold)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    if args.as_json:
        print(json.dumps([to_place_payload(place) for place in places], ensure_ascii=False, indent=2))
    else:
        _print_places(places, args.category)


if __name__ == "__main__":
    main()
