import argparse

import pytest

from review_triage.core.config import Settings
from review_triage.core.errors import ClientInputError, RemoteProtocolError, TransientRemoteError, VendorJobError
from review_triage.jobs import search_places as job
from review_triage.models import UNCLASSIFIED, VOCABULARY, ClassificationResult, Source
from review_triage.vendors import review_model

USEFUL_TEXT = (
    "The food was great but service was slow, though I'd still recommend it, "
    "we ordered the pasta and tried the dessert"
)


def _record(title, texts):
    return {
        "title": title,
        "address": "1 Main St",
        "totalScore": 4.4,
        "reviewsCount": 120,
        "reviews": [{"text": text, "stars": 4, "name": f"user{i}"} for i, text in enumerate(texts)],
    }


class FakeCrawler:
    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = []

    def run_crawl(self, query, location):
        self.calls.append((query, location))
        if self.error:
            raise self.error
        return self.records


class FakeClassifier:
    def __init__(self, fail_for=None, error=None):
        self.fail_for = fail_for or set()
        self.error = error or TransientRemoteError("exhausted", TransientRemoteError.RATE_LIMITED, 429)
        self.batches = []

    def classify_batch(self, reviews, threshold):
        self.batches.append(([review.text for review in reviews], threshold))
        if any(review.text in self.fail_for for review in reviews):
            raise self.error
        return [ClassificationResult(["Useful"], {"Useful": 0.7}, Source.MODEL, "Model prediction: Useful: 70.0%") for _ in reviews]


@pytest.fixture
def settings():
    return Settings(apify_api_token="token", default_location="Singapore", classification_threshold=0.6)


def test_search_places_classifies_each_place(settings):
    crawler = FakeCrawler([_record("Joe's", ["Visit our website for deals! www.fake.com", "Interesting place, went there on Tuesday", "ok"])])
    classifier = FakeClassifier()

    places = job.search_places("pizza", settings=settings, crawler=crawler, classifier=classifier)

    assert crawler.calls == [("pizza", "Singapore")]
    assert classifier.batches == [(["Interesting place, went there on Tuesday"], 0.6)]
    place = places[0]
    assert [item.review.text for item in place.classified_reviews] == [
        "Visit our website for deals! www.fake.com",
        "Interesting place, went there on Tuesday",
        "ok",
    ]
    assert [item.classification.source for item in place.classified_reviews] == [Source.LOCAL, Source.MODEL, Source.LOCAL]
    assert place.classification_summary["locally_classified"] == 2
    assert place.classification_summary["model_classified"] == 1
    assert place.classification_summary["failed"] == 0
    assert place.rating == 4.4 and place.review_count == 120


def test_model_failure_only_degrades_that_place(settings):
    crawler = FakeCrawler(
        [
            _record("Broken", ["Interesting place, went there on Tuesday", USEFUL_TEXT]),
            _record("Fine", ["Quiet spot near the station"]),
        ]
    )
    classifier = FakeClassifier(fail_for={"Interesting place, went there on Tuesday"})

    broken, fine = job.search_places("cafe", "Paris", settings=settings, crawler=crawler, classifier=classifier)

    failed = broken.classified_reviews[0].classification
    assert failed.source == Source.FAILED
    assert failed.categories == [UNCLASSIFIED]
    assert "ML classification failed" in failed.reason
    assert broken.classified_reviews[1].classification.categories == ["Useful"]
    assert broken.classified_reviews[1].classification.source == Source.LOCAL
    assert broken.classification_summary["failed"] == 1
    assert fine.classified_reviews[0].classification.source == Source.MODEL


def test_protocol_errors_also_degrade(settings):
    crawler = FakeCrawler([_record("Joe's", ["Interesting place, went there on Tuesday"])])
    classifier = FakeClassifier(
        fail_for={"Interesting place, went there on Tuesday"}, error=RemoteProtocolError("no event_id")
    )

    (place,) = job.search_places("pizza", settings=settings, crawler=crawler, classifier=classifier)

    assert place.classified_reviews[0].classification.source == Source.FAILED


class MalformedModel:
    def __init__(self):
        self.calls = 0

    def classify_batch(self, reviews, threshold):
        self.calls += 1
        return review_model.parse_batch_results({"batch_results": [{"all_scores": ["x"]}]}, len(reviews))


def test_malformed_model_entries_degrade_and_search_continues(settings):
    crawler = FakeCrawler(
        [
            _record("Odd", ["Interesting place, went there on Tuesday"]),
            _record("Local", ["ok"]),
        ]
    )
    classifier = MalformedModel()

    odd, local = job.search_places("cafe", settings=settings, crawler=crawler, classifier=classifier)

    assert classifier.calls == 1
    assert odd.classified_reviews[0].classification.source == Source.FAILED
    assert odd.classification_summary["failed"] == 1
    assert local.classified_reviews[0].classification.source == Source.LOCAL


def test_no_model_call_when_everything_is_local(settings):
    crawler = FakeCrawler([_record("Joe's", ["ok", "Great!!"])])
    classifier = FakeClassifier()

    (place,) = job.search_places("pizza", settings=settings, crawler=crawler, classifier=classifier)

    assert classifier.batches == []
    assert place.classification_summary["model_classified"] == 0


def test_categories_stay_in_vocabulary(settings):
    texts = ["ok", "Interesting place, went there on Tuesday", USEFUL_TEXT, "Never been, heard from friends"]
    crawler = FakeCrawler([_record("Joe's", texts), _record("Other", texts)])
    classifier = FakeClassifier(fail_for={"Interesting place, went there on Tuesday"})

    places = job.search_places("pizza", settings=settings, crawler=crawler, classifier=classifier)

    for place in places:
        for item in place.classified_reviews:
            assert set(item.classification.categories) <= VOCABULARY


def test_crawl_failures_fail_the_search(settings):
    crawler = FakeCrawler(error=VendorJobError("Scraping failed: Actor crashed", status="FAILED"))

    with pytest.raises(VendorJobError):
        job.search_places("pizza", settings=settings, crawler=crawler, classifier=FakeClassifier())


def test_search_requires_query(settings):
    with pytest.raises(ClientInputError):
        job.search_places("  ", settings=settings, crawler=FakeCrawler(), classifier=FakeClassifier())


def test_classify_single_review_local():
    classifier = FakeClassifier()

    result = job.classify_single_review("Visit our website for deals! www.fake.com", 5, classifier=classifier)

    assert result["source"] == "local"
    assert result["predictions"] == [{"label": "Advertisements", "score": 0.9}]
    assert classifier.batches == []


def test_classify_single_review_escalates_to_model():
    classifier = FakeClassifier()

    result = job.classify_single_review("Interesting place, went there on Tuesday", 4.0, True, 0.3, classifier=classifier)

    assert result["source"] == "model"
    assert result["predictions"] == [{"label": "Useful", "score": 0.7}]
    assert result["reason"].startswith("Model prediction")
    assert classifier.batches == [(["Interesting place, went there on Tuesday"], 0.3)]


@pytest.mark.parametrize(
    "text, rating",
    [("", 3), ("   ", 3), (None, 3), ("fine", 0.5), ("fine", 5.5), ("fine", "abc"), ("fine", None)],
)
def test_classify_single_review_rejects_bad_input(text, rating):
    classifier = FakeClassifier()

    with pytest.raises(ClientInputError):
        job.classify_single_review(text, rating, classifier=classifier)

    assert classifier.batches == []


def test_classify_single_review_propagates_remote_failure():
    classifier = FakeClassifier(fail_for={"Interesting place, went there on Tuesday"})

    with pytest.raises(TransientRemoteError):
        job.classify_single_review("Interesting place, went there on Tuesday", 3, classifier=classifier)


def test_build_parser_defaults():
    parser = job.build_parser()
    args = parser.parse_args(["joe's pizza"])

    assert isinstance(parser, argparse.ArgumentParser)
    assert args.query == "joe's pizza"
    assert args.category == "all"
    assert args.threshold is None
    assert args.as_json is False
