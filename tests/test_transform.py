from review_triage.etl import transform
from review_triage.models import ClassificationResult, ClassifiedReview, Review, Source


def test_to_review_accepts_field_aliases():
    review = transform.to_review({"reviewText": "  Lovely  ", "rating": "4", "authorName": "Kim", "photos": ["a.jpg"]})

    assert review.text == "Lovely"
    assert review.rating == 4.0
    assert review.author == "Kim"
    assert review.has_photo is True


def test_to_review_prefers_primary_fields():
    review = transform.to_review({"text": "A", "reviewText": "B", "stars": 2, "rating": 5, "name": "Lee"})

    assert review.text == "A"
    assert review.rating == 2.0
    assert review.author == "Lee"
    assert review.has_photo is False


def test_to_review_skips_empty_text():
    assert transform.to_review({"text": "   ", "stars": 5}) is None
    assert transform.to_review({"stars": 5}) is None


def test_has_photos_ignores_empty_lists():
    assert transform.has_photos({"reviewImageUrls": []}) is False
    assert transform.has_photos({"reviewerPhotos": ["x"]}) is True


def test_to_place_uses_fallbacks():
    place = transform.to_place(
        {
            "name": "Cafe",
            "location": "Main St",
            "rating": 4.2,
            "reviews": [{"text": "Nice"}, {"text": ""}, "junk"],
        }
    )

    assert place.title == "Cafe"
    assert place.address == "Main St"
    assert place.rating == 4.2
    assert place.review_count == 3
    assert [review.text for review in place.reviews] == ["Nice"]


def test_to_place_reads_vendor_fields():
    place = transform.to_place({"title": "Joe's", "address": "1 Broadway", "totalScore": 4.6, "reviewsCount": "1,204"})

    assert place.title == "Joe's"
    assert place.rating == 4.6
    assert place.review_count == 1204
    assert place.reviews == []


def test_to_place_payload():
    review = Review(text="ok", rating=3.0, author="Ann")
    place = transform.to_place({"title": "Joe's", "reviews": []})
    place.classified_reviews = [
        ClassifiedReview(review, ClassificationResult(["Irrelevant Content"], {"Irrelevant Content": 0.85}, Source.LOCAL, "why"))
    ]
    place.classification_summary = {"total": 1}

    payload = transform.to_place_payload(place)

    assert payload["title"] == "Joe's"
    assert payload["classificationSummary"] == {"total": 1}
    entry = payload["reviews"][0]
    assert entry["classifications"] == ["Irrelevant Content"]
    assert entry["classificationSource"] == "local"
    assert entry["localClassification"] is True
    assert entry["classificationReason"] == "why"
    assert entry["hasPhoto"] is False
