"""Client for the hosted review classification model.

The model is served behind a two-step "call" API: a POST submits the job and
returns an ``event_id``, then a GET on ``{url}/{event_id}`` streams the
result as newline-delimited event records.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from review_triage.core.config import Settings
from review_triage.core.errors import RemoteProtocolError, TransientRemoteError
from review_triage.core.retry import RetryPolicy
from review_triage.models import VOCABULARY, ClassificationResult, Review, Source
from review_triage.vendors.event_stream import first_data_payload

logger = logging.getLogger(__name__)
_SESSION = requests.Session()

LABEL_SUFFIX = " Review"
DEFAULT_RATING = 5.0
USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"


def normalize_label(label: str) -> str:
    """Map the model's label space onto the local one ("Useful Review" -> "Useful")."""
    label = label.strip()
    if label.endswith(LABEL_SUFFIX):
        return label[: -len(LABEL_SUFFIX)]
    return label


def build_batch_payload(reviews: Sequence[Review], threshold: float) -> Dict[str, Any]:
    texts = [review.text for review in reviews]
    ratings = [review.rating if review.rating is not None else DEFAULT_RATING for review in reviews]
    has_pics = [1 if review.has_photo else 0 for review in reviews]
    return {"data": [json.dumps(texts), json.dumps(ratings), json.dumps(has_pics), threshold]}


def model_reason(categories: Sequence[str], scores: Dict[str, float]) -> str:
    if not categories:
        return "No classification found"
    parts = [f"{category}: {scores.get(category, 0.0) * 100:.1f}%" for category in categories]
    return f"Model prediction: {', '.join(parts)}"


def to_classification(entry: Any) -> ClassificationResult:
    """Convert one ``batch_results`` entry into a model-sourced result."""
    if entry is None:
        entry = {}
    if not isinstance(entry, dict):
        raise RemoteProtocolError(f"Batch result entry is not an object: {json.dumps(entry)[:200]}")
    raw_scores = entry.get("all_scores") or {}
    raw_predictions = entry.get("predictions") or []
    if not isinstance(raw_scores, dict) or not isinstance(raw_predictions, list):
        raise RemoteProtocolError(f"Malformed batch result entry: {json.dumps(entry)[:200]}")

    scores: Dict[str, float] = {}
    for label, value in raw_scores.items():
        name = normalize_label(str(label))
        if name not in VOCABULARY:
            continue
        try:
            scores[name] = float(value)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric score %r for %s", value, label)

    categories: List[str] = []
    for prediction in raw_predictions:
        label = prediction.get("label") if isinstance(prediction, dict) else None
        if not isinstance(label, str):
            continue
        name = normalize_label(label)
        if name not in VOCABULARY:
            logger.warning("Dropping unknown model label %r", label)
            continue
        if name not in categories:
            categories.append(name)

    return ClassificationResult(
        categories=categories,
        scores=scores,
        source=Source.MODEL,
        reason=model_reason(categories, scores),
    )


def parse_batch_results(payload: Any, expected: int) -> List[ClassificationResult]:
    if not isinstance(payload, dict) or not isinstance(payload.get("batch_results"), list):
        raise RemoteProtocolError(f"Invalid batch API response format: {json.dumps(payload)[:300]}")
    entries = payload["batch_results"]
    if len(entries) != expected:
        logger.warning("Model returned %d results for %d reviews", len(entries), expected)
    return [to_classification(entries[index] if index < len(entries) else None) for index in range(expected)]


def _raise_for_status(response: requests.Response, step: str) -> None:
    status = response.status_code
    if status == 429:
        raise TransientRemoteError(f"{step}: rate limited (HTTP 429)", TransientRemoteError.RATE_LIMITED, status)
    if status == 503:
        raise TransientRemoteError(f"{step}: service unavailable (HTTP 503)", TransientRemoteError.UNAVAILABLE, status)
    if not 200 <= status < 300:
        raise TransientRemoteError(
            f"{step}: HTTP {status} - {response.text[:300]}", TransientRemoteError.HTTP_ERROR, status
        )


class RemoteClassifier:
    """Submit/poll client with retries for the hosted batch classifier."""

    def __init__(
        self,
        url: str,
        retry_policy: Optional[RetryPolicy] = None,
        submit_timeout: float = 60.0,
        poll_timeout: float = 120.0,
    ) -> None:
        self.url = url.rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy()
        self.submit_timeout = submit_timeout
        self.poll_timeout = poll_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "RemoteClassifier":
        return cls(
            settings.classifier_url,
            retry_policy=RetryPolicy(max_attempts=settings.classifier_max_retries),
            submit_timeout=settings.classifier_submit_timeout,
            poll_timeout=settings.classifier_poll_timeout,
        )

    def classify_batch(self, reviews: Sequence[Review], threshold: float) -> List[ClassificationResult]:
        """Classify ``reviews`` remotely; one result per review, in input order.

        Raises :class:`TransientRemoteError` once retries are exhausted and
        :class:`RemoteProtocolError` immediately on a contract violation.
        """
        if not reviews:
            return []
        payload = build_batch_payload(reviews, threshold)
        logger.info("Sending %d reviews to the model (threshold=%s)", len(reviews), threshold)
        result_payload = self.retry_policy.call(
            lambda: self._run_job(payload),
            description=f"Batch classification of {len(reviews)} reviews",
        )
        return parse_batch_results(result_payload, len(reviews))

    def _run_job(self, payload: Dict[str, Any]) -> Any:
        event_id = self._submit(payload)
        return self._fetch_result(event_id)

    def _submit(self, payload: Dict[str, Any]) -> str:
        try:
            response = _SESSION.post(
                self.url,
                json=payload,
                headers={"User-Agent": USER_AGENT},
                timeout=self.submit_timeout,
            )
        except requests.Timeout as exc:
            raise TransientRemoteError(f"Submit timed out after {self.submit_timeout}s", TransientRemoteError.TIMEOUT) from exc
        except requests.RequestException as exc:
            raise TransientRemoteError(f"Submit failed: {exc}", TransientRemoteError.CONNECTION) from exc

        _raise_for_status(response, "Submit")
        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteProtocolError(f"Submit response is not JSON: {response.text[:300]}") from exc
        event_id = body.get("event_id") if isinstance(body, dict) else None
        if not event_id:
            raise RemoteProtocolError(f"No event_id in batch response: {json.dumps(body)[:300]}")
        logger.info("Got batch event ID: %s", event_id)
        return str(event_id)

    def _fetch_result(self, event_id: str) -> Any:
        try:
            response = _SESSION.get(
                f"{self.url}/{event_id}",
                headers={"User-Agent": USER_AGENT},
                timeout=self.poll_timeout,
                stream=True,
            )
            try:
                _raise_for_status(response, "Result fetch")
                payload = first_data_payload(response.iter_lines(decode_unicode=True))
            finally:
                response.close()
        except requests.Timeout as exc:
            raise TransientRemoteError(f"Result fetch timed out after {self.poll_timeout}s", TransientRemoteError.TIMEOUT) from exc
        except requests.RequestException as exc:
            raise TransientRemoteError(f"Result fetch failed: {exc}", TransientRemoteError.CONNECTION) from exc

        if payload is None:
            raise RemoteProtocolError(f"No data received from result stream for event {event_id}")
        return payload
