"""Client utilities for the Apify Google Maps reviews actor."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from review_triage.core.config import Settings
from review_triage.core.errors import CrawlTimeoutError, VendorJobError

logger = logging.getLogger(__name__)
_BASE_URL = "https://api.apify.com/v2"
_REQUEST_TIMEOUT = 30


def _build_session() -> requests.Session:
    # Only idempotent GETs are retried at the transport level; starting a run is not.
    session = requests.Session()
    retries = Retry(
        total=3,
        backoff_factor=1,
        status_forcelist=(500, 502, 504),
        allowed_methods=("GET",),
    )
    session.mount("https://", HTTPAdapter(max_retries=retries))
    session.mount("http://", HTTPAdapter(max_retries=retries))
    return session


_SESSION = _build_session()

SUCCEEDED = "SUCCEEDED"
FAILED = "FAILED"
ABORTED = "ABORTED"
TIMED_OUT = "TIMED-OUT"


def build_run_input(query: str, location: str, max_reviews: int = 15) -> Dict[str, Any]:
    if not query or not query.strip():
        raise ValueError("Search query must be provided for the crawl.")
    return {
        "searchStringsArray": [query.strip()],
        "locationQuery": location,
        "maxCrawledPlacesPerSearch": 3,
        "language": "en",
        "searchMatching": "all",
        "maxReviews": max_reviews,
        "reviewsSort": "newest",
        "scrapeReviewsPersonalData": True,
        "reviewsOrigin": "all",
        "onlyDataFromSearchPage": False,
        "maxCrawledPlaces": 5,
    }


def _decode_json(response: requests.Response, step: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        logger.error("%s returned a non-JSON body: %s", step, response.text[:500])
        raise VendorJobError(f"{step}: crawl service returned invalid JSON") from exc


def _run_data(response: requests.Response, step: str) -> Dict[str, Any]:
    body = _decode_json(response, step)
    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, dict):
        raise VendorJobError(f"{step}: unexpected response from crawl service")
    return data


class ApifyClient:
    def __init__(
        self,
        api_token: str,
        actor_id: str,
        poll_interval: float = 5.0,
        max_wait: float = 300.0,
    ) -> None:
        self.api_token = api_token
        self.actor_id = actor_id
        self.poll_interval = poll_interval
        self.max_wait = max_wait

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApifyClient":
        return cls(
            settings.apify_api_token,
            settings.apify_actor_id,
            poll_interval=settings.crawl_poll_interval,
            max_wait=settings.max_crawl_wait,
        )

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_token}"}

    def start_run(self, query: str, location: str) -> str:
        payload = build_run_input(query, location)
        response = self._request("POST", f"{_BASE_URL}/acts/{self.actor_id}/runs", json=payload)
        if not response.ok:
            logger.error("Failed to start crawl: status=%s body=%s", response.status_code, response.text[:500])
            raise VendorJobError(f"Failed to start scraping: {response.status_code} - {response.text[:300]}")
        run_id = _run_data(response, "Run start").get("id")
        if not run_id:
            raise VendorJobError("Crawl service did not return a run id")
        logger.info("Crawl run started with ID: %s", run_id)
        return run_id

    def get_run(self, run_id: str) -> Dict[str, Any]:
        response = self._request("GET", f"{_BASE_URL}/acts/{self.actor_id}/runs/{run_id}")
        if not response.ok:
            raise VendorJobError(f"Status check failed: {response.status_code}")
        return _run_data(response, "Status check")

    def wait_for_run(self, run_id: str) -> str:
        """Poll the run until it finishes and return its dataset id."""
        started = time.monotonic()
        logger.info("Waiting for run %s to complete...", run_id)

        while time.monotonic() - started < self.max_wait:
            run = self.get_run(run_id)
            status = run.get("status")
            logger.info("Run %s status: %s", run_id, status)

            if status == SUCCEEDED:
                dataset_id = run.get("defaultDatasetId")
                if not dataset_id:
                    raise VendorJobError("Run succeeded without a dataset id", status=status)
                return dataset_id
            if status == FAILED:
                reason = run.get("statusMessage") or "Unknown error"
                raise VendorJobError(f"Scraping failed: {reason}", status=status)
            if status == ABORTED:
                raise VendorJobError("Scraping was aborted", status=status)
            if status == TIMED_OUT:
                raise VendorJobError("Scraping timed out", status=status)

            time.sleep(self.poll_interval)

        logger.error("Timeout after %.0f seconds waiting for run %s", self.max_wait, run_id)
        raise CrawlTimeoutError(
            f"Timeout waiting for scraping to complete after {self.max_wait:.0f} seconds", status=None
        )

    def fetch_dataset(self, dataset_id: str) -> List[Dict[str, Any]]:
        response = self._request("GET", f"{_BASE_URL}/datasets/{dataset_id}/items")
        if not response.ok:
            raise VendorJobError(f"Results fetch failed: {response.status_code}")
        items = _decode_json(response, "Results fetch")
        if not isinstance(items, list):
            raise VendorJobError("Dataset items response is not a list")
        logger.info("Fetched %d place records from dataset %s", len(items), dataset_id)
        return items

    def run_crawl(self, query: str, location: str) -> List[Dict[str, Any]]:
        run_id = self.start_run(query, location)
        dataset_id = self.wait_for_run(run_id)
        return self.fetch_dataset(dataset_id)

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            return _SESSION.request(method, url, headers=self._headers, timeout=_REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            logger.error("Crawl service %s %s failed: %s", method, url, exc)
            raise VendorJobError(f"Crawl service request failed: {exc}") from exc
