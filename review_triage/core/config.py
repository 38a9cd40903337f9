"""Configuration helpers for the review triage service.

Environment variables are the only way to provide credentials:
`APIFY_API_TOKEN` is a billable key and must never be hardcoded.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_ACTOR_ID = "nwua9Gu5YrADL7ZDj"
DEFAULT_CLASSIFIER_URL = "https://louistzx-kaypoh-aunty-v2.hf.space/gradio_api/call/classify_batch"


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    apify_api_token: str
    apify_actor_id: str = DEFAULT_ACTOR_ID
    default_location: str = "New York, USA"
    max_crawl_wait: float = 300.0
    crawl_poll_interval: float = 5.0
    classification_threshold: float = 0.5
    classifier_url: str = DEFAULT_CLASSIFIER_URL
    classifier_max_retries: int = 3
    classifier_submit_timeout: float = 60.0
    classifier_poll_timeout: float = 120.0
    port: int = 8080


def _get_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"{name} must be set in the environment for the review scraper to run.")
    return value


def _get_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load, validate and cache settings to avoid repeated env lookups."""
    load_dotenv()

    apify_api_token = _get_required_env("APIFY_API_TOKEN")
    threshold = _get_number("CLASSIFICATION_THRESHOLD", 0.5, float)
    if not 0.0 <= threshold <= 1.0:
        raise ConfigError(f"CLASSIFICATION_THRESHOLD must be between 0 and 1, got {threshold}")

    max_retries = _get_number("CLASSIFIER_MAX_RETRIES", 3, int)
    if max_retries < 1:
        logger.warning("CLASSIFIER_MAX_RETRIES=%s is below 1; using a single attempt.", max_retries)
        max_retries = 1

    return Settings(
        apify_api_token=apify_api_token,
        apify_actor_id=os.getenv("APIFY_ACTOR_ID") or DEFAULT_ACTOR_ID,
        default_location=os.getenv("DEFAULT_LOCATION") or "New York, USA",
        max_crawl_wait=_get_number("MAX_CRAWL_WAIT_SECONDS", 300.0, float),
        crawl_poll_interval=_get_number("CRAWL_POLL_INTERVAL_SECONDS", 5.0, float),
        classification_threshold=threshold,
        classifier_url=os.getenv("CLASSIFIER_URL") or DEFAULT_CLASSIFIER_URL,
        classifier_max_retries=max_retries,
        classifier_submit_timeout=_get_number("CLASSIFIER_SUBMIT_TIMEOUT", 60.0, float),
        classifier_poll_timeout=_get_number("CLASSIFIER_POLL_TIMEOUT", 120.0, float),
        port=_get_number("PORT", 8080, int),
    )
