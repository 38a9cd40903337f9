"""HTTP entrypoint for searching places and classifying single reviews."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

from flask import Flask, jsonify, request

from review_triage.core.config import ConfigError, get_settings
from review_triage.core.errors import (
    ClientInputError,
    CrawlTimeoutError,
    RemoteProtocolError,
    TransientRemoteError,
    VendorJobError,
)
from review_triage.etl.transform import to_place_payload
from review_triage.jobs.search_places import classify_single_review, search_places

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    return response


def _error(status: int, error: str, message: str) -> Any:
    return jsonify({"success": False, "error": error, "message": message}), status


def _parse_threshold(payload: Dict[str, Any], default: float) -> float:
    raw = payload.get("threshold")
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ClientInputError("threshold must be numeric") from exc
    if not 0.0 <= value <= 1.0:
        raise ClientInputError("threshold must be between 0 and 1")
    return value


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    return jsonify({"status": "ok", "revision": os.getenv("K_REVISION", "unknown")}), 200


@app.route("/api/scrape-reviews", methods=["POST", "OPTIONS"])
def scrape_reviews() -> Any:
    """
    Crawl and classify the reviews of places matching a search.
    Required JSON fields: searchQuery
    Optional: location (str), threshold (float)
    This call blocks until the crawl finishes, which can take minutes.
    """
    if request.method == "OPTIONS":
        return "", 200

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    query = str(payload.get("searchQuery") or "").strip()
    if not query:
        return _error(400, "Search query is required", "searchQuery must be a non-empty string")

    settings = get_settings()
    try:
        threshold = _parse_threshold(payload, settings.classification_threshold)
        places = search_places(
            query,
            payload.get("location") or settings.default_location,
            settings=settings,
            threshold=threshold,
        )
    except ClientInputError as exc:
        return _error(400, "Invalid request", str(exc))
    except CrawlTimeoutError as exc:
        logger.error("Crawl timed out for %s: %s", query, exc)
        return _error(504, "Processing failed", str(exc))
    except VendorJobError as exc:
        logger.error("Crawl failed for %s: %s", query, exc)
        return _error(502, "Processing failed", str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Search failed for %s: %s", query, exc)
        return _error(500, "Processing failed", str(exc))

    data = [to_place_payload(place) for place in places]
    return jsonify({"success": True, "data": data, "message": f"Found {len(data)} places with classified reviews"}), 200


@app.route("/api/classify-review", methods=["POST", "OPTIONS"])
def classify_review() -> Any:
    """
    Classify one review typed in by the user.
    Required JSON fields: reviewText, rating (1-5)
    Optional: hasPhoto (bool), threshold (float)
    """
    if request.method == "OPTIONS":
        return "", 200

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        threshold = _parse_threshold(payload, get_settings().classification_threshold)
        classification = classify_single_review(
            payload.get("reviewText"),
            payload.get("rating"),
            has_photo=bool(payload.get("hasPhoto", False)),
            threshold=threshold,
        )
    except ClientInputError as exc:
        return _error(400, "Invalid request", str(exc))
    except TransientRemoteError as exc:
        logger.error("Classification unavailable: %s", exc)
        return _error(503, "Classification failed", str(exc))
    except RemoteProtocolError as exc:
        logger.error("Classification returned an invalid response: %s", exc)
        return _error(502, "Classification failed", str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Classification failed: %s", exc)
        return _error(500, "Classification failed", str(exc))

    return jsonify({"success": True, "data": classification, "message": "Review classified successfully"}), 200


def main() -> None:
    """Fail fast on missing configuration, then bind on 0.0.0.0:$PORT."""
    try:
        settings = get_settings()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    logger.info("[BOOT] Binding on 0.0.0.0:%d", settings.port)
    app.run(host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
