"""Line-oriented decoder for the hosted model's streamed result body.

The body is newline-delimited. Lines starting with ``data: `` carry a JSON
record; anything else (``event: ...`` lines, heartbeats, blanks) is ignorable.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "


@dataclass(frozen=True)
class StreamEvent:
    kind: str
    raw: str
    payload: Any = None
    parsed: bool = False

    IGNORABLE = "ignorable"
    DATA = "data"


def iter_events(lines: Iterable[Any]) -> Iterator[StreamEvent]:
    for line in lines:
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            yield StreamEvent(StreamEvent.IGNORABLE, line)
            continue
        content = line[len(DATA_PREFIX):]
        try:
            payload = json.loads(content)
        except ValueError as exc:
            logger.warning("Skipping unparsable data record: %s (%s)", content[:200], exc)
            yield StreamEvent(StreamEvent.DATA, line)
            continue
        yield StreamEvent(StreamEvent.DATA, line, payload=payload, parsed=True)


def first_data_payload(lines: Iterable[Any]) -> Optional[Any]:
    """Return the first parsable data record, unwrapping a single-result list.

    Returns ``None`` when the stream holds no parsable data record.
    """
    for event in iter_events(lines):
        if event.kind != StreamEvent.DATA or not event.parsed:
            continue
        payload = event.payload
        if isinstance(payload, list) and payload:
            return payload[0]
        return payload
    return None
