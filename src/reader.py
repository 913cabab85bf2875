"""Read metrics from newline-delimited JSON.

Each line is an object like:

    {"name": "disk", "timestamp": "2024-01-15T08:23:45Z", "fields": {"used": 42.5}}

``timestamp`` may also be epoch seconds; when missing, the current time is used.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Iterable, Iterator

from src.models import Metric

logger = logging.getLogger(__name__)


def _parse_timestamp(value) -> datetime | None:
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, ValueError, OSError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def parse_metric_line(line: str) -> Metric | None:
    """Parse one NDJSON metric record. Returns None if the line is blank or malformed."""
    stripped = line.strip()
    if not stripped:
        return None

    try:
        record = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    if not isinstance(record, dict):
        return None

    name = record.get("name")
    fields = record.get("fields", {})
    if not isinstance(name, str) or not name or not isinstance(fields, dict):
        return None

    timestamp = _parse_timestamp(record.get("timestamp"))
    if timestamp is None:
        return None

    return Metric(name=name, timestamp=timestamp, fields=fields)


def read_metrics(lines: Iterable[str]) -> Iterator[Metric]:
    """Yield metrics from an iterable of lines, skipping ones that do not parse."""
    for lineno, line in enumerate(lines, 1):
        metric = parse_metric_line(line)
        if metric is None:
            if line.strip():
                logger.warning("Skipping malformed metric on line %d: %s", lineno, line.strip()[:200])
            continue
        yield metric
