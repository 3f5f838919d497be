"""
BranchRelay Backend — Timestamp and Cell Formatting Helpers
=============================================================

What:  Small helpers shared by the storage and branch services.
Why:   S3 metadata, storage keys, sheet rows and API responses must agree on
       one timestamp format and one way of turning JSON numbers into text.
"""

import time
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Format a UTC instant as ISO-8601 with millisecond precision and a Z suffix.

    Example: 2024-01-15T12:00:00.000Z
    Why milliseconds: matches what browsers and the Sheets UI parse natively.
    """
    moment = (moment or utc_now()).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def epoch_millis() -> int:
    """Milliseconds since the Unix epoch; used to make storage keys unique."""
    return int(time.time() * 1000)


def to_cell(value: Any) -> str:
    """
    Render a JSON scalar as spreadsheet/metadata text.

    Integral floats drop the trailing ".0" (JSON clients often send 12.0 for 12),
    None becomes "", everything else goes through str().
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
