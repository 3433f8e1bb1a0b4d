# gradesweep/analysis/expiry.py

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timedelta, timezone

from gradesweep.constants import DURATION_UNITS
from gradesweep.io.ssllabs import SSLLabsError
from gradesweep.models import AssessmentStatus, Cert

LOG = logging.getLogger(__name__)

_THRESHOLD_RE = re.compile(r"^(\d+)([dwmy]?)$")


class ThresholdError(ValueError):
    pass


def parse_threshold(text: str) -> timedelta:
    """Parse "<num><d|w|m|y>" into a duration; a bare number means days."""
    m = _THRESHOLD_RE.match(text.strip().lower())
    if not m:
        raise ThresholdError(f"Can't parse duration {text!r} (use num + d/w/m/y)")

    num, unit = int(m.group(1)), m.group(2) or "d"
    return num * DURATION_UNITS[unit]


def days_remaining(cert: Cert, now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    return math.floor((cert.not_after - now).total_seconds() / 86400)


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if abs(n) == 1 else f"{n} {word}s"


def check_expiry(
    cert: Cert, threshold: timedelta, now: datetime | None = None
) -> str | None:
    if threshold <= timedelta(0) or cert.not_after is None:
        return None

    now = now or datetime.now(timezone.utc)

    if cert.not_after - now > threshold:
        return None

    return f"expires in {_plural(days_remaining(cert, now), 'day')}"


def expiry_message(analysis, threshold: timedelta) -> str | None:
    """Check the leaf certificate of a finished assessment against threshold."""
    if threshold <= timedelta(0):
        return None

    try:
        info = analysis.info(detailed=True, from_cache=True)
    except SSLLabsError as exc:
        LOG.warning("%s: can't fetch certificate details: %s", analysis.host, exc)
        return None

    if info.status is not AssessmentStatus.READY or not info.certs:
        return None

    return check_expiry(info.certs[0], threshold)
