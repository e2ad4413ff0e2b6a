"""
Input validation module for the artifact mirror.

Provides validation for tag names, timestamp parsing, and resolution of
request paths inside the local store.
"""

import logging
import os
import re
from datetime import datetime, timedelta, timezone

from .errors import ValidationError

logger = logging.getLogger(__name__)

# Tag timestamp layout used by the registry, e.g. "Mon, 02 Jan 2006 15:04:05 -0700".
# Names are always English, whatever the process locale.
_TIMESTAMP_PATTERN = re.compile(
    r"^(?P<weekday>[A-Z][a-z]{2}), (?P<day>\d{2}) (?P<month>[A-Z][a-z]{2}) (?P<year>\d{4}) "
    r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2}) (?P<sign>[+-])(?P<tzh>\d{2})(?P<tzm>\d{2})$"
)
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Ordering sentinel for tags whose timestamp could not be parsed
MIN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)

MAX_TAG_LENGTH = 128

_TAG_PATTERN = re.compile(r"^[a-zA-Z0-9_][a-zA-Z0-9._-]*$")


def validate_tag(tag: str) -> None:
    """
    Validate a tag name before it is used as a directory name.

    Args:
        tag: Tag name reported by the registry

    Raises:
        ValidationError: if the tag is not a safe single path segment

    Validation Rules:
        - Must be 1-128 characters
        - Only alphanumeric characters, dots (.), hyphens (-), and underscores (_)
        - Must not start with a dot or hyphen (rules out "." and "..")

    Examples:
        >>> validate_tag("v1.0.0")  # OK
        >>> validate_tag("../etc")  # Raises ValidationError
    """
    if not tag or len(tag) > MAX_TAG_LENGTH:
        logger.warning(f"Invalid tag length: {len(tag or '')}")
        raise ValidationError(f"Invalid tag: must be 1-{MAX_TAG_LENGTH} characters")

    if not _TAG_PATTERN.match(tag):
        logger.warning(f"Invalid tag format: {tag!r}")
        raise ValidationError(
            f"Invalid tag {tag!r}: only alphanumeric, dots, hyphens, and underscores allowed"
        )

    logger.debug(f"Tag validated: {tag}")


def parse_timestamp(value: str) -> datetime:
    """
    Parse a registry tag timestamp.

    Args:
        value: Text such as "Mon, 02 Jan 2006 15:04:05 -0700"

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: if value is not in that layout or names an impossible date

    Example:
        >>> parse_timestamp("Mon, 02 Jan 2006 15:04:05 -0700").isoformat()
        '2006-01-02T15:04:05-07:00'
    """
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    match = _TIMESTAMP_PATTERN.match(value.strip())
    if not match or match["weekday"] not in _WEEKDAYS or match["month"] not in _MONTHS:
        raise ValueError(f"timestamp {value!r} does not match 'Mon, 02 Jan 2006 15:04:05 -0700'")
    offset = timedelta(hours=int(match["tzh"]), minutes=int(match["tzm"]))
    if match["sign"] == "-":
        offset = -offset
    return datetime(
        int(match["year"]),
        _MONTHS.index(match["month"]) + 1,
        int(match["day"]),
        int(match["hour"]),
        int(match["minute"]),
        int(match["second"]),
        tzinfo=timezone(offset),
    )


def resolve_request_path(root: str, url_path: str) -> str:
    """
    Resolve a URL path to a filesystem path inside root.

    Args:
        root: Store root directory
        url_path: Path component of the request URL ("" or "/" for the root)

    Returns:
        Absolute, normalized path inside root

    Raises:
        ValidationError: if the resolved path escapes root
    """
    base = os.path.abspath(root)
    candidate = os.path.normpath(os.path.join(base, url_path.lstrip("/")))
    if candidate != base and not candidate.startswith(base + os.sep):
        logger.warning(f"Request path escapes store root: {url_path!r}")
        raise ValidationError(f"Invalid path: {url_path!r}")
    return candidate
