"""
Header contract enforcement for outbound messages.

Every message leaving the system must carry the metadata downstream consumers
need to trace and deduplicate it. Events missing that metadata cannot be
recovered on the consumer side, so they are rejected here, before any network
activity.
"""

from typing import Dict, Mapping

from opensettle.common.exceptions import InvalidArgumentError, MissingHeaderError

from .config import DEFAULT_SCHEMA_VERSION

TRACEPARENT = "traceparent"
CORRELATION_ID = "correlation-id"
IDEMPOTENCY_KEY = "idempotency-key"
SCHEMA_VERSION = "schema-version"

REQUIRED_HEADERS = (TRACEPARENT, CORRELATION_ID, IDEMPOTENCY_KEY)


def _is_blank(value: str) -> bool:
    return not value or not value.strip()


def is_utf8_encodable(value: str) -> bool:
    """False for text holding lone surrogates, which cannot go on the wire."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def normalize_headers(
    headers: Mapping[str, str],
    default_schema_version: str = DEFAULT_SCHEMA_VERSION,
) -> Dict[str, str]:
    """
    Validate and normalize message headers.

    Header names are matched case-insensitively and returned lower-cased; values
    are returned exactly as given. A blank ``schema-version`` is replaced by the
    default instead of failing.

    Args:
        headers: Header name to value mapping, may be empty
        default_schema_version: Value used when ``schema-version`` is blank

    Returns:
        New dict with lower-cased names and a populated ``schema-version``

    Raises:
        MissingHeaderError: A required header is absent or blank
        InvalidArgumentError: A header name or value is not UTF-8 encodable text
    """
    normalized: Dict[str, str] = {}
    for name, value in headers.items():
        if not isinstance(name, str) or not isinstance(value, str):
            raise InvalidArgumentError("headers", f"Header {name!r} must map a string name to a string value")
        if not is_utf8_encodable(name) or not is_utf8_encodable(value):
            raise InvalidArgumentError("headers", f"Header {name!r} is not valid UTF-8 text")
        normalized[name.lower()] = value

    for name in REQUIRED_HEADERS:
        if _is_blank(normalized.get(name, "")):
            raise MissingHeaderError(name)

    if _is_blank(normalized.get(SCHEMA_VERSION, "")):
        normalized[SCHEMA_VERSION] = default_schema_version

    return normalized
