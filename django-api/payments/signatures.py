"""Webhook authenticity checks for provider notifications.

The provider signs ``"<ts>.<url>.<raw body>"`` with HMAC-SHA256 and sends
``x-signature: ts=<unix>,v1=<hex>``.
"""

import hashlib
import hmac
import re
import typing as t

import structlog

logger = structlog.get_logger(__name__)

TS_PATTERN = re.compile(r"ts=(\d+)")
V1_PATTERN = re.compile(r"v1=([^,]+)")


def parse_signature_header(header: str | None) -> tuple[str, str] | None:
    """Return ``(timestamp, signature)`` or None when the header is unusable."""
    if not header:
        return None
    ts_match = TS_PATTERN.search(header)
    v1_match = V1_PATTERN.search(header)
    if not ts_match or not v1_match:
        return None
    return ts_match.group(1), v1_match.group(1).strip()


def compute_signature(secret: str, timestamp: str, url: str, raw_body: bytes) -> str:
    payload = f"{timestamp}.{url}.".encode("utf-8") + raw_body
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_signature(
    header: str | None,
    raw_body: bytes,
    candidate_urls: t.Iterable[str],
    secret: str,
) -> bool:
    """Check the signature against each candidate URL in order.

    The provider signs the URL it was configured with, which may differ from
    the URL this process sees behind a proxy.
    """
    if not secret:
        return False
    parsed = parse_signature_header(header)
    if parsed is None:
        logger.warning("webhook_signature_malformed")
        return False
    timestamp, signature = parsed
    for url in dict.fromkeys(candidate_urls):
        expected = compute_signature(secret, timestamp, url, raw_body)
        if hmac.compare_digest(expected, signature):
            return True
    return False
