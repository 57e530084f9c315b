"""
HMAC-SHA256 verification for inbound webhooks.

Providers sign the raw request body with a shared key and send the hex digest
in a header (Checkr: ``X-Checkr-Signature``, optionally prefixed ``sha256=``).
Verification recomputes the digest over the exact bytes received and compares
in constant time.
"""

import hmac
import hashlib

from cio.core.exceptions import WebhookVerificationError


def compute_signature(*, key: str | bytes, body: bytes) -> str:
    """Return the hex HMAC-SHA256 of ``body`` keyed by ``key``."""
    if isinstance(key, str):
        key = key.encode('utf-8')
    return hmac.new(key, body, hashlib.sha256).hexdigest()


def parse_signature_header(value: str | None) -> bytes:
    """
    Decode a hex signature header.

    Accepts ``<hex>``, ``sha256<hex>`` and ``sha256=<hex>``.

    Raises:
        WebhookVerificationError: If the header is missing or not hex
    """
    if not value:
        raise WebhookVerificationError("Missing signature header")

    candidate = value.strip()
    if candidate.startswith("sha256"):
        candidate = candidate[len("sha256"):].lstrip("=")

    try:
        return bytes.fromhex(candidate)
    except ValueError as e:
        raise WebhookVerificationError("Signature header is not valid hex") from e


def verify_signature(*, key: str | bytes, body: bytes, signature_header: str | None) -> None:
    """
    Verify a webhook body against its signature header.

    Raises:
        WebhookVerificationError: If the key is empty or the signature does not match
    """
    if not key:
        raise WebhookVerificationError("No signing key configured")

    expected = bytes.fromhex(compute_signature(key=key, body=body))
    provided = parse_signature_header(signature_header)

    if not hmac.compare_digest(expected, provided):
        raise WebhookVerificationError("Signature mismatch")
