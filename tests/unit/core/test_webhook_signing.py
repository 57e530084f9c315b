"""
Unit tests for webhook signature verification.
"""
import pytest

from cio.core.exceptions import WebhookVerificationError
from cio.core.signing import compute_signature, parse_signature_header, verify_signature

KEY = "checkr-signing-key"
BODY = b'{"type":"report.completed","data":{"object":{"id":"r1"}}}'


class TestVerifySignature:
    """Verify HMAC-SHA256 signatures over raw webhook bodies."""

    def test_accepts_matching_signature(self):
        signature = compute_signature(key=KEY, body=BODY)
        verify_signature(key=KEY, body=BODY, signature_header=signature)

    def test_accepts_sha256_prefix(self):
        signature = compute_signature(key=KEY, body=BODY)
        verify_signature(key=KEY, body=BODY, signature_header=f"sha256={signature}")

    def test_rejects_tampered_body(self):
        signature = compute_signature(key=KEY, body=BODY)
        with pytest.raises(WebhookVerificationError, match="mismatch"):
            verify_signature(key=KEY, body=BODY + b" ", signature_header=signature)

    def test_rejects_wrong_key(self):
        signature = compute_signature(key="other-key", body=BODY)
        with pytest.raises(WebhookVerificationError):
            verify_signature(key=KEY, body=BODY, signature_header=signature)

    def test_rejects_missing_header(self):
        with pytest.raises(WebhookVerificationError, match="Missing"):
            verify_signature(key=KEY, body=BODY, signature_header=None)

    def test_rejects_when_no_key_configured(self):
        """An empty signing key never verifies, even against its own digest."""
        signature = compute_signature(key="x", body=BODY)
        with pytest.raises(WebhookVerificationError, match="No signing key"):
            verify_signature(key="", body=BODY, signature_header=signature)


def test_parse_signature_header_rejects_non_hex():
    with pytest.raises(WebhookVerificationError, match="not valid hex"):
        parse_signature_header("sha256=not-hex")


def test_compute_signature_matches_known_digest():
    body = b"The quick brown fox jumps over the lazy dog"
    assert compute_signature(key="key", body=body) == (
        "f7bc83f430538424b13298e6aa6fb143ef4d59a14946175997479dbc2d1a3cd8"
    )
