"""Unit tests for Housing.com request signing."""

from __future__ import annotations

import hashlib
import hmac

from src.enquiry_crm.housing.signing import sign, sign_request_timestamp


class TestSign:
    def test_known_vector(self):
        """Matches the published HMAC-SHA256 test vector."""
        digest = sign("key", "The quick brown fox jumps over the lazy dog")
        assert digest == "f7bc83f430538424b13298e6aa6fb143ef4d59a14946175997479dbc2d1a3cd8"

    def test_deterministic(self):
        assert sign("secret", "1700000000") == sign("secret", "1700000000")

    def test_different_messages_differ(self):
        assert sign("secret", "1700000000") != sign("secret", "1700000001")

    def test_different_keys_differ(self):
        assert sign("secret-a", "1700000000") != sign("secret-b", "1700000000")

    def test_lowercase_hex_of_sha256_length(self):
        digest = sign("secret", "1700000000")
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)

    def test_empty_message(self):
        expected = hmac.new(b"secret", b"", hashlib.sha256).hexdigest()
        assert sign("secret", "") == expected


def test_sign_request_timestamp_signs_current_time():
    assert sign_request_timestamp("secret", "1700000000") == sign("secret", "1700000000")
