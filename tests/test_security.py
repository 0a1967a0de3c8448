"""
Signature verification tests
============================
Slack v0 signatures: header checks, replay window, HMAC construction and the
constant-time comparison.

Usage:
    python -m pytest tests/test_security.py -v
"""
import hashlib
import hmac
import os
import sys
import unittest
from unittest import mock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from slacktodo.security import (
    RejectReason, SignedRequest, SlackSignatureVerifier, VerificationResult,
)
from slacktodo.errors import ConfigurationError

NOW = 1700000000
BODY = b"text=hi&user_id=U1"


def make_verifier(secret="abc", now=NOW, window=300):
    return SlackSignatureVerifier(secret, replay_window=window, clock=lambda: now)


def reference_signature(secret: bytes, timestamp: str, body: bytes) -> str:
    base = b"v0:" + timestamp.encode() + b":" + body
    return "v0=" + hmac.new(secret, base, hashlib.sha256).hexdigest()


class TestComputeSignature(unittest.TestCase):

    def test_known_vector(self):
        verifier = make_verifier()
        self.assertEqual(
            verifier.compute_signature("1700000000", BODY),
            reference_signature(b"abc", "1700000000", BODY),
        )

    def test_lowercase_hex_with_prefix(self):
        sig = make_verifier().compute_signature("1700000000", BODY)
        self.assertTrue(sig.startswith("v0="))
        digest = sig[3:]
        self.assertEqual(len(digest), 64)
        self.assertEqual(digest, digest.lower())

    def test_deterministic(self):
        verifier = make_verifier()
        self.assertEqual(
            verifier.compute_signature("1700000000", BODY),
            verifier.compute_signature("1700000000", BODY),
        )

    def test_single_byte_changes_signature(self):
        verifier = make_verifier()
        self.assertNotEqual(
            verifier.compute_signature("1700000000", b"text=hi&user_id=U1"),
            verifier.compute_signature("1700000000", b"text=hi&user_id=U2"),
        )

    def test_raw_bytes_are_signed_verbatim(self):
        """Percent-encoded and non-UTF-8 bytes are hashed exactly as received."""
        body = b"text=caf%C3%A9+\xff&user_id=U1"
        self.assertEqual(
            make_verifier().compute_signature("1700000000", body),
            reference_signature(b"abc", "1700000000", body),
        )

    def test_requires_secret(self):
        with self.assertRaises(ConfigurationError):
            make_verifier(secret=None).compute_signature("1700000000", BODY)


class TestVerify(unittest.TestCase):

    def signed(self, timestamp="1700000000", body=BODY, signature=None):
        if signature is None:
            signature = reference_signature(b"abc", timestamp, body)
        return SignedRequest(raw_body=body, timestamp=timestamp, signature=signature)

    def test_valid_signature_is_verified(self):
        self.assertEqual(make_verifier().verify(self.signed()), VerificationResult.ok())

    def test_missing_secret(self):
        for secret in (None, ""):
            result = make_verifier(secret=secret).verify(self.signed())
            self.assertFalse(result.verified)
            self.assertEqual(result.reason, RejectReason.SECRET_NOT_CONFIGURED)

    def test_missing_headers(self):
        verifier = make_verifier()
        cases = [
            SignedRequest(BODY, timestamp=None, signature="v0=abc"),
            SignedRequest(BODY, timestamp="1700000000", signature=None),
            SignedRequest(BODY, timestamp="", signature=""),
            SignedRequest(BODY, timestamp=None, signature=None),
        ]
        for request in cases:
            with self.subTest(request=request):
                self.assertEqual(verifier.verify(request).reason, RejectReason.MISSING_HEADERS)

    def test_stale_timestamp_rejected_even_with_valid_signature(self):
        verifier = make_verifier(now=NOW + 301)
        result = verifier.verify(self.signed())
        self.assertEqual(result.reason, RejectReason.STALE_TIMESTAMP)

    def test_future_timestamp_rejected(self):
        verifier = make_verifier(now=NOW - 301)
        self.assertEqual(verifier.verify(self.signed()).reason, RejectReason.STALE_TIMESTAMP)

    def test_window_boundary_is_inclusive(self):
        self.assertTrue(make_verifier(now=NOW + 300).verify(self.signed()).verified)
        self.assertTrue(make_verifier(now=NOW - 300).verify(self.signed()).verified)

    def test_non_integer_timestamp(self):
        result = make_verifier().verify(self.signed(timestamp="soon"))
        self.assertEqual(result.reason, RejectReason.STALE_TIMESTAMP)

    def test_signature_mismatch(self):
        result = make_verifier().verify(self.signed(signature="v0=" + "0" * 64))
        self.assertEqual(result.reason, RejectReason.SIGNATURE_MISMATCH)

    def test_wrong_length_signature(self):
        result = make_verifier().verify(self.signed(signature="v0=short"))
        self.assertEqual(result.reason, RejectReason.SIGNATURE_MISMATCH)

    def test_non_ascii_signature_is_a_mismatch(self):
        result = make_verifier().verify(self.signed(signature="v0=ünïcode"))
        self.assertEqual(result.reason, RejectReason.SIGNATURE_MISMATCH)

    def test_wrong_secret(self):
        request = self.signed(signature=reference_signature(b"other", "1700000000", BODY))
        self.assertEqual(make_verifier().verify(request).reason, RejectReason.SIGNATURE_MISMATCH)

    def test_comparison_uses_compare_digest(self):
        """No early-exit comparison: both verified and rejected paths go through compare_digest."""
        verifier = make_verifier()
        with mock.patch("slacktodo.security.hmac.compare_digest", wraps=hmac.compare_digest) as cmp:
            verifier.verify(self.signed())
            verifier.verify(self.signed(signature="v0=" + "f" * 64))
        self.assertEqual(cmp.call_count, 2)
        for call in cmp.call_args_list:
            a, b = call.args
            self.assertIsInstance(a, bytes)
            self.assertIsInstance(b, bytes)

    def test_freshness_checked_before_hmac(self):
        verifier = make_verifier(now=NOW + 1000)
        with mock.patch.object(verifier, "compute_signature") as compute:
            verifier.verify(self.signed())
        compute.assert_not_called()


if __name__ == "__main__":
    unittest.main()
