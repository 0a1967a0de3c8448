import hmac
import hashlib
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from fastapi import Depends, Request

from slacktodo.capture import capture_raw_body
from slacktodo.errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Slack-Signature"
TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_VERSION = "v0"
DEFAULT_REPLAY_WINDOW = 300


class RejectReason(str, Enum):
    MISSING_HEADERS = "MissingHeaders"
    SECRET_NOT_CONFIGURED = "SecretNotConfigured"
    STALE_TIMESTAMP = "StaleTimestamp"
    SIGNATURE_MISMATCH = "SignatureMismatch"


@dataclass(frozen=True)
class VerificationResult:
    verified: bool
    reason: Optional[RejectReason] = None

    @classmethod
    def ok(cls) -> "VerificationResult":
        return cls(verified=True)

    @classmethod
    def rejected(cls, reason: RejectReason) -> "VerificationResult":
        return cls(verified=False, reason=reason)


@dataclass(frozen=True)
class SignedRequest:
    raw_body: bytes
    timestamp: Optional[str]
    signature: Optional[str]


class SlackSignatureVerifier:
    """
    Verifies Slack's v0 request signatures.

    The signature is HMAC-SHA256 over "v0:<timestamp>:<raw body>" keyed with
    the app's signing secret, sent as "v0=<hex digest>". Requests whose
    timestamp is more than `replay_window` seconds away from the local clock
    are rejected before any HMAC is computed.
    """

    def __init__(self, signing_secret: Optional[str], replay_window: int = DEFAULT_REPLAY_WINDOW,
                 clock: Callable[[], float] = time.time):
        self._secret = signing_secret.encode("utf-8") if signing_secret else None
        self.replay_window = replay_window
        self._clock = clock

    @property
    def configured(self) -> bool:
        return self._secret is not None

    def compute_signature(self, timestamp: str, raw_body: bytes) -> str:
        if self._secret is None:
            raise ConfigurationError("Slack signing secret is not configured")
        # Base string is built from the raw bytes, never a decoded/re-encoded body
        base = f"{SIGNATURE_VERSION}:{timestamp}:".encode("utf-8") + raw_body
        digest = hmac.new(key=self._secret, msg=base, digestmod=hashlib.sha256).hexdigest()
        return f"{SIGNATURE_VERSION}={digest}"

    def is_fresh(self, timestamp: str) -> bool:
        try:
            sent_at = int(timestamp)
        except (TypeError, ValueError):
            return False
        return abs(int(self._clock()) - sent_at) <= self.replay_window

    def verify(self, request: SignedRequest) -> VerificationResult:
        if self._secret is None:
            return VerificationResult.rejected(RejectReason.SECRET_NOT_CONFIGURED)
        if not request.signature or not request.timestamp:
            return VerificationResult.rejected(RejectReason.MISSING_HEADERS)
        if not self.is_fresh(request.timestamp):
            return VerificationResult.rejected(RejectReason.STALE_TIMESTAMP)

        expected = self.compute_signature(request.timestamp, request.raw_body)
        # compare_digest does not exit early on the first differing byte
        if not hmac.compare_digest(expected.encode("utf-8"), request.signature.encode("utf-8")):
            return VerificationResult.rejected(RejectReason.SIGNATURE_MISMATCH)
        return VerificationResult.ok()


async def verify_slack_request(request: Request, raw_body: bytes = Depends(capture_raw_body)) -> bytes:
    """
    FastAPI dependency gating every slash-command route.

    Runs on the fully captured body and returns it once the signature checks
    out. Rejections raise, and the app's exception handlers turn them into a
    500 (misconfiguration) or one generic 401.
    """
    verifier: SlackSignatureVerifier = request.app.state.verifier
    result = verifier.verify(SignedRequest(
        raw_body=raw_body,
        timestamp=request.headers.get(TIMESTAMP_HEADER),
        signature=request.headers.get(SIGNATURE_HEADER),
    ))
    if result.verified:
        return raw_body

    if result.reason is RejectReason.SECRET_NOT_CONFIGURED:
        logger.error("SLACK_SIGNING_SECRET is not configured; rejecting %s", request.url.path)
        raise ConfigurationError("Slack signing secret is not configured")

    logger.warning("Rejected Slack request to %s: %s", request.url.path, result.reason.value)
    raise AuthenticationError(result.reason)
