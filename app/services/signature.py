"""Telnyx webhook signature verification (Ed25519).

Telnyx signs `"{timestamp}|{raw_body}"` with its account key and sends the
base64 signature and the Unix timestamp in the `telnyx-signature-ed25519`
and `telnyx-timestamp` headers.
"""

import base64
import binascii
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("telnyx-signature-ed25519", "signature")
TIMESTAMP_HEADERS = ("telnyx-timestamp", "timestamp")


def verify(raw_body: bytes, signature_b64: str, timestamp: str, public_key: bytes) -> bool:
    """Verify an Ed25519 webhook signature.

    Args:
        raw_body: Request body exactly as received
        signature_b64: Base64 signature from the signature header
        timestamp: Unix seconds from the timestamp header
        public_key: Raw 32-byte Ed25519 public key

    Returns:
        True only if the signature is valid. Never raises.
    """
    try:
        signature = base64.b64decode(signature_b64, validate=True)
        key = Ed25519PublicKey.from_public_bytes(public_key)
        key.verify(signature, timestamp.encode("utf-8") + b"|" + raw_body)
        return True
    except (InvalidSignature, binascii.Error, ValueError, TypeError, AttributeError):
        return False


def decode_public_key(public_key_b64: str) -> bytes | None:
    """Decode the base64 public key from configuration, or None if unusable."""
    if not public_key_b64:
        return None
    try:
        key = base64.b64decode(public_key_b64, validate=True)
    except (binascii.Error, ValueError):
        return None
    return key if len(key) == 32 else None


def _first_header(headers: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in names:
        value = lowered.get(name)
        if value:
            return value
    return None


@dataclass(frozen=True)
class SignatureCheck:
    """Outcome of checking a request."""

    accepted: bool
    verified: bool
    reason: str | None = None
    status_code: int = 401


class WebhookSignatureVerifier:
    """Checks inbound requests against the provider's public key.

    With `strict=False` failures are logged and the request is let through.
    That mode exists for local debugging only.
    """

    def __init__(
        self,
        public_key_b64: str,
        strict: bool = True,
        tolerance_seconds: int = 300,
    ):
        self.public_key = decode_public_key(public_key_b64)
        self.strict = strict
        self.tolerance_seconds = tolerance_seconds

        if public_key_b64 and self.public_key is None:
            logger.error("❌ TELNYX_PUBLIC_KEY is not a valid base64 Ed25519 key")
        if not strict:
            logger.warning("⚠️  Webhook signature verification is NOT strict - debug only")

    def _reject(self, reason: str, status_code: int = 401) -> SignatureCheck:
        if self.strict:
            logger.warning(f"Rejecting webhook: {reason}")
            return SignatureCheck(accepted=False, verified=False, reason=reason, status_code=status_code)
        logger.warning(f"Webhook signature check failed ({reason}), continuing (non-strict mode)")
        return SignatureCheck(accepted=True, verified=False, reason=reason)

    def check(
        self,
        raw_body: bytes,
        headers: Mapping[str, str],
        now: float | None = None,
    ) -> SignatureCheck:
        """Check signature headers for a raw request body."""
        if self.public_key is None:
            return self._reject("Signature verification not configured", status_code=500)

        signature = _first_header(headers, SIGNATURE_HEADERS)
        timestamp = _first_header(headers, TIMESTAMP_HEADERS)
        if not signature or not timestamp:
            return self._reject("Missing signature headers")

        try:
            sent_at = int(timestamp)
        except ValueError:
            return self._reject("Malformed timestamp")

        current = time.time() if now is None else now
        if abs(current - sent_at) > self.tolerance_seconds:
            return self._reject("Timestamp outside tolerance")

        if not verify(raw_body, signature, timestamp, self.public_key):
            return self._reject("Invalid signature")

        return SignatureCheck(accepted=True, verified=True)
