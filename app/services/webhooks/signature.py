import hashlib
import hmac
import time
from typing import Callable, List, Optional, Tuple

import structlog

from app.exceptions import InvalidSignatureError

logger = structlog.getLogger(__name__)


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed_payload = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()


def parse_signature_header(header: str) -> Tuple[Optional[int], List[str]]:
    """``t=<unix>,v1=<hex>[,v1=<hex>...]`` -> (timestamp, v1 signatures)."""
    timestamp = None
    signatures = []
    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


class StripeSignatureVerifier:
    """Verifies the ``Stripe-Signature`` header over the raw, unparsed request body."""

    def __init__(self, secret: str, tolerance: int = 300, clock: Callable[[], float] = time.time):
        self.secret = secret
        self.tolerance = tolerance
        self._clock = clock

    def verify(self, payload: bytes, header: Optional[str]) -> int:
        if not header:
            raise InvalidSignatureError("Missing signature header")
        timestamp, signatures = parse_signature_header(header)
        if timestamp is None or not signatures:
            raise InvalidSignatureError("Malformed signature header")
        if self.tolerance and abs(self._clock() - timestamp) > self.tolerance:
            logger.warning("Webhook timestamp outside tolerance", timestamp=timestamp)
            raise InvalidSignatureError("Timestamp outside the tolerance zone")
        expected = compute_signature(payload, self.secret, timestamp)
        if not any(hmac.compare_digest(expected, signature) for signature in signatures):
            logger.error("Invalid signature", timestamp=timestamp)
            raise InvalidSignatureError()
        return timestamp
