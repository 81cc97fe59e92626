import hashlib
import hmac
from typing import Optional

from btcpay_relay.errors import InvalidSignatureError, MissingSignatureError

SIGNATURE_HEADER = "btcpay-sig"
SIGNATURE_PREFIX = "sha256="


def compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def signatures_match(provided: str, expected: str) -> bool:
    """Fixed-time comparison of two hex digests. Malformed hex never matches."""
    try:
        provided_bytes = bytes.fromhex(provided)
        expected_bytes = bytes.fromhex(expected)
    except ValueError:
        return False
    return hmac.compare_digest(provided_bytes, expected_bytes)


def verify_signature(payload: bytes, signature: Optional[str], secret: str) -> None:
    """Check ``signature`` against the HMAC-SHA256 of the raw ``payload`` bytes.

    Raises MissingSignatureError when no header was sent and
    InvalidSignatureError when it does not match.
    """
    if not signature:
        raise MissingSignatureError()

    signature = signature.strip()
    if signature.lower().startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX):]

    if not signatures_match(signature, compute_signature(payload, secret)):
        raise InvalidSignatureError()
