"""Webhook signature utilities for Retell events."""

import base64
import hashlib
import hmac

from agentline.core.exceptions import SignatureVerificationError

RETELL_SIGNATURE_HEADER = "x-retell-signature"


def compute_signature(body: bytes, secret: str) -> str:
    """Compute the base64 HMAC-SHA256 signature of a raw request body.

    Args:
        body: Request body exactly as received
        secret: Shared signing key (the Retell API key)

    Returns:
        Base64-encoded digest
    """
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(body: bytes, signature: str | None, secret: str) -> None:
    """Verify a webhook signature over the raw body bytes.

    The body must not be parsed and re-serialized before this call: any
    byte-level difference changes the digest.

    Raises:
        SignatureVerificationError: If the signature is absent or does not match
    """
    if not signature:
        raise SignatureVerificationError("Missing webhook signature")
    if not secret:
        raise SignatureVerificationError("Webhook signing key is not configured")

    expected = compute_signature(body, secret)
    if not hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("utf-8")):
        raise SignatureVerificationError("Invalid webhook signature")
