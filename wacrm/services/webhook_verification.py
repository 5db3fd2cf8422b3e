"""Webhook subscription handshake and payload signature checks."""

import hashlib
import hmac

from wacrm.core.exceptions import SignatureVerificationError, WebhookVerificationError

SUBSCRIBE_MODE = "subscribe"


def verify_subscription(
    mode: str | None,
    token: str | None,
    challenge: str | None,
    expected_token: str,
) -> str:
    """Answer the provider's subscription handshake.

    Returns the challenge to echo back verbatim.

    Raises:
        WebhookVerificationError: If the mode is not ``subscribe``, no token
            is configured, or the token does not match.
    """
    if mode != SUBSCRIBE_MODE:
        raise WebhookVerificationError("invalid hub.mode")
    if not expected_token:
        raise WebhookVerificationError("no verify token configured")
    if not hmac.compare_digest((token or "").encode(), expected_token.encode()):
        raise WebhookVerificationError("verify token mismatch")
    return challenge or ""


def verify_signature(payload_bytes: bytes, signature_header: str, app_secret: str) -> None:
    """Verify the X-Hub-Signature-256 header (``sha256=<hex>``).

    Raises:
        SignatureVerificationError: If the signature is missing or invalid.
    """
    if not signature_header:
        raise SignatureVerificationError("missing signature header")

    if not signature_header.startswith("sha256="):
        raise SignatureVerificationError("invalid signature format")

    expected_sig = signature_header[len("sha256="):]
    computed_sig = hmac.new(
        key=app_secret.encode("utf-8"),
        msg=payload_bytes,
        digestmod=hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(computed_sig, expected_sig):
        raise SignatureVerificationError("signature mismatch")
