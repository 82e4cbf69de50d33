"""
app/core/security.py

Purpose: Webhook and admin request verification

- Messenger subscription handshake (hub.verify_token)
- X-Hub-Signature-256 check over the raw request body
- Shared admin key for payment admin routes
"""

import hashlib
import hmac
from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_PREFIX = "sha256="


def verify_challenge(mode: Optional[str], token: Optional[str]) -> bool:
    """
    True when Messenger's subscription handshake carries our verify token.
    """
    if mode != "subscribe" or not token:
        return False
    if not settings.VERIFY_TOKEN:
        logger.error("VERIFY_TOKEN is not configured; webhook handshake refused")
        return False
    return hmac.compare_digest(token, settings.VERIFY_TOKEN)


def compute_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, signature_header: Optional[str]) -> bool:
    """
    Checks X-Hub-Signature-256 against the app secret.

    Without a configured FB_APP_SECRET the check is skipped (development only;
    production validation requires the secret).

    Args:
        body: Raw request body, exactly as received
        signature_header: Value of X-Hub-Signature-256 ("sha256=<hex>")

    Returns:
        True if the request may be processed
    """
    if not settings.FB_APP_SECRET:
        logger.debug("FB_APP_SECRET not set, skipping signature check")
        return True

    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        logger.error("No signature found in webhook request")
        return False

    expected = compute_signature(body, settings.FB_APP_SECRET)
    if not hmac.compare_digest(expected, signature_header):
        logger.error("Invalid signature in webhook request")
        return False

    return True


def verify_admin_key(provided: Optional[str]) -> bool:
    if not settings.ADMIN_API_KEY:
        return True
    return bool(provided) and hmac.compare_digest(provided, settings.ADMIN_API_KEY)
