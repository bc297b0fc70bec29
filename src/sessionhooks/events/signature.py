"""
Webhook Request Signing
=======================

HMAC-SHA256 over the raw request body, hex encoded and prefixed with the
algorithm name:

    X-Webhook-Signature: sha256=<hexdigest>

Receivers recompute the digest over the exact bytes they received and compare
in constant time.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Union

from loguru import logger


class WebhookSignature:
    """HMAC-SHA256 signature generation and verification for webhooks."""

    SIGNATURE_HEADER = "X-Webhook-Signature"
    ALGORITHM = "sha256"

    @classmethod
    def sign(cls, body: Union[bytes, str], secret: str) -> str:
        """
        Generate the signature header value for a raw body.

        Args:
            body: Exact bytes sent on the wire (str is UTF-8 encoded)
            secret: Shared secret configured on the subscription

        Returns:
            "sha256=<hexdigest>"
        """
        if isinstance(body, str):
            body = body.encode("utf-8")

        digest = hmac.new(
            secret.encode("utf-8"),
            body,
            getattr(hashlib, cls.ALGORITHM),
        ).hexdigest()

        return f"{cls.ALGORITHM}={digest}"

    @classmethod
    def verify(cls, body: Union[bytes, str], secret: str, signature_header: str) -> bool:
        """
        Verify a received signature header.

        Returns:
            True if the header matches the body and secret
        """
        try:
            algorithm, _ = signature_header.split("=", 1)
        except (ValueError, AttributeError) as e:
            logger.warning(f"[WebhookSignature] Malformed signature header: {e}")
            return False

        if algorithm != cls.ALGORITHM:
            return False

        expected = cls.sign(body, secret)
        return hmac.compare_digest(signature_header, expected)
