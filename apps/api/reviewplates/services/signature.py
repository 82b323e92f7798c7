import base64
import hmac
from hashlib import sha256

from reviewplates.services.errors import ConfigurationError


def compute_shopify_hmac(raw_body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), raw_body, sha256).digest()
    return base64.b64encode(digest).decode()


def verify_shopify_hmac(raw_body: bytes, signature: str | None, secret: str | None) -> bool:
    """Check the X-Shopify-Hmac-Sha256 header against the exact request bytes.

    The body must be the bytes received on the wire: parsing and
    re-serializing it changes the digest.
    """
    if not secret:
        raise ConfigurationError("SHOPIFY_WEBHOOK_SECRET missing")
    if not signature:
        return False

    expected = compute_shopify_hmac(raw_body, secret)
    return hmac.compare_digest(expected.encode(), signature.strip().encode())
