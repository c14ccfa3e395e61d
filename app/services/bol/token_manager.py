"""
In-memory access token cache for the Bol.com Retailer API.

Tokens are keyed by a fingerprint of the client credentials, so two
installations never share a token. Nothing is persisted.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

# Bol.com issues tokens valid for 299 seconds; stop using them a bit early
EXPIRY_BUFFER = timedelta(seconds=60)


class BolTokenCache:
    """
    Short-lived access token storage:
    - Key: SHA-256 fingerprint of client_id:client_secret
    - Value: access token plus its expiry, in memory only
    """

    # Class-level storage for access tokens (shared across instances)
    _access_tokens: Dict[str, Dict] = {}

    def __init__(self, ttl_seconds: int = 240):
        self.ttl_seconds = max(int(ttl_seconds or 0), 0)

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get_access_token(self, fingerprint: str) -> Optional[str]:
        """Get access token from memory if valid"""
        if not self.enabled:
            return None

        token_data = self._access_tokens.get(fingerprint)
        if not token_data:
            return None

        if datetime.now(timezone.utc) < token_data["expires_at"]:
            return token_data["access_token"]

        logger.debug("Cached Bol.com access token expired")
        self._access_tokens.pop(fingerprint, None)
        return None

    def save_access_token(self, fingerprint: str, access_token: str, expires_in: Optional[int] = None):
        """Save access token to memory only"""
        if not self.enabled:
            return

        lifetime = timedelta(seconds=self.ttl_seconds)
        if expires_in:
            lifetime = min(lifetime, timedelta(seconds=int(expires_in)) - EXPIRY_BUFFER)
        if lifetime.total_seconds() <= 0:
            return

        expires_at = datetime.now(timezone.utc) + lifetime
        self._access_tokens[fingerprint] = {
            "access_token": access_token,
            "expires_at": expires_at,
        }
        logger.debug(f"Cached Bol.com access token until {expires_at.isoformat()}")

    def evict(self, fingerprint: str):
        """Drop a token Bol.com no longer accepts"""
        if self._access_tokens.pop(fingerprint, None) is not None:
            logger.info("Evicted rejected Bol.com access token from memory")


def clear_all_tokens():
    """Clear all tokens from memory"""
    BolTokenCache._access_tokens.clear()
    logger.info("Cleared all Bol.com access tokens from memory")
