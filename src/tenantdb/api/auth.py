"""API key authentication."""

import logging
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from tenantdb.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


@dataclass
class ApiKeyRecord:
    user_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_used: Optional[datetime] = None


class ApiKeyRegistry:
    """In-process mapping of API key to user id."""

    def __init__(self) -> None:
        self._keys: dict[str, ApiKeyRecord] = {}
        self._lock = threading.Lock()

    def register(self, api_key: str, user_id: str) -> str:
        with self._lock:
            self._keys[api_key] = ApiKeyRecord(user_id=user_id)
        return api_key

    def generate(self, user_id: str) -> str:
        """Create and register a random 64-hex-character key."""
        return self.register(secrets.token_hex(32), user_id)

    def validate(self, api_key: Optional[str]) -> Optional[str]:
        """Return the user id for api_key, or None."""
        if not api_key:
            return None
        with self._lock:
            record = self._keys.get(api_key)
            if record is None:
                return None
            record.last_used = datetime.now(timezone.utc)
            return record.user_id

    def authenticate(self, api_key: Optional[str]) -> str:
        """Return the user id for api_key or raise AuthenticationError."""
        if not api_key:
            raise AuthenticationError(
                "Authentication required",
                f"Please provide an API key in the {API_KEY_HEADER} header",
            )
        user_id = self.validate(api_key)
        if user_id is None:
            raise AuthenticationError(
                "Invalid API key", "The provided API key is invalid or expired"
            )
        return user_id


def build_registry(api_key: Optional[str] = None, user_id: str = "admin") -> ApiKeyRegistry:
    """Registry holding the configured key, or a generated one if none is set."""
    registry = ApiKeyRegistry()
    if api_key:
        registry.register(api_key, user_id)
    else:
        generated = registry.generate(user_id)
        logger.warning(
            "No API key configured; generated one for '%s': %s", user_id, generated
        )
    return registry
