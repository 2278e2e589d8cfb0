"""
Authorization state protection.

Uses Fernet symmetric encryption from the cryptography library.
The state is encrypted and authenticated before it leaves for Podbean
and decrypted when the browser comes back, so nothing is stored server-side.
"""

import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from podbean_auth.core.domain import AuthenticationProperties
from podbean_auth.core.exceptions import StateProtectionError

logger = logging.getLogger(__name__)

# Fifteen minutes is plenty for a consent screen
DEFAULT_STATE_MAX_AGE = 900


class FernetStateDataFormat:
    """
    Protects AuthenticationProperties as a Fernet token.

    Fernet tokens are URL-safe base64, carry a timestamp and are signed
    with HMAC-SHA256, so tampering and replay after ``max_age`` are both
    detected on unprotect.
    """

    def __init__(self, key: str | bytes, max_age: Optional[int] = DEFAULT_STATE_MAX_AGE):
        if isinstance(key, str):
            key = key.encode()
        try:
            # Fernet key should be 32 bytes, base64-encoded (URL-safe)
            self._fernet = Fernet(key)
        except Exception as e:
            raise ValueError(f"Invalid state encryption key: {e}")
        self.max_age = max_age

    def protect(self, properties: AuthenticationProperties) -> str:
        """
        Encrypt the properties into an opaque string.

        Raises:
            StateProtectionError: If encryption fails
        """
        try:
            payload = properties.model_dump_json().encode()
            result: str = self._fernet.encrypt(payload).decode()
            return result
        except Exception as e:
            logger.error(f"Failed to protect authorization state: {e}")
            raise StateProtectionError(f"Protect failed: {e}")

    def unprotect(self, protected: Optional[str]) -> Optional[AuthenticationProperties]:
        """
        Decrypt a string produced by ``protect``.

        Returns:
            The properties, or None if the value is missing, tampered with,
            expired or was issued under a different key.
        """
        if not protected:
            return None
        try:
            return self._unprotect(protected)
        except StateProtectionError as e:
            logger.warning(f"Rejected authorization state: {e}")
            return None

    def _unprotect(self, protected: str) -> AuthenticationProperties:
        try:
            payload = self._fernet.decrypt(protected.encode(), ttl=self.max_age)
        except InvalidToken:
            raise StateProtectionError("invalid token, expired or key mismatch")
        except (TypeError, ValueError) as e:
            raise StateProtectionError(f"malformed token: {e}")

        try:
            return AuthenticationProperties.model_validate_json(payload)
        except ValidationError as e:
            raise StateProtectionError(f"unexpected payload: {e.error_count()} errors")


def generate_state_key() -> str:
    """
    Generate a new Fernet key.

    The generated key can be used as STATE_ENCRYPTION_KEY.
    """
    key_bytes = Fernet.generate_key()
    result: str = key_bytes.decode()
    return result


def state_data_format_from_env() -> FernetStateDataFormat:
    """
    Build the state protector from STATE_ENCRYPTION_KEY and STATE_MAX_AGE.

    Raises:
        ValueError: If STATE_ENCRYPTION_KEY is not set or invalid
    """
    key = os.getenv("STATE_ENCRYPTION_KEY")
    if not key:
        raise ValueError(
            "STATE_ENCRYPTION_KEY environment variable must be set for state protection"
        )
    max_age = int(os.getenv("STATE_MAX_AGE", str(DEFAULT_STATE_MAX_AGE)))
    logger.info("Authorization state protection initialized")
    return FernetStateDataFormat(key, max_age=max_age)
