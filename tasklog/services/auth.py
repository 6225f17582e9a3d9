"""
Credential verification for the request handler.

The handler only depends on ``CredentialVerifier``; the static Basic
credential below is configured at process start and can be swapped for
any other scheme without touching the handler.
"""
import base64
import binascii
import logging
import secrets
from typing import Optional, Protocol

logger = logging.getLogger("tasklog.auth")


class CredentialVerifier(Protocol):
    def verify(self, header: Optional[str]) -> bool:
        """Return True if the Authorization header value carries a valid credential."""
        ...


class BasicAuthVerifier:
    """Checks ``Authorization: Basic <base64(user:password)>`` against one static pair."""

    def __init__(self, username: str, password: str):
        if not password:
            raise ValueError("BasicAuthVerifier requires a non-empty password")
        self.username = username
        self.password = password

    def verify(self, header: Optional[str]) -> bool:
        if not header:
            return False

        parts = header.split(" ", 1)
        if len(parts) != 2 or parts[0].lower() != "basic":
            return False

        try:
            decoded = base64.b64decode(parts[1].strip(), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.debug("Rejected malformed Basic credential")
            return False

        username, sep, password = decoded.partition(":")
        if not sep:
            return False

        # Both parts are always compared
        user_ok = secrets.compare_digest(username.encode(), self.username.encode())
        password_ok = secrets.compare_digest(password.encode(), self.password.encode())
        return user_ok and password_ok
