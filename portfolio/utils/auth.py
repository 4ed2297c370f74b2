"""
Password hashing and verification for CMS login and client galleries.

New hashes are always bcrypt. Unsalted SHA-256 hex digests written by the
previous backend are still accepted on verify so existing client galleries
keep working until their password is reset.
"""
import hashlib
import hmac
import logging
import re
from typing import Optional, Protocol

import bcrypt

from portfolio.config import settings

logger = logging.getLogger(__name__)

_SHA256_HEX = re.compile(r"^[0-9a-fA-F]{64}$")


class CredentialVerifier(Protocol):
    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, stored_hash: str) -> bool:
        ...


class BcryptVerifier:
    """Salted bcrypt hashes."""

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    def verify(self, password: str, stored_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode('utf-8'), stored_hash.encode('utf-8'))
        except ValueError:
            # Not a bcrypt hash
            return False


class LegacySha256Verifier:
    """Unsalted SHA-256 hex digests. Verify only; never used for new hashes."""

    def hash(self, password: str) -> str:
        return hashlib.sha256(password.encode('utf-8')).hexdigest()

    def verify(self, password: str, stored_hash: str) -> bool:
        return hmac.compare_digest(self.hash(password), stored_hash.lower())


class DefaultVerifier:
    """
    Hashes with bcrypt; verifies bcrypt hashes with bcrypt and 64-char hex
    digests with the legacy SHA-256 scheme.
    """

    def __init__(self):
        self.bcrypt = BcryptVerifier()
        self.legacy = LegacySha256Verifier()

    def hash(self, password: str) -> str:
        return self.bcrypt.hash(password)

    def verify(self, password: str, stored_hash: Optional[str]) -> bool:
        if not password or not stored_hash:
            return False
        if _SHA256_HEX.match(stored_hash):
            logger.warning("Verifying against a legacy SHA-256 password hash; reset it to upgrade to bcrypt")
            return self.legacy.verify(password, stored_hash)
        return self.bcrypt.verify(password, stored_hash)


default_verifier = DefaultVerifier()


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.
    Used for generating the admin hash and client gallery passwords.
    """
    return default_verifier.hash(password)


def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    return default_verifier.verify(password, hashed_password)


def verify_admin_password(password: str) -> bool:
    """
    Verify admin password against stored hash.

    Raises:
        ValueError: If ADMIN_PASSWORD_HASH is not configured
    """
    if not settings.ADMIN_PASSWORD_HASH:
        raise ValueError("ADMIN_PASSWORD_HASH not configured")

    return verify_password(password, settings.ADMIN_PASSWORD_HASH)
