"""
Hashing of observer PINs and NGO admin passwords.

Stored credentials are compared against get_hash(clear_text), so the
selected implementation must match how the credentials were written:
- ClearText: credentials are stored as typed (local development, tests)
- Hash: base64(SHA-256(UTF-16LE(clear_text + salt)))
"""

import hashlib
import hmac
from base64 import b64encode
from typing import Optional, Protocol

import structlog

from api.src.config import CLEAR_TEXT_HASH, HashOptions

logger = structlog.get_logger(__name__)


class HashService(Protocol):
    """Turns a clear text secret into its stored representation."""

    def get_hash(self, clear_string: str) -> str:
        ...


class ClearTextService:
    """Stores secrets as they are typed."""

    def get_hash(self, clear_string: str) -> str:
        return clear_string


class Sha256HashService:
    """Salted SHA-256 hashing."""

    def __init__(self, options: HashOptions):
        """
        Initialize hash service.

        Args:
            options: Hash options providing the salt
        """
        self.salt = options.salt

    def get_hash(self, clear_string: str) -> str:
        """
        Hash a secret.

        Args:
            clear_string: Plain text secret

        Returns:
            Base64-encoded SHA-256 digest
        """
        data = (clear_string + self.salt).encode("utf-16-le")
        return b64encode(hashlib.sha256(data).digest()).decode()


def verify_hash(hash_service: HashService, clear_string: str, stored_hash: Optional[str]) -> bool:
    """
    Check a clear text secret against its stored representation.

    Args:
        hash_service: Hash service the secret was stored with
        clear_string: Secret as typed by the user
        stored_hash: Stored credential

    Returns:
        True if they match, compared in constant time
    """
    if stored_hash is None:
        return False
    computed = hash_service.get_hash(clear_string)
    return hmac.compare_digest(computed.encode("utf-8"), stored_hash.encode("utf-8"))


def build_hash_service(options: HashOptions) -> HashService:
    """
    Select the hash service implementation.

    Any service type other than ClearText selects salted SHA-256.

    Args:
        options: Hash options

    Returns:
        Hash service instance
    """
    if options.service_type == CLEAR_TEXT_HASH:
        service = ClearTextService()
    else:
        service = Sha256HashService(options)

    logger.info("hash_service_selected", implementation=type(service).__name__)
    return service
