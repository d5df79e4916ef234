"""
Signers for call transactions.

``RemoteSigner`` talks to a keys daemon that holds the private key
out-of-process; ``LocalSigner`` keeps an ed25519 key in memory and is meant
for development chains and tests.
"""
import hashlib
import logging
from typing import Any, Dict, Optional, Protocol

import requests
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from ._http import build_session, json_or_none, validate_url
from .exceptions import SigningError


class Signer(Protocol):
    """Protocol for transaction signers"""

    def sign(self, msg_hex: str, address: str) -> str:
        """Sign hex-encoded sign bytes for an address and return the hex signature"""
        ...

    def public_key(self, address: str) -> str:
        """Return the hex public key for an address"""
        ...


class RemoteSigner:
    """
    Client for the keys daemon ``/sign`` and ``/pub`` endpoints.

    Signing is never retried at this layer beyond transport-level retries.
    """

    def __init__(
        self,
        keys_url: str,
        retry_count: int = 3,
        timeout: int = 30,
        allow_insecure: bool = False,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.keys_url = validate_url("keys_url", keys_url, allow_insecure)
        self.timeout = timeout
        self.session = session or build_session(retry_count)
        self.logger = logger or logging.getLogger(__name__)

    def _post(self, path: str, body: Dict[str, Any]) -> str:
        url = f"{self.keys_url}{path}"
        try:
            response = self.session.post(url, json=body, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.error(f"Keys daemon request to {path} failed: {e}")
            raise SigningError(f"Request to {url} failed: {str(e)}") from e

        result = json_or_none(response)
        if not isinstance(result, dict):
            raise SigningError(f"Invalid JSON response from {url}")
        if result.get("Error"):
            raise SigningError(f"Keys daemon error from {url}: {result['Error']}")
        value = result.get("Response")
        if not isinstance(value, str) or not value:
            raise SigningError(f"Missing Response in reply from {url}")
        return value

    def sign(self, msg_hex: str, address: str) -> str:
        """
        Ask the keys daemon to sign.

        Args:
            msg_hex: Uppercase hex of the canonical sign bytes
            address: Address whose key should sign

        Returns:
            Signature string as returned by the daemon

        Raises:
            SigningError: If the daemon is unreachable or refuses
        """
        self.logger.debug(f"Requesting signature for {address} over {len(msg_hex) // 2} bytes")
        return self._post("/sign", {"msg": msg_hex, "addr": address})

    def public_key(self, address: str) -> str:
        """
        Fetch the public key for an address.

        Raises:
            SigningError: If the daemon is unreachable or has no key for the address
        """
        return self._post("/pub", {"addr": address})


class LocalSigner:
    """In-memory ed25519 signer with the same interface as RemoteSigner"""

    def __init__(self, private_key: Optional[Ed25519PrivateKey] = None):
        self._key = private_key or Ed25519PrivateKey.generate()
        self._pub = self._key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        # Address is the first 20 bytes of the public key hash
        self.address = hashlib.sha256(self._pub).digest()[:20].hex().upper()

    def sign(self, msg_hex: str, address: str) -> str:
        if address.upper() != self.address:
            raise SigningError(f"No key for address {address}")
        try:
            message = bytes.fromhex(msg_hex)
        except ValueError as e:
            raise SigningError(f"Message is not valid hex: {str(e)}") from e
        return self._key.sign(message).hex().upper()

    def public_key(self, address: str) -> str:
        if address.upper() != self.address:
            raise SigningError(f"No key for address {address}")
        return self._pub.hex().upper()
