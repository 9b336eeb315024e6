"""Transaction signers for authenticated ledger clients."""

import base64
from abc import ABC, abstractmethod
from typing import Optional, Union
import logging

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from cryptography.exceptions import InvalidSignature

from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Signer(ABC):
    """Abstract base class for signers."""

    @abstractmethod
    def sign(self, data: bytes) -> str:
        """Sign data and return base64-encoded signature."""
        pass

    @abstractmethod
    def verify(self, data: bytes, signature: str) -> bool:
        """Verify signature for data."""
        pass

    @abstractmethod
    def get_public_key_pem(self) -> str:
        """Get public key in PEM format."""
        pass

    @property
    def address(self) -> str:
        """Short account label derived from the public key."""
        digest = hashes.Hash(hashes.SHA256())
        digest.update(self.get_public_key_pem().encode("utf-8"))
        return "0x" + digest.finalize()[-20:].hex()


def _load_private_key(private_key: Union[str, bytes]):
    if isinstance(private_key, str):
        private_key = private_key.encode('utf-8')
    return serialization.load_pem_private_key(private_key, password=None)


def _public_pem(public_key) -> str:
    pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return pem.decode('utf-8')


def _private_pem(private_key) -> str:
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )
    return pem.decode('utf-8')


class ECDSASigner(Signer):
    """ECDSA signer over secp256k1 by default, the curve wallets use."""

    CURVES = {
        "secp256k1": ec.SECP256K1,
        "secp256r1": ec.SECP256R1,
    }

    def __init__(self, private_key: Optional[Union[str, bytes]] = None, curve: str = "secp256k1"):
        if curve not in self.CURVES:
            raise ConfigurationError(f"Unsupported curve: {curve}")

        if private_key:
            self._private_key = _load_private_key(private_key)
        else:
            self._private_key = ec.generate_private_key(self.CURVES[curve]())
        self._public_key = self._private_key.public_key()

    def sign(self, data: bytes) -> str:
        """Sign data using the ECDSA private key."""
        signature = self._private_key.sign(data, ec.ECDSA(hashes.SHA256()))
        return base64.b64encode(signature).decode('utf-8')

    def verify(self, data: bytes, signature: str) -> bool:
        """Verify an ECDSA signature."""
        try:
            self._public_key.verify(base64.b64decode(signature), data, ec.ECDSA(hashes.SHA256()))
            return True
        except (InvalidSignature, ValueError):
            return False

    def get_public_key_pem(self) -> str:
        return _public_pem(self._public_key)

    def get_private_key_pem(self) -> str:
        return _private_pem(self._private_key)


class Ed25519Signer(Signer):
    """Ed25519 signature implementation."""

    def __init__(self, private_key: Optional[Union[str, bytes]] = None):
        if private_key:
            self._private_key = _load_private_key(private_key)
            if not isinstance(self._private_key, ed25519.Ed25519PrivateKey):
                raise ConfigurationError("Private key is not an Ed25519 key")
        else:
            self._private_key = ed25519.Ed25519PrivateKey.generate()
        self._public_key = self._private_key.public_key()

    def sign(self, data: bytes) -> str:
        """Sign data using Ed25519 private key."""
        signature = self._private_key.sign(data)
        return base64.b64encode(signature).decode('utf-8')

    def verify(self, data: bytes, signature: str) -> bool:
        """Verify Ed25519 signature."""
        try:
            self._public_key.verify(base64.b64decode(signature), data)
            return True
        except (InvalidSignature, ValueError):
            return False

    def get_public_key_pem(self) -> str:
        return _public_pem(self._public_key)

    def get_private_key_pem(self) -> str:
        return _private_pem(self._private_key)


def create_signer(algorithm: str = "ED25519", **kwargs) -> Signer:
    """Factory function to create a signer."""
    algorithm = algorithm.upper()

    if algorithm == "ED25519":
        return Ed25519Signer(**kwargs)
    elif algorithm == "ECDSA":
        return ECDSASigner(**kwargs)
    else:
        raise ConfigurationError(f"Unsupported algorithm: {algorithm}")
