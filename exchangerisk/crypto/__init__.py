"""Cryptographic components for ExchangeRisk."""

from .hashing import TransactionHasher
from .signatures import Signer, ECDSASigner, Ed25519Signer, create_signer
from .placeholder import PlaceholderEncryptor

__all__ = [
    'TransactionHasher',
    'Signer',
    'ECDSASigner',
    'Ed25519Signer',
    'create_signer',
    'PlaceholderEncryptor',
]
