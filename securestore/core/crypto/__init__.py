"""
SecureStore Cryptographic Core
==============================

Encryption at rest and content fingerprints for managed files.

Components:
    1. AES-256-CBC: streaming file encryption with an IV prefix
    2. SHA-256: whole-file integrity witnesses

WARNING: This module handles key material. Keys are returned to the caller
         and must never be logged.
"""

from securestore.core.crypto.aes_cbc import AesCbcStreamCipher, DecryptionError
from securestore.core.crypto.digest import compute_file_hash, hashes_match

__all__ = [
    "AesCbcStreamCipher",
    "DecryptionError",
    "compute_file_hash",
    "hashes_match",
]
