"""
AES-256-CBC Stream Encryption
=============================

Encrypts file content at rest with a fresh random key and IV per write.

File Format:
    [IV: 16 bytes][ciphertext: PKCS7-padded AES-256-CBC stream]

The IV travels in the clear at the start of the file. The key does not:
the caller must keep it (the store records it in the file's metadata entry).

Security Properties:
    - 256-bit key, 128-bit IV (one cipher block)
    - New (key, IV) pair generated for every write, never reused
    - Streaming: content is pushed through the cipher in fixed-size chunks

WARNING:
    - CBC carries no authentication tag. A wrong key or tampered ciphertext
      either fails at the padding layer or yields garbage. Integrity is the
      job of the content digest layered on top.
"""

from __future__ import annotations

import secrets
from pathlib import Path
from typing import BinaryIO, Final

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

AES_KEY_SIZE: Final[int] = 32  # 256 bits
AES_BLOCK_SIZE: Final[int] = 16  # 128 bits
AES_IV_SIZE: Final[int] = AES_BLOCK_SIZE
DEFAULT_CHUNK_SIZE: Final[int] = 64 * 1024

_WRITE_MODES: Final[frozenset[str]] = frozenset({"xb", "wb"})


class DecryptionError(Exception):
    """
    Raised when stored content can not be decrypted.

    Deliberately generic: wrong key, truncated file and tampered ciphertext
    all surface the same way.
    """
    pass


class AesCbcStreamCipher:
    """
    Streaming AES-256-CBC codec writing ``IV || ciphertext`` files.

    Usage:
        cipher = AesCbcStreamCipher()

        key = cipher.encrypt_to_file(path, b"secret notes", mode="xb")
        plaintext = cipher.decrypt_from_file(path, key)
    """

    __slots__ = ("_chunk_size",)

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        self._chunk_size = chunk_size

    @staticmethod
    def generate_key() -> bytes:
        """Generate a random AES-256 key from the OS CSPRNG."""
        return secrets.token_bytes(AES_KEY_SIZE)

    @staticmethod
    def generate_iv() -> bytes:
        """Generate a random one-block initialization vector."""
        return secrets.token_bytes(AES_IV_SIZE)

    def encrypt_to_file(self, path: Path | str, plaintext: bytes, mode: str = "wb") -> bytes:
        """
        Encrypt plaintext into the file at ``path``.

        Args:
            path: Destination file
            plaintext: Content to encrypt (may be empty)
            mode: ``"xb"`` to require a new file, ``"wb"`` to overwrite

        Returns:
            The freshly generated key; it is not recoverable from the file.

        Raises:
            ValueError: If mode is not a whole-file write mode
            FileExistsError: If mode is ``"xb"`` and the file exists
        """
        if mode not in _WRITE_MODES:
            # Appending a second IV and stream would leave unreadable ciphertext.
            raise ValueError(f"Unsupported write mode for encrypted files: {mode!r}")

        key = self.generate_key()
        iv = self.generate_iv()

        with open(path, mode) as stream:
            stream.write(iv)
            self._encrypt_stream(stream, plaintext, key, iv)

        return key

    def decrypt_from_file(self, path: Path | str, key: bytes) -> bytes:
        """
        Decrypt the file at ``path`` with ``key``.

        Raises:
            DecryptionError: Wrong key, truncated or malformed content
            FileNotFoundError: If the file does not exist
        """
        if len(key) != AES_KEY_SIZE:
            raise DecryptionError(f"Key must be exactly {AES_KEY_SIZE} bytes")

        with open(path, "rb") as stream:
            iv = stream.read(AES_IV_SIZE)
            if len(iv) != AES_IV_SIZE:
                raise DecryptionError("File too short to hold an initialization vector")
            return self._decrypt_stream(stream, key, iv)

    def _encrypt_stream(self, stream: BinaryIO, plaintext: bytes, key: bytes, iv: bytes) -> None:
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        padder = padding.PKCS7(algorithms.AES.block_size).padder()

        view = memoryview(plaintext)
        for offset in range(0, len(view), self._chunk_size):
            chunk = padder.update(view[offset:offset + self._chunk_size])
            stream.write(encryptor.update(chunk))

        stream.write(encryptor.update(padder.finalize()))
        stream.write(encryptor.finalize())

    def _decrypt_stream(self, stream: BinaryIO, key: bytes, iv: bytes) -> bytes:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        output = bytearray()

        try:
            while chunk := stream.read(self._chunk_size):
                output += unpadder.update(decryptor.update(chunk))
            output += unpadder.update(decryptor.finalize())
            output += unpadder.finalize()
        except ValueError as e:
            # Raised for partial final blocks and invalid padding alike.
            raise DecryptionError("Stored content could not be decrypted") from e

        return bytes(output)
