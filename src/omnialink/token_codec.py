"""Summary: Encoding helpers for provider secrets at rest.

Importance: Keeps access and refresh tokens out of the database in plaintext.
Alternatives: Use a secrets manager or a dedicated encryption library.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets


_NONCE_BYTES = 12


class SecretCodec:
    """Summary: Reversible encoder for OAuth tokens stored in SQLite.

    Importance: Each encoding uses a fresh nonce so equal tokens never share ciphertext.
    Alternatives: Store tokens raw and rely on filesystem permissions.
    """

    def __init__(self, secret: str) -> None:
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()

    def encode(self, plaintext: str | None) -> str | None:
        if plaintext is None:
            return None
        nonce = secrets.token_bytes(_NONCE_BYTES)
        raw = plaintext.encode("utf-8")
        masked = bytes(b ^ k for b, k in zip(raw, self._stream(nonce, len(raw))))
        return base64.urlsafe_b64encode(nonce + masked).decode("ascii")

    def decode(self, payload: str | None) -> str | None:
        if payload is None:
            return None
        blob = base64.urlsafe_b64decode(payload.encode("ascii"))
        nonce, masked = blob[:_NONCE_BYTES], blob[_NONCE_BYTES:]
        raw = bytes(b ^ k for b, k in zip(masked, self._stream(nonce, len(masked))))
        return raw.decode("utf-8")

    def _stream(self, nonce: bytes, length: int) -> bytes:
        """Summary: Derive an HMAC-SHA256 keystream for one nonce.

        Importance: Keeps the codec dependency-free and deterministic per nonce.
        Alternatives: Use AES-GCM from the cryptography package.
        """

        blocks: list[bytes] = []
        counter = 0
        while sum(len(block) for block in blocks) < length:
            message = nonce + counter.to_bytes(4, "big")
            blocks.append(hmac.new(self._key, message, hashlib.sha256).digest())
            counter += 1
        return b"".join(blocks)[:length]
