from __future__ import annotations

import logging
import os

from tradebook.contexts.encryption.application.ports.dek_cache import DekCache
from tradebook.contexts.encryption.application.ports.key_service import KeyService
from tradebook.contexts.encryption.domain.errors import KeyServiceError

log = logging.getLogger(__name__)

DEK_LENGTH = 32


class EnvelopeKeyManager:
    """
    EnvelopeKeyManager — wraps/unwraps data encryption keys through a key service.

    Unwrap results are cached by exact wrapped bytes; wrapping is never cached. Concurrent
    misses for the same key may each reach the key service.

    Related:
      - src/tradebook/contexts/encryption/application/ports/key_service.py
      - src/tradebook/contexts/encryption/adapters/outbound/cache/expiring_dek_cache.py
      - src/tradebook/contexts/encryption/adapters/outbound/crypto/cipher_resolvers.py
    """

    def __init__(self, *, key_service: KeyService, key_name: str, cache: DekCache) -> None:
        """
        Initialize key manager.

        Args:
            key_service: Remote key-management adapter.
            key_name: Master key identifier passed to every key-service call.
            cache: Decrypted DEK cache.
        Returns:
            None.
        Assumptions:
            Collaborators are thread-safe.
        Raises:
            ValueError: If a collaborator is missing or key name is blank.
        Side Effects:
            None.
        """
        if key_service is None:  # type: ignore[truthy-bool]
            raise ValueError("EnvelopeKeyManager requires key_service")
        if cache is None:  # type: ignore[truthy-bool]
            raise ValueError("EnvelopeKeyManager requires cache")
        normalized_key_name = key_name.strip()
        if not normalized_key_name:
            raise ValueError("EnvelopeKeyManager requires non-empty key_name")
        self._key_service = key_service
        self._key_name = normalized_key_name
        self._cache = cache

    def encrypt_dek(self, plaintext: bytes) -> bytes:
        """
        Wrap a plaintext DEK; always one key-service call.

        Args:
            plaintext: Raw DEK.
        Returns:
            bytes: Wrapped DEK.
        Assumptions:
            Result is persisted by caller.
        Raises:
            KeyServiceError: On key-service failure.
        Side Effects:
            One remote call.
        """
        try:
            return self._key_service.encrypt(key_name=self._key_name, plaintext=bytes(plaintext))
        except KeyServiceError:
            log.warning("dek wrap failed: key_name=%s", self._key_name)
            raise

    def decrypt_dek(self, ciphertext: bytes) -> bytes:
        """
        Unwrap a DEK, serving repeated requests from cache.

        Args:
            ciphertext: Wrapped DEK bytes.
        Returns:
            bytes: Plaintext DEK.
        Assumptions:
            Failures are never cached and never replaced by a default key.
        Raises:
            KeyServiceError: On key-service failure.
        Side Effects:
            Remote call and cache insert on miss.
        """
        wrapped = bytes(ciphertext)
        cached = self._cache.get(ciphertext=wrapped)
        if cached is not None:
            return cached
        try:
            plaintext = self._key_service.decrypt(key_name=self._key_name, ciphertext=wrapped)
        except KeyServiceError:
            log.warning("dek unwrap failed: key_name=%s", self._key_name)
            raise
        self._cache.put(ciphertext=wrapped, plaintext=plaintext)
        return plaintext

    def generate_dek(self) -> tuple[bytes, bytes]:
        """
        Create a fresh random 256-bit DEK and its wrapped form.

        Returns:
            tuple[bytes, bytes]: `(plaintext, ciphertext)`.
        Raises:
            KeyServiceError: If randomness is unavailable or wrapping fails.
        """
        try:
            plaintext = os.urandom(DEK_LENGTH)
        except (OSError, NotImplementedError) as error:
            raise KeyServiceError("failed to source DEK randomness") from error
        return plaintext, self.encrypt_dek(plaintext)


__all__ = ["DEK_LENGTH", "EnvelopeKeyManager"]
