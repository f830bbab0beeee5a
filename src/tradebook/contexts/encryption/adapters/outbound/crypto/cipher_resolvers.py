from __future__ import annotations

from tradebook.contexts.encryption.application.ports.cipher_resolver import (
    TradebookCipherResolver,
)
from tradebook.contexts.encryption.application.ports.field_cipher import FieldCipher
from tradebook.contexts.encryption.application.services.envelope_key_manager import (
    EnvelopeKeyManager,
)
from tradebook.contexts.encryption.domain.errors import FormatError, KeyServiceError

from .aes_gcm_field_cipher import AesGcmFieldCipher


class MasterKeyCipherResolver(TradebookCipherResolver):
    """
    MasterKeyCipherResolver — every tradebook uses the one process-wide master-key cipher.

    Related:
      - src/tradebook/contexts/encryption/adapters/outbound/crypto/aes_gcm_field_cipher.py
      - apps/api/wiring/modules/journal.py
    """

    def __init__(self, *, cipher: FieldCipher) -> None:
        if cipher is None:  # type: ignore[truthy-bool]
            raise ValueError("MasterKeyCipherResolver requires cipher")
        self._cipher = cipher

    def issue(self) -> tuple[bytes | None, FieldCipher]:
        return None, self._cipher

    def resolve(self, *, wrapped_key: bytes | None) -> FieldCipher:
        return self._cipher


class EnvelopeCipherResolver(TradebookCipherResolver):
    """
    EnvelopeCipherResolver — one envelope DEK per tradebook, unwrapped through the key manager.

    Related:
      - src/tradebook/contexts/encryption/application/services/envelope_key_manager.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebooks_repository.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    def __init__(self, *, key_manager: EnvelopeKeyManager) -> None:
        if key_manager is None:  # type: ignore[truthy-bool]
            raise ValueError("EnvelopeCipherResolver requires key_manager")
        self._key_manager = key_manager

    def issue(self) -> tuple[bytes | None, FieldCipher]:
        dek, wrapped = self._key_manager.generate_dek()
        return wrapped, AesGcmFieldCipher(key=dek)

    def resolve(self, *, wrapped_key: bytes | None) -> FieldCipher:
        """
        Unwrap tradebook DEK and build its field cipher.

        Args:
            wrapped_key: Persisted `tradebooks.wrapped_dek` bytes.
        Returns:
            FieldCipher: AES-GCM cipher keyed by the tradebook DEK.
        Assumptions:
            Tradebooks created under envelope mode always carry a wrapped DEK.
        Raises:
            FormatError: If wrapped key is missing.
            KeyServiceError: If unwrap fails or yields a key of the wrong size.
        Side Effects:
            May call the key service on cache miss.
        """
        if wrapped_key is None or len(wrapped_key) == 0:
            raise FormatError("tradebook has no wrapped data key")
        dek = self._key_manager.decrypt_dek(bytes(wrapped_key))
        try:
            return AesGcmFieldCipher(key=dek)
        except ValueError as error:
            raise KeyServiceError("unwrapped data key has invalid length") from error


__all__ = ["EnvelopeCipherResolver", "MasterKeyCipherResolver"]
