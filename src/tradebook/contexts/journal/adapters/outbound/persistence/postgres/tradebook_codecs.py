from __future__ import annotations

from uuid import UUID

from tradebook.contexts.encryption.application.ports.cipher_resolver import (
    TradebookCipherResolver,
)
from tradebook.contexts.encryption.application.ports.field_cipher import FieldCipher
from tradebook.contexts.encryption.application.services.field_codec import EncryptedFieldCodec

from .session import JournalPostgresSession


class TradebookCodecLookup:
    """
    TradebookCodecLookup — per-transaction memo of field codecs keyed by tradebook id.

    The wrapped DEK is read through the tenant-scoped session, so a tradebook invisible to
    the bound user yields `None`.

    Related:
      - src/tradebook/contexts/encryption/adapters/outbound/crypto/cipher_resolvers.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebooks_repository.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/trades_repository.py
    """

    def __init__(
        self,
        *,
        session: JournalPostgresSession,
        cipher_resolver: TradebookCipherResolver,
        tradebooks_table: str = "tradebooks",
    ) -> None:
        if session is None:  # type: ignore[truthy-bool]
            raise ValueError("TradebookCodecLookup requires session")
        if cipher_resolver is None:  # type: ignore[truthy-bool]
            raise ValueError("TradebookCodecLookup requires cipher_resolver")
        self._session = session
        self._cipher_resolver = cipher_resolver
        self._tradebooks_table = tradebooks_table
        self._codecs: dict[UUID, EncryptedFieldCodec] = {}

    def issue(self, *, tradebook_id: UUID) -> bytes | None:
        """
        Issue key material for a new tradebook and memoize its codec.

        Args:
            tradebook_id: New tradebook identifier.
        Returns:
            bytes | None: Wrapped DEK to store on the tradebook row.
        Assumptions:
            Called before the tradebook row is inserted.
        Raises:
            KeyServiceError: If key material cannot be issued.
        Side Effects:
            May call the key service.
        """
        wrapped_key, cipher = self._cipher_resolver.issue()
        self.remember(tradebook_id=tradebook_id, cipher=cipher)
        return wrapped_key

    def remember(self, *, tradebook_id: UUID, cipher: FieldCipher) -> EncryptedFieldCodec:
        codec = EncryptedFieldCodec(cipher=cipher)
        self._codecs[tradebook_id] = codec
        return codec

    def codec_from_row(
        self,
        *,
        tradebook_id: UUID,
        wrapped_key: bytes | None,
    ) -> EncryptedFieldCodec:
        cached = self._codecs.get(tradebook_id)
        if cached is not None:
            return cached
        cipher = self._cipher_resolver.resolve(wrapped_key=_as_bytes(wrapped_key))
        return self.remember(tradebook_id=tradebook_id, cipher=cipher)

    def codec_for(self, *, tradebook_id: UUID) -> EncryptedFieldCodec | None:
        """
        Return codec for a visible tradebook.

        Args:
            tradebook_id: Tradebook identifier.
        Returns:
            EncryptedFieldCodec | None: Codec, or `None` when tradebook is not visible.
        Assumptions:
            Row-level security hides tradebooks where the bound user is not a member.
        Raises:
            FormatError: If envelope mode finds no wrapped DEK.
            KeyServiceError: If wrapped DEK cannot be unwrapped.
        Side Effects:
            At most one SQL select and one key-service call per tradebook per transaction.
        """
        cached = self._codecs.get(tradebook_id)
        if cached is not None:
            return cached
        row = self._session.fetch_one(
            query=f"SELECT wrapped_dek FROM {self._tradebooks_table} WHERE id = %(tradebook_id)s",
            parameters={"tradebook_id": tradebook_id},
        )
        if row is None:
            return None
        return self.codec_from_row(tradebook_id=tradebook_id, wrapped_key=row["wrapped_dek"])


def _as_bytes(value: bytes | bytearray | memoryview | None) -> bytes | None:
    if value is None:
        return None
    if isinstance(value, memoryview):
        return value.tobytes()
    return bytes(value)


__all__ = ["TradebookCodecLookup"]
