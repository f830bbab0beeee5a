from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from tradebook.contexts.encryption.application.ports.key_service import KeyService
from tradebook.contexts.encryption.domain.errors import KeyServiceError

log = logging.getLogger(__name__)


class Boto3KmsKeyService(KeyService):
    """
    Boto3KmsKeyService — AWS KMS adapter wrapping DEKs with `Encrypt`/`Decrypt`.

    Related:
      - src/tradebook/contexts/encryption/application/ports/key_service.py
      - apps/api/wiring/modules/journal.py
    """

    def __init__(self, *, client: Any) -> None:
        """
        Initialize adapter around a boto3 KMS client.

        Args:
            client: `boto3.client("kms")` instance or compatible fake.
        Returns:
            None.
        Assumptions:
            boto3 clients are thread-safe for concurrent calls.
        Raises:
            ValueError: If client is missing.
        Side Effects:
            None.
        """
        if client is None:
            raise ValueError("Boto3KmsKeyService requires client")
        self._client = client

    @classmethod
    def from_region(cls, *, region_name: str | None) -> Boto3KmsKeyService:
        """
        Build adapter with a default-credential-chain KMS client.

        Args:
            region_name: AWS region (`AWS_REGION`), or `None` for SDK default resolution.
        Returns:
            Boto3KmsKeyService: Adapter.
        Assumptions:
            Credentials come from the standard AWS provider chain.
        Raises:
            None.
        Side Effects:
            Creates one boto3 client.
        """
        return cls(client=boto3.client("kms", region_name=region_name))

    def encrypt(self, *, key_name: str, plaintext: bytes) -> bytes:
        try:
            response = self._client.encrypt(KeyId=key_name, Plaintext=bytes(plaintext))
        except (BotoCoreError, ClientError) as error:
            log.error("kms encrypt failed: key_name=%s error=%s", key_name, _error_code(error))
            raise KeyServiceError("key service encrypt failed") from error
        return _response_bytes(response=response, field="CiphertextBlob")

    def decrypt(self, *, key_name: str, ciphertext: bytes) -> bytes:
        try:
            response = self._client.decrypt(KeyId=key_name, CiphertextBlob=bytes(ciphertext))
        except (BotoCoreError, ClientError) as error:
            log.error("kms decrypt failed: key_name=%s error=%s", key_name, _error_code(error))
            raise KeyServiceError("key service decrypt failed") from error
        return _response_bytes(response=response, field="Plaintext")


def _response_bytes(*, response: Any, field: str) -> bytes:
    try:
        value = response[field]
    except (KeyError, TypeError) as error:
        raise KeyServiceError(f"key service response is missing {field}") from error
    if not isinstance(value, (bytes, bytearray)):
        raise KeyServiceError(f"key service response {field} must be bytes")
    return bytes(value)


def _error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return str(error.response.get("Error", {}).get("Code", "unknown"))
    return type(error).__name__


__all__ = ["Boto3KmsKeyService"]
