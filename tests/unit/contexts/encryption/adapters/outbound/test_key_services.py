from __future__ import annotations

import base64

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from tradebook.contexts.encryption.adapters.outbound.kms import (
    Boto3KmsKeyService,
    LocalAesGcmKeyService,
)
from tradebook.contexts.encryption.domain.errors import KeyServiceError

_KEK_B64 = base64.b64encode(b"tradebook-test-local-kek-32bytes").decode("ascii")


class _FakeKmsClient:
    """
    Fake boto3 KMS client capturing request kwargs and returning canned responses.
    """

    def __init__(self, *, error: Exception | None = None, response: object = None) -> None:
        self.requests: list[tuple[str, dict[str, object]]] = []
        self._error = error
        self._response = response

    def encrypt(self, **kwargs: object) -> object:
        self.requests.append(("encrypt", kwargs))
        if self._error is not None:
            raise self._error
        if self._response is not None:
            return self._response
        plaintext = kwargs["Plaintext"]
        assert isinstance(plaintext, bytes)
        return {"CiphertextBlob": b"wrapped:" + plaintext}

    def decrypt(self, **kwargs: object) -> object:
        self.requests.append(("decrypt", kwargs))
        if self._error is not None:
            raise self._error
        if self._response is not None:
            return self._response
        blob = kwargs["CiphertextBlob"]
        assert isinstance(blob, bytes)
        return {"Plaintext": blob[len(b"wrapped:") :]}


def test_local_key_service_roundtrip_binds_key_name() -> None:
    """
    Verify local key service unwraps only under the key name used for wrapping.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Key name is bound as AES-GCM associated data.
    Raises:
        AssertionError: If roundtrip fails or foreign key name unwraps.
    Side Effects:
        None.
    """
    service = LocalAesGcmKeyService(kek_b64=_KEK_B64)

    wrapped = service.encrypt(key_name="master-a", plaintext=b"d" * 32)

    assert wrapped[:2] == b"\x01\x0c"
    assert service.decrypt(key_name="master-a", ciphertext=wrapped) == b"d" * 32
    with pytest.raises(KeyServiceError, match="authentication failed"):
        service.decrypt(key_name="master-b", ciphertext=wrapped)


def test_local_key_service_rejects_malformed_blobs() -> None:
    service = LocalAesGcmKeyService(kek_b64=_KEK_B64)
    wrapped = service.encrypt(key_name="k", plaintext=b"dek")

    with pytest.raises(KeyServiceError, match="too short"):
        service.decrypt(key_name="k", ciphertext=b"\x01")
    with pytest.raises(KeyServiceError, match="unsupported"):
        service.decrypt(key_name="k", ciphertext=b"\x02" + wrapped[1:])
    with pytest.raises(KeyServiceError, match="invalid nonce length"):
        service.decrypt(key_name="k", ciphertext=wrapped[:1] + b"\x08" + wrapped[2:])
    with pytest.raises(KeyServiceError, match="non-empty"):
        service.encrypt(key_name=" ", plaintext=b"dek")


def test_local_key_service_validates_kek() -> None:
    with pytest.raises(ValueError, match="non-empty"):
        LocalAesGcmKeyService(kek_b64="")
    with pytest.raises(ValueError, match="valid base64"):
        LocalAesGcmKeyService(kek_b64="%%%")
    with pytest.raises(ValueError, match="16, 24, or 32 bytes"):
        LocalAesGcmKeyService(kek_b64=base64.b64encode(b"x" * 10).decode("ascii"))


def test_boto3_key_service_passes_key_id_and_payloads() -> None:
    client = _FakeKmsClient()
    service = Boto3KmsKeyService(client=client)

    wrapped = service.encrypt(key_name="alias/tradebook", plaintext=b"dek")
    plaintext = service.decrypt(key_name="alias/tradebook", ciphertext=wrapped)

    assert wrapped == b"wrapped:dek"
    assert plaintext == b"dek"
    assert client.requests == [
        ("encrypt", {"KeyId": "alias/tradebook", "Plaintext": b"dek"}),
        ("decrypt", {"KeyId": "alias/tradebook", "CiphertextBlob": b"wrapped:dek"}),
    ]


def test_boto3_key_service_maps_sdk_errors_to_key_service_error() -> None:
    """
    Verify botocore client and transport errors surface as KeyServiceError.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Error messages never include key material.
    Raises:
        AssertionError: If SDK exceptions leak through.
    Side Effects:
        None.
    """
    denied = ClientError({"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "Decrypt")
    service = Boto3KmsKeyService(client=_FakeKmsClient(error=denied))
    with pytest.raises(KeyServiceError, match="decrypt failed"):
        service.decrypt(key_name="k", ciphertext=b"x")

    offline = EndpointConnectionError(endpoint_url="https://kms.invalid")
    service = Boto3KmsKeyService(client=_FakeKmsClient(error=offline))
    with pytest.raises(KeyServiceError, match="encrypt failed"):
        service.encrypt(key_name="k", plaintext=b"x")


def test_boto3_key_service_rejects_malformed_responses() -> None:
    service = Boto3KmsKeyService(client=_FakeKmsClient(response={}))
    with pytest.raises(KeyServiceError, match="missing CiphertextBlob"):
        service.encrypt(key_name="k", plaintext=b"x")

    service = Boto3KmsKeyService(client=_FakeKmsClient(response={"Plaintext": "text"}))
    with pytest.raises(KeyServiceError, match="must be bytes"):
        service.decrypt(key_name="k", ciphertext=b"x")
