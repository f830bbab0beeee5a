from .boto3_kms_key_service import Boto3KmsKeyService
from .local_aes_gcm_key_service import LocalAesGcmKeyService

__all__ = ["Boto3KmsKeyService", "LocalAesGcmKeyService"]
