from .aes_gcm_field_cipher import AesGcmFieldCipher
from .cipher_resolvers import EnvelopeCipherResolver, MasterKeyCipherResolver

__all__ = ["AesGcmFieldCipher", "EnvelopeCipherResolver", "MasterKeyCipherResolver"]
