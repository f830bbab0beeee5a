from .envelope_key_manager import DEK_LENGTH, EnvelopeKeyManager
from .field_codec import EncryptedFieldCodec

__all__ = ["DEK_LENGTH", "EncryptedFieldCodec", "EnvelopeKeyManager"]
