from .security import Hs256JwtCodec, JwtBearerCurrentUser

__all__ = ["Hs256JwtCodec", "JwtBearerCurrentUser"]
