from .current_user import JwtBearerCurrentUser
from .jwt import Hs256JwtCodec

__all__ = ["Hs256JwtCodec", "JwtBearerCurrentUser"]
