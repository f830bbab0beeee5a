from .clock import IdentityClock
from .current_user import CurrentUser, CurrentUserPrincipal, CurrentUserUnauthorizedError
from .jwt_codec import AccessTokenClaims, JwtCodec, JwtDecodeError

__all__ = [
    "AccessTokenClaims",
    "CurrentUser",
    "CurrentUserPrincipal",
    "CurrentUserUnauthorizedError",
    "IdentityClock",
    "JwtCodec",
    "JwtDecodeError",
]
