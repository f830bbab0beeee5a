from .current_user import RequireCurrentUserDependency
from .internal_api_key import INTERNAL_API_KEY_HEADER, RequireInternalApiKeyDependency

__all__ = [
    "INTERNAL_API_KEY_HEADER",
    "RequireCurrentUserDependency",
    "RequireInternalApiKeyDependency",
]
