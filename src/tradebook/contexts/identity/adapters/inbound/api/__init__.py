from .deps import (
    INTERNAL_API_KEY_HEADER,
    RequireCurrentUserDependency,
    RequireInternalApiKeyDependency,
)

__all__ = [
    "INTERNAL_API_KEY_HEADER",
    "RequireCurrentUserDependency",
    "RequireInternalApiKeyDependency",
]
