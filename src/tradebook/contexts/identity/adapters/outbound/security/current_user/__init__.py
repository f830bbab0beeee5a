from .jwt_bearer_current_user import JwtBearerCurrentUser

__all__ = ["JwtBearerCurrentUser"]
