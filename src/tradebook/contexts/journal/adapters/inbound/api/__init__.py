from .routes import build_internal_users_router, build_trades_router, build_tradebooks_router

__all__ = [
    "build_internal_users_router",
    "build_trades_router",
    "build_tradebooks_router",
]
