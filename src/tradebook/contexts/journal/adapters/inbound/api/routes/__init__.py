from .tradebooks import build_tradebooks_router
from .trades import build_trades_router
from .users import build_internal_users_router

__all__ = [
    "build_internal_users_router",
    "build_trades_router",
    "build_tradebooks_router",
]
