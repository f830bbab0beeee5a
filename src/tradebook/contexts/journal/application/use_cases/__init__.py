from ._shared import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, PageRequest
from .create_trade import CreateTradeUseCase
from .create_tradebook import CreateTradebookUseCase
from .delete_trade import DeleteTradeUseCase
from .delete_tradebook import DeleteAllTradebooksUseCase, DeleteTradebookUseCase
from .errors import (
    map_journal_exception,
    trade_not_found,
    tradebook_not_found,
    validation_error,
)
from .get_tradebook import GetTradebookUseCase
from .list_trades import GetTradeUseCase, ListTradesUseCase
from .list_tradebooks import ListTradebooksUseCase
from .record_exit_leg import ExitLegInput, RecordExitLegUseCase
from .share_tradebook import RevokeTradebookMemberUseCase, ShareTradebookUseCase
from .sync_user import DeleteUserUseCase, UpsertUserUseCase
from .trade_input import TradeInput
from .update_trade import UpdateTradeUseCase
from .update_tradebook import UpdateTradebookUseCase

__all__ = [
    "DEFAULT_PAGE_LIMIT",
    "MAX_PAGE_LIMIT",
    "CreateTradeUseCase",
    "CreateTradebookUseCase",
    "DeleteAllTradebooksUseCase",
    "DeleteTradeUseCase",
    "DeleteTradebookUseCase",
    "DeleteUserUseCase",
    "ExitLegInput",
    "GetTradeUseCase",
    "GetTradebookUseCase",
    "ListTradebooksUseCase",
    "ListTradesUseCase",
    "PageRequest",
    "RecordExitLegUseCase",
    "RevokeTradebookMemberUseCase",
    "ShareTradebookUseCase",
    "TradeInput",
    "UpdateTradeUseCase",
    "UpdateTradebookUseCase",
    "UpsertUserUseCase",
    "map_journal_exception",
    "trade_not_found",
    "tradebook_not_found",
    "validation_error",
]
