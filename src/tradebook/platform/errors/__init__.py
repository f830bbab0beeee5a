from .tradebook_error import TradebookError

__all__ = ["TradebookError"]
