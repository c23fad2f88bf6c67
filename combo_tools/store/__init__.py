from .row_store import RowStore, validate_new_row

__all__ = [
    "RowStore",
    "validate_new_row",
]
