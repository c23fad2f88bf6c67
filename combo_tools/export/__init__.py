from .serializer import serialize_js, to_csv, to_script_block, to_sheet_values

__all__ = [
    "serialize_js",
    "to_csv",
    "to_script_block",
    "to_sheet_values",
]
