"""Product combo data tools: import, edit and export combo rows.

Combo rows link a main product image to overlay "dot" markers for related
products. This package parses the CSV / HTML / JS encodings of that data,
backfills product metadata from the catalog, keeps rows in an undoable
store and exports them back to CSV, script blocks and Google Sheets.
"""

__version__ = "0.1.0"
