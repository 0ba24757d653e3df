"""
Raw Materials Module (``stock_modules.raw_materials``).

Responsibility
--------------
Writes to the raw material ledger: material master, lot receipts,
stock-in, stock-out, adjustments and soft deletion.  Reads go through
``stock_modules.reporting``.

Invariants
----------
- Each service method owns its transaction boundary (commit / rollback).
- Every lot balance change is paired with an appended movement row.
"""

from stock_modules.raw_materials.config import RawMaterialsConfig
from stock_modules.raw_materials.service import UPDATABLE_MATERIAL_FIELDS, RawMaterialService

__all__ = [
    "RawMaterialsConfig",
    "RawMaterialService",
    "UPDATABLE_MATERIAL_FIELDS",
]
