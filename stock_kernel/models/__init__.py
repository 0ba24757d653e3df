"""ORM models for the stock kernel."""

from stock_kernel.models.raw_material import (
    RawMaterialLotModel,
    RawMaterialModel,
    RawMaterialMovementModel,
)
from stock_kernel.models.sales import (
    BatchModel,
    InvoiceLineModel,
    InvoiceModel,
    ProductModel,
    StockAdjustmentModel,
    StoreModel,
)


def import_all_models() -> None:
    """Register every ORM model on ``Base.metadata``.

    Importing this package already does so; the function exists so that
    ``create_tables()`` can request registration explicitly.  Idempotent.
    """
    import stock_kernel.models.raw_material  # noqa: F401
    import stock_kernel.models.sales  # noqa: F401


__all__ = [
    "RawMaterialModel",
    "RawMaterialLotModel",
    "RawMaterialMovementModel",
    "StoreModel",
    "ProductModel",
    "BatchModel",
    "InvoiceModel",
    "InvoiceLineModel",
    "StockAdjustmentModel",
    "import_all_models",
]
