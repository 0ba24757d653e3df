"""
Raw Materials Configuration Schema.

Defaults for new material master records and the guards applied by the
mutation service.
"""

from dataclasses import dataclass
from typing import Self

from stock_kernel.domain.dtos import MaterialType, MaterialUnit, StorageCondition
from stock_kernel.logging_config import get_logger

logger = get_logger("modules.raw_materials.config")

VALID_UNITS = {u.value for u in MaterialUnit}


@dataclass
class RawMaterialsConfig:
    """
    Configuration schema for the raw materials module.

    Override at instantiation, or load from YAML through
    ``stock_config.load_config``:

        config = RawMaterialsConfig(default_unit="g")
    """

    default_unit: str = MaterialUnit.KILOGRAM.value
    default_material_type: str = MaterialType.CHEMICAL.value
    default_storage_condition: str = StorageCondition.DRY.value

    # Refuse receipts into inactive or soft-deleted materials
    reject_inactive_materials: bool = True

    # Lot numbers must be unique per material
    unique_lot_numbers: bool = True

    def __post_init__(self):
        if self.default_unit not in VALID_UNITS:
            raise ValueError(f"default_unit must be one of {sorted(VALID_UNITS)}, got '{self.default_unit}'")
        MaterialType(self.default_material_type)
        StorageCondition(self.default_storage_condition)

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("raw_materials_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "raw_materials_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
