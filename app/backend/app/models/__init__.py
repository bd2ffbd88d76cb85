"""ORM model package."""

from app.models.entities import (
    CostingEntry,
    RentalEquipment,
    RentalIncome,
    SlaIncome,
    SlaUnit,
)

__all__ = [
    "CostingEntry",
    "RentalEquipment",
    "RentalIncome",
    "SlaIncome",
    "SlaUnit",
]
