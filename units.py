"""Measurement units and the conversion table between them."""

from enum import Enum
from typing import Dict, Optional, Tuple


class QuantityUnit(str, Enum):
    MILLIGRAM = "mg"
    GRAM = "g"
    KILOGRAM = "kg"
    MILLILITER = "ml"
    CENTILITER = "cl"
    DECILITER = "dl"
    LITER = "l"
    UNIT = "unit"
    PIECE = "piece"
    SLICE = "slice"
    TEASPOON = "tsp"
    TABLESPOON = "tbsp"
    CUP = "cup"

    @property
    def label(self) -> str:
        return UNIT_LABELS[self]

    @property
    def dimension(self) -> str:
        return dimension_of(self)


MASS = "mass"
VOLUME = "volume"
COUNT = "count"

# unit -> (dimension, size in the dimension's base unit: g for mass, ml for volume)
UNIT_TABLE: Dict[QuantityUnit, Tuple[str, float]] = {
    QuantityUnit.MILLIGRAM: (MASS, 0.001),
    QuantityUnit.GRAM: (MASS, 1.0),
    QuantityUnit.KILOGRAM: (MASS, 1000.0),
    QuantityUnit.MILLILITER: (VOLUME, 1.0),
    QuantityUnit.CENTILITER: (VOLUME, 10.0),
    QuantityUnit.DECILITER: (VOLUME, 100.0),
    QuantityUnit.LITER: (VOLUME, 1000.0),
    # metric kitchen measures
    QuantityUnit.TEASPOON: (VOLUME, 5.0),
    QuantityUnit.TABLESPOON: (VOLUME, 15.0),
    QuantityUnit.CUP: (VOLUME, 250.0),
    QuantityUnit.UNIT: (COUNT, 1.0),
    QuantityUnit.PIECE: (COUNT, 1.0),
    QuantityUnit.SLICE: (COUNT, 1.0),
}

# Exact factors that must not go through the base-unit division.
EXACT_FACTORS: Dict[Tuple[QuantityUnit, QuantityUnit], float] = {
    (QuantityUnit.KILOGRAM, QuantityUnit.GRAM): 1000.0,
    (QuantityUnit.GRAM, QuantityUnit.KILOGRAM): 0.001,
}

UNIT_LABELS: Dict[QuantityUnit, str] = {
    QuantityUnit.MILLIGRAM: "Milligramme",
    QuantityUnit.GRAM: "Gramme",
    QuantityUnit.KILOGRAM: "Kilogramme",
    QuantityUnit.MILLILITER: "Millilitre",
    QuantityUnit.CENTILITER: "Centilitre",
    QuantityUnit.DECILITER: "Décilitre",
    QuantityUnit.LITER: "Litre",
    QuantityUnit.UNIT: "Unité",
    QuantityUnit.PIECE: "Pièce",
    QuantityUnit.SLICE: "Tranche",
    QuantityUnit.TEASPOON: "Cuillère à café",
    QuantityUnit.TABLESPOON: "Cuillère à soupe",
    QuantityUnit.CUP: "Tasse",
}


def dimension_of(unit: QuantityUnit) -> str:
    return UNIT_TABLE[QuantityUnit(unit)][0]


def conversion_factor_to(from_unit: QuantityUnit, to_unit: QuantityUnit) -> Optional[float]:
    """Return f such that ``qty_in_to = qty_in_from * f``.

    Returns None when the two units live in different dimensions
    (e.g. grams and teaspoons). Count units only convert to themselves.
    """
    from_unit, to_unit = QuantityUnit(from_unit), QuantityUnit(to_unit)
    if from_unit == to_unit:
        return 1.0
    exact = EXACT_FACTORS.get((from_unit, to_unit))
    if exact is not None:
        return exact
    from_dim, from_size = UNIT_TABLE[from_unit]
    to_dim, to_size = UNIT_TABLE[to_unit]
    if from_dim != to_dim or from_dim == COUNT:
        return None
    return from_size / to_size


def is_convertible(from_unit: QuantityUnit, to_unit: QuantityUnit) -> bool:
    return conversion_factor_to(from_unit, to_unit) is not None


def convert(qty: float, from_unit: QuantityUnit, to_unit: QuantityUnit) -> Optional[float]:
    """Convert ``qty`` between units, or None if they are not convertible."""
    factor = conversion_factor_to(from_unit, to_unit)
    if factor is None:
        return None
    return qty * factor
