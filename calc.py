"""Pure calculation utilities for food cost logic.

Ingredients, plates (recipes) and the cost roll-up over the plate
composition graph. Nothing in here touches the UI or the disk.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

import config
from units import QuantityUnit, conversion_factor_to

logger = logging.getLogger(__name__)


class FnbError(Exception):
    """Base class for errors raised by the cost manager."""


class InvalidQuantityError(FnbError, ValueError):
    """A quantity or amount rejected before it reaches the valuation."""

    def __init__(self, field_name: str, value, requirement: str = "strictly positive"):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name} must be {requirement}, got {value!r}")


class CyclicReferenceError(FnbError):
    """A plate includes itself, directly or through its sub-plates."""

    def __init__(self, path: List[str]):
        self.path = path
        super().__init__("cyclic plate reference: " + " -> ".join(path))


class IngredientType(str, Enum):
    GROCERY = "Grocery"
    DAIRY_EGGS_CHEESE_SAUCES = "DairyEggsCheeseSauces"
    VEGETABLES_FRUITS = "VegetablesFruits"
    PACKAGING = "Packaging"
    MEAT_PROTEINS = "MeatProteins"

    @property
    def label(self) -> str:
        return INGREDIENT_TYPE_LABELS[self]


INGREDIENT_TYPE_LABELS = {
    IngredientType.GROCERY: "Épicerie",
    IngredientType.DAIRY_EGGS_CHEESE_SAUCES: "Lait, Œufs, Fromages, Sauces",
    IngredientType.VEGETABLES_FRUITS: "Légumes & Fruits",
    IngredientType.PACKAGING: "Packaging",
    IngredientType.MEAT_PROTEINS: "Viandes / Protéines",
}


def positive(name: str, value) -> float:
    """Return ``value`` as a float, rejecting zero, negatives and NaN."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidQuantityError(name, value) from None
    if not v > 0:
        raise InvalidQuantityError(name, value)
    return v


def non_negative(name: str, value) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidQuantityError(name, value, "zero or more") from None
    if not v >= 0:
        raise InvalidQuantityError(name, value, "zero or more")
    return v


class _Checked:
    """Validates numeric fields on every assignment, including in __init__."""

    _positive: Tuple[str, ...] = ()
    _non_negative: Tuple[str, ...] = ()
    _units: Tuple[str, ...] = ()

    def __setattr__(self, name, value):
        if name in self._positive:
            value = positive(name, value)
        elif name in self._non_negative:
            value = non_negative(name, value)
        elif name in self._units:
            value = QuantityUnit(value)
        super().__setattr__(name, value)


@dataclass
class Supplier:
    name: str
    contact: Optional[str] = None


@dataclass(eq=False)
class Ingredient(_Checked):
    """An ingredient bought at ``cost_price`` for ``reference_quantity`` of ``unit``."""

    _positive = ("reference_quantity",)
    _non_negative = ("cost_price",)
    _units = ("unit",)

    name: str
    cost_price: float
    reference_quantity: float
    unit: QuantityUnit
    ingredient_type: IngredientType = IngredientType.GROCERY
    supplier: Supplier = field(default_factory=lambda: Supplier("Par Défaut"))

    def __setattr__(self, name, value):
        if name == "ingredient_type":
            value = IngredientType(value)
        elif name == "supplier":
            # each ingredient owns its supplier record
            value = replace(value)
        super().__setattr__(name, value)

    def cost_per_unit(self, target_unit: Optional[QuantityUnit] = None) -> float:
        """Cost of one ``target_unit`` of this ingredient.

        When ``target_unit`` can't be converted from the ingredient's own
        unit, the per-reference-unit cost is returned unscaled.
        """
        base = self.cost_price / self.reference_quantity
        if target_unit is None:
            return base
        factor = conversion_factor_to(target_unit, self.unit)
        if factor is None:
            logger.debug(
                "No conversion %s -> %s for %s, using unscaled cost",
                QuantityUnit(target_unit).value, self.unit.value, self.name,
            )
            return base
        return base * factor


@dataclass(eq=False)
class IngredientComponent(_Checked):
    _positive = ("quantity",)
    _units = ("unit",)

    ingredient: Ingredient
    quantity: float
    unit: QuantityUnit = QuantityUnit.GRAM

    @property
    def name(self) -> str:
        return self.ingredient.name


@dataclass(eq=False)
class PlateRef(_Checked):
    """``quantity`` of a sub-plate, in the sub-plate's batch unit (grams by convention)."""

    _positive = ("quantity",)

    plate: "Plate"
    quantity: float

    @property
    def name(self) -> str:
        return self.plate.name


PlateComponent = Union[IngredientComponent, PlateRef]


@dataclass(eq=False)
class Plate(_Checked):
    """A recipe. One batch yields ``batch_quantity`` of ``batch_unit``."""

    _positive = ("batch_quantity",)
    _non_negative = ("selling_price", "batch_preparation_time_hours")
    _units = ("batch_unit",)

    name: str
    components: List[PlateComponent] = field(default_factory=list)
    selling_price: float = 0.0
    batch_preparation_time_hours: float = 0.5
    batch_quantity: float = 1.0
    batch_unit: QuantityUnit = QuantityUnit.UNIT

    def add_ingredient(self, ingredient: Ingredient, quantity: float,
                       unit: QuantityUnit = QuantityUnit.GRAM) -> IngredientComponent:
        comp = IngredientComponent(ingredient, quantity, unit)
        self.components.append(comp)
        return comp

    def add_plate(self, plate: "Plate", quantity: float) -> PlateRef:
        """Append a sub-plate, refusing one that already contains this plate."""
        if plate is self or plate.uses(self):
            raise CyclicReferenceError([self.name, plate.name, self.name])
        comp = PlateRef(plate, quantity)
        self.components.append(comp)
        return comp

    def ingredient_cost(self) -> float:
        """Ingredient cost of one full batch, sub-plates included."""
        return _ingredient_cost(self, {})

    def batch_cost_per_unit(self) -> float:
        return _batch_cost_per_unit(self, {})

    def labor_cost(self, hourly_rate: Optional[float] = None) -> float:
        # per batch, not divided by batch_quantity
        if hourly_rate is None:
            hourly_rate = config.LABOR_RATE
        return hourly_rate * self.batch_preparation_time_hours

    def total_cost_price(self, hourly_rate: Optional[float] = None) -> float:
        return self.ingredient_cost() + self.labor_cost(hourly_rate)

    def gross_margin(self, hourly_rate: Optional[float] = None) -> float:
        return self.selling_price - self.total_cost_price(hourly_rate)

    def margin_rate(self, hourly_rate: Optional[float] = None) -> float:
        """Gross margin over selling price; 0.0 when the plate is not priced."""
        if self.selling_price == 0:
            return 0.0
        return self.gross_margin(hourly_rate) / self.selling_price

    def food_cost_rate(self) -> float:
        if self.selling_price == 0:
            return 0.0
        return self.ingredient_cost() / self.selling_price

    def cost_breakdown(self) -> List[Tuple[str, float]]:
        """(component name, cost) for each line of the recipe."""
        path: Dict[int, Plate] = {id(self): self}
        return [(c.name, component_cost(c, path)) for c in self.components]

    def sub_plates(self) -> Iterator["Plate"]:
        """Every plate reachable from this one, each yielded once."""
        seen = {id(self)}
        stack = [self]
        while stack:
            plate = stack.pop()
            for comp in plate.components:
                if isinstance(comp, PlateRef) and id(comp.plate) not in seen:
                    seen.add(id(comp.plate))
                    stack.append(comp.plate)
                    yield comp.plate

    def uses(self, other: "Plate") -> bool:
        return any(p is other for p in self.sub_plates())

    def uses_ingredient(self, ingredient: Ingredient) -> bool:
        for plate in [self, *self.sub_plates()]:
            for comp in plate.components:
                if isinstance(comp, IngredientComponent) and comp.ingredient is ingredient:
                    return True
        return False


def component_cost(component: PlateComponent, path: Optional[Dict[int, Plate]] = None) -> float:
    if path is None:
        path = {}
    if isinstance(component, IngredientComponent):
        return component.quantity * component.ingredient.cost_per_unit(component.unit)
    if isinstance(component, PlateRef):
        return component.quantity * _batch_cost_per_unit(component.plate, path)
    raise TypeError(f"not a plate component: {component!r}")


def _batch_cost_per_unit(plate: Plate, path: Dict[int, Plate]) -> float:
    return _ingredient_cost(plate, path) / plate.batch_quantity


def _ingredient_cost(plate: Plate, path: Dict[int, Plate]) -> float:
    # path holds the plates currently being valued, keyed by identity
    key = id(plate)
    if key in path:
        raise CyclicReferenceError([p.name for p in path.values()] + [plate.name])
    path[key] = plate
    try:
        total = 0.0
        for comp in plate.components:
            total += component_cost(comp, path)
        return total
    finally:
        del path[key]
