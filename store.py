"""Application state: the kitchen catalog, sample data and JSON persistence."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import config
from calc import (
    FnbError,
    Ingredient,
    IngredientComponent,
    IngredientType,
    Plate,
    PlateRef,
    Supplier,
)
from units import QuantityUnit

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "label": config.APP_TITLE,
    "value": 2.7,
    "labor_rate": config.LABOR_RATE,
    "locale": config.LOCALE,
}


class StoreError(FnbError):
    """Saved kitchen data could not be turned back into a graph."""


@dataclass
class Kitchen:
    ingredients: List[Ingredient] = field(default_factory=list)
    plates: List[Plate] = field(default_factory=list)

    def remove_ingredient(self, ingredient: Ingredient) -> None:
        # plates keep their own reference, nothing cascades
        self.ingredients = [i for i in self.ingredients if i is not ingredient]

    def remove_plate(self, plate: Plate) -> None:
        self.plates = [p for p in self.plates if p is not plate]

    def users_of(self, ingredient: Ingredient) -> List[Plate]:
        return [p for p in self.plates if p.uses_ingredient(ingredient)]


def sample_kitchen() -> Kitchen:
    """Seed data: tomato sauce used as a sub-recipe of a margherita."""
    fermes = Supplier("Fermes Fraîches", "contact@fermesfraîches.fr")
    laiterie = Supplier("Laiterie Best", "info@laiteriebest.fr")

    tomato = Ingredient("Tomate", 0.5, 100.0, QuantityUnit.GRAM,
                        IngredientType.VEGETABLES_FRUITS, fermes)
    cheese = Ingredient("Fromage", 1.0, 100.0, QuantityUnit.GRAM,
                        IngredientType.DAIRY_EGGS_CHEESE_SAUCES, laiterie)
    flour = Ingredient("Farine", 2.0, 1.0, QuantityUnit.KILOGRAM,
                       IngredientType.GROCERY, Supplier(fermes.name, fermes.contact))

    sauce = Plate("Sauce Tomate", selling_price=5.0, batch_preparation_time_hours=0.25,
                  batch_quantity=1500.0, batch_unit=QuantityUnit.GRAM)
    sauce.add_ingredient(tomato, 1500.0, QuantityUnit.GRAM)

    pizza = Plate("Pizza Margherita", selling_price=12.0, batch_preparation_time_hours=0.5,
                  batch_quantity=1.0, batch_unit=QuantityUnit.UNIT)
    pizza.add_plate(sauce, 150.0)
    pizza.add_ingredient(cheese, 50.0, QuantityUnit.GRAM)
    pizza.add_ingredient(flour, 200.0, QuantityUnit.GRAM)

    return Kitchen([tomato, cheese, flour], [sauce, pizza])


# Serialization ----------------------------------------------------------------

def kitchen_to_dict(kitchen: Kitchen) -> Dict[str, Any]:
    """Flatten the graph, replacing shared references with ids."""
    ing_ids: Dict[int, str] = {}
    plate_ids: Dict[int, str] = {}
    ingredients: Dict[str, Any] = {}
    plates: Dict[str, Any] = {}

    def ing_id(ing: Ingredient) -> str:
        if id(ing) not in ing_ids:
            iid = f"i{len(ing_ids) + 1}"
            ing_ids[id(ing)] = iid
            ingredients[iid] = {
                "name": ing.name,
                "cost_price": ing.cost_price,
                "reference_quantity": ing.reference_quantity,
                "unit": ing.unit.value,
                "ingredient_type": ing.ingredient_type.value,
                "supplier": {"name": ing.supplier.name, "contact": ing.supplier.contact},
            }
        return ing_ids[id(ing)]

    def plate_id(plate: Plate) -> str:
        if id(plate) in plate_ids:
            return plate_ids[id(plate)]
        pid = f"p{len(plate_ids) + 1}"
        plate_ids[id(plate)] = pid
        data = {
            "name": plate.name,
            "selling_price": plate.selling_price,
            "batch_preparation_time_hours": plate.batch_preparation_time_hours,
            "batch_quantity": plate.batch_quantity,
            "batch_unit": plate.batch_unit.value,
            "components": [],
        }
        plates[pid] = data
        for comp in plate.components:
            if isinstance(comp, IngredientComponent):
                data["components"].append({
                    "kind": "ingredient",
                    "ref": ing_id(comp.ingredient),
                    "quantity": comp.quantity,
                    "unit": comp.unit.value,
                })
            else:
                data["components"].append({
                    "kind": "plate",
                    "ref": plate_id(comp.plate),
                    "quantity": comp.quantity,
                })
        return pid

    return {
        "ingredient_order": [ing_id(i) for i in kitchen.ingredients],
        "plate_order": [plate_id(p) for p in kitchen.plates],
        "ingredients": ingredients,
        "plates": plates,
    }


def kitchen_from_dict(data: Dict[str, Any]) -> Kitchen:
    """Rebuild the graph; every id maps back to a single shared object."""
    try:
        ingredients = {
            iid: Ingredient(
                d["name"],
                d["cost_price"],
                d["reference_quantity"],
                d["unit"],
                d.get("ingredient_type", IngredientType.GROCERY),
                Supplier(**d.get("supplier", {"name": "Par Défaut"})),
            )
            for iid, d in data.get("ingredients", {}).items()
        }
        # plates first, components second, so refs resolve in any order
        plates = {
            pid: Plate(
                d["name"],
                selling_price=d.get("selling_price", 0.0),
                batch_preparation_time_hours=d.get("batch_preparation_time_hours", 0.0),
                batch_quantity=d.get("batch_quantity", 1.0),
                batch_unit=d.get("batch_unit", QuantityUnit.UNIT),
            )
            for pid, d in data.get("plates", {}).items()
        }
        for pid, d in data.get("plates", {}).items():
            for c in d.get("components", []):
                if c["kind"] == "ingredient":
                    comp = IngredientComponent(ingredients[c["ref"]], c["quantity"],
                                               c.get("unit", QuantityUnit.GRAM))
                elif c["kind"] == "plate":
                    comp = PlateRef(plates[c["ref"]], c["quantity"])
                else:
                    raise StoreError(f"unknown component kind {c['kind']!r} in plate {pid}")
                plates[pid].components.append(comp)
        return Kitchen(
            [ingredients[i] for i in data.get("ingredient_order", ingredients)],
            [plates[p] for p in data.get("plate_order", plates)],
        )
    except KeyError as e:
        raise StoreError(f"missing key or unknown id {e}") from e
    except (TypeError, ValueError) as e:
        # bad unit/type names, rejected quantities, malformed suppliers
        raise StoreError(str(e)) from e


# Disk -------------------------------------------------------------------------

def load_state(name: str, default, data_dir: Optional[Path] = None):
    data_dir = Path(data_dir or config.DATA_DIR)
    path = data_dir / f"{name}.json"
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict) and isinstance(default, dict):
            merged = default.copy()
            merged.update(data)
            return merged
        return data
    save_state(name, default, data_dir)
    return default


def save_state(name: str, data, data_dir: Optional[Path] = None) -> None:
    data_dir = Path(data_dir or config.DATA_DIR)
    data_dir.mkdir(parents=True, exist_ok=True)
    path = data_dir / f"{name}.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def load_settings(data_dir: Optional[Path] = None) -> Dict[str, Any]:
    return load_state("settings", dict(DEFAULT_SETTINGS), data_dir)


def save_settings(settings: Dict[str, Any], data_dir: Optional[Path] = None) -> None:
    save_state("settings", settings, data_dir)


def load_kitchen(data_dir: Optional[Path] = None) -> Kitchen:
    """Load the saved graph, or seed (and save) the sample data."""
    path = Path(data_dir or config.DATA_DIR) / "kitchen.json"
    if not path.exists():
        logger.info("No saved kitchen at %s, seeding sample data", path)
        kitchen = sample_kitchen()
        save_kitchen(kitchen, data_dir)
        return kitchen
    try:
        with open(path, "r", encoding="utf-8") as f:
            kitchen = kitchen_from_dict(json.load(f))
    except (StoreError, json.JSONDecodeError) as e:
        logger.error("Could not read %s (%s), reseeding sample data", path, e)
        return sample_kitchen()
    logger.info("Loaded %d ingredients and %d plates from %s",
                len(kitchen.ingredients), len(kitchen.plates), path)
    return kitchen


def save_kitchen(kitchen: Kitchen, data_dir: Optional[Path] = None) -> None:
    save_state("kitchen", kitchen_to_dict(kitchen), data_dir)
    logger.debug("Saved kitchen to %s", Path(data_dir or config.DATA_DIR))
