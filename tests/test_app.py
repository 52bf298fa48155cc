import sys
from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
import config
from calc import PlateRef
from units import QuantityUnit

APP = str(Path(__file__).resolve().parents[1] / "app.py")


@pytest.fixture
def at(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATA_DIR", tmp_path)
    app = AppTest.from_file(APP, default_timeout=30)
    app.run()
    return app


def test_plates_page_renders_sample_data(at):
    assert not at.exception
    assert at.header[0].value == "Plats (Recettes)"
    assert [e.label for e in at.expander] == ["Sauce Tomate", "Pizza Margherita"]
    assert len(at.metric) == 12


def test_sample_data_saved_on_first_run(at, tmp_path):
    assert (tmp_path / "kitchen.json").exists()
    assert (tmp_path / "settings.json").exists()


def test_ingredients_page(at):
    at.selectbox(key="nav").set_value("Ingrédients").run()
    assert not at.exception
    assert at.header[0].value == "Ingrédients"
    names = [e.label for e in at.expander]
    assert {"Tomate", "Fromage", "Farine"} <= set(names)


def test_price_edit_flows_into_plates(at):
    at.selectbox(key="nav").set_value("Ingrédients").run()
    tomato = at.session_state.kitchen.ingredients[0]
    at.number_input(key=f"ing_price_{id(tomato)}").set_value(1.0).run()
    assert not at.exception
    sauce = at.session_state.kitchen.plates[0]
    assert sauce.ingredient_cost() == pytest.approx(15.0)


def test_settings_page(at):
    at.selectbox(key="nav").set_value("Réglages").run()
    assert not at.exception
    at.text_input(key="settings_label").set_value("Chez Nous").run()
    at.button(key="settings_save").click().run()
    assert not at.exception
    assert at.session_state.settings["label"] == "Chez Nous"


def lines(plate):
    return [(c.name, c.quantity) for c in plate.components]


def pizza_of(at):
    pizza = at.session_state.kitchen.plates[1]
    assert pizza.name == "Pizza Margherita"
    return pizza


def test_remove_component_keeps_other_quantities(at):
    pizza = pizza_of(at)
    pk = id(pizza)
    at.button(key=f"crm_{pk}_{id(pizza.components[0])}").click().run()
    assert not at.exception
    assert lines(pizza) == [("Fromage", 50.0), ("Farine", 200.0)]
    assert pizza.ingredient_cost() == pytest.approx(0.9)
    # another rerun must not write anything back either
    at.run()
    assert lines(pizza) == [("Fromage", 50.0), ("Farine", 200.0)]


def test_remove_after_edit_keeps_other_quantities(at):
    pizza = pizza_of(at)
    pk = id(pizza)
    sauce_line = pizza.components[0]
    at.number_input(key=f"cq_{pk}_{id(sauce_line)}").set_value(300.0).run()
    assert sauce_line.quantity == 300.0
    at.button(key=f"crm_{pk}_{id(sauce_line)}").click().run()
    assert not at.exception
    assert lines(pizza) == [("Fromage", 50.0), ("Farine", 200.0)]


def test_component_quantity_edit(at):
    pizza = pizza_of(at)
    cheese_line = pizza.components[1]
    at.number_input(key=f"cq_{id(pizza)}_{id(cheese_line)}").set_value(100.0).run()
    assert not at.exception
    assert lines(pizza) == [("Sauce Tomate", 150.0), ("Fromage", 100.0), ("Farine", 200.0)]
    assert pizza.ingredient_cost() == pytest.approx(2.15)


def test_component_unit_edit(at):
    pizza = pizza_of(at)
    flour_line = pizza.components[2]
    units = list(QuantityUnit)
    at.selectbox(key=f"cu_{id(pizza)}_{id(flour_line)}").select_index(
        units.index(QuantityUnit.MILLIGRAM)).run()
    assert not at.exception
    assert flour_line.unit is QuantityUnit.MILLIGRAM
    assert pizza.ingredient_cost() == pytest.approx(0.75 + 0.5 + 0.0004)


def test_add_ingredient_to_plate(at):
    pizza = pizza_of(at)
    at.button(key=f"add_ing_btn_{id(pizza)}").click().run()
    assert not at.exception
    assert lines(pizza)[-1] == ("Tomate", 100.0)
    assert pizza.components[-1].ingredient is at.session_state.kitchen.ingredients[0]
    assert pizza.ingredient_cost() == pytest.approx(1.65 + 0.5)


def test_add_sub_plate(at):
    sauce, pizza = at.session_state.kitchen.plates
    # the sauce is used by the pizza, so it is offered no sub-recipe
    assert not any(b.key == f"add_sub_btn_{id(sauce)}" for b in at.button)
    at.button(key=f"add_sub_btn_{id(pizza)}").click().run()
    assert not at.exception
    assert isinstance(pizza.components[-1], PlateRef)
    assert pizza.components[-1].plate is sauce
    assert pizza.ingredient_cost() == pytest.approx(1.65 + 0.5)
