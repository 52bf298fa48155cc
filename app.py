# app.py
# =============================================================================
# Gestion des Coûts F&B — ingredients, recipes (plates) and their margins
# =============================================================================

import logging

import matplotlib.pyplot as plt
import streamlit as st
from babel.numbers import format_currency, format_decimal

import config
from calc import (
    CyclicReferenceError,
    Ingredient,
    IngredientComponent,
    IngredientType,
    InvalidQuantityError,
    Plate,
    PlateRef,
)
from store import Kitchen, load_kitchen, load_settings, sample_kitchen, save_kitchen, save_settings
from units import QuantityUnit

config.configure_logging()
logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# CONFIG
# -----------------------------------------------------------------------------
st.set_page_config(page_title=config.APP_TITLE, layout="wide")

UNITS = list(QuantityUnit)
TYPES = list(IngredientType)

# -----------------------------------------------------------------------------
# STATE
# -----------------------------------------------------------------------------
if "settings" not in st.session_state:
    st.session_state.settings = load_settings()
if "kitchen" not in st.session_state:
    st.session_state.kitchen = load_kitchen()
if "show_add_recipe_form" not in st.session_state:
    st.session_state.show_add_recipe_form = False

kitchen: Kitchen = st.session_state.kitchen
settings = st.session_state.settings

# -----------------------------------------------------------------------------
# HELPERS
# -----------------------------------------------------------------------------
def format_money(x, cur=config.CURRENCY):
    if x is None:
        return "—"
    return format_currency(x, cur, locale=settings.get("locale", config.LOCALE))


def format_number(x, decimals: int = 2) -> str:
    """Format a generic number following the current locale."""
    pattern = f"#,##0.{ '0'*decimals }" if decimals > 0 else "#,##0"
    return format_decimal(x, format=pattern, locale=settings.get("locale", config.LOCALE))


def format_percent(x: float, decimals: int = 1) -> str:
    return f"{format_number(x * 100, decimals)}%"


def unit_label(u) -> str:
    return QuantityUnit(u).label


def set_field(obj, name: str, value) -> bool:
    """Write a user edit back, showing the error instead of storing bad values."""
    try:
        setattr(obj, name, value)
    except InvalidQuantityError as e:
        st.error(str(e))
        return False
    return True


def labor_rate() -> float:
    return float(settings.get("labor_rate", config.LABOR_RATE))


def plate_label(p: Plate) -> str:
    return f"{p.name} ({format_number(p.batch_quantity, 0)} {p.batch_unit.value})"


def cost_pie(plate: Plate):
    labels, vals = [], []
    for name, cost in plate.cost_breakdown():
        if cost > 0:
            labels.append(name)
            vals.append(cost)
    labor = plate.labor_cost(labor_rate())
    if labor > 0:
        labels.append("Main-d'œuvre")
        vals.append(labor)
    if not vals:
        return None
    fig, ax = plt.subplots()
    ax.pie(vals, labels=labels, autopct='%1.1f%%', startangle=90)
    ax.axis('equal')
    return fig

# -----------------------------------------------------------------------------
# UI — sidebar navigation
# -----------------------------------------------------------------------------
st.sidebar.title(settings.get("label") or config.APP_TITLE)
sections = ["Plats (Recettes)", "Ingrédients", "Réglages"]
page = st.sidebar.selectbox("Navigation", sections, key="nav")

# -----------------------------------------------------------------------------
# PLATES
# -----------------------------------------------------------------------------
def plate_components_editor(plate: Plate):
    pk = id(plate)
    to_remove = []
    for idx, comp in enumerate(plate.components):
        c1, c2, c3, c4 = st.columns([3, 2, 2, 1])
        ck = f"{pk}_{id(comp)}"
        if isinstance(comp, IngredientComponent):
            c1.write(comp.ingredient.name)
            qty = c2.number_input("Quantité", min_value=0.1, max_value=10000.0,
                                  value=float(comp.quantity), step=1.0, key=f"cq_{ck}")
            set_field(comp, "quantity", qty)
            unit = c3.selectbox("Unité", UNITS, index=UNITS.index(comp.unit),
                                format_func=unit_label, key=f"cu_{ck}")
            comp.unit = unit
            c4.caption(f"@ {format_number(comp.ingredient.cost_per_unit(comp.unit), 4)}/{comp.unit.value}")
        elif isinstance(comp, PlateRef):
            c1.write(f"🍲 {comp.plate.name}")
            qty = c2.number_input("Quantité", min_value=0.1, max_value=10000.0,
                                  value=float(comp.quantity), step=1.0, key=f"cq_{ck}")
            set_field(comp, "quantity", qty)
            try:
                c3.caption(f"@ {format_number(comp.plate.batch_cost_per_unit(), 4)}/{comp.plate.batch_unit.value}")
            except CyclicReferenceError as e:
                c3.error(str(e))
        if c4.button("🗑", key=f"crm_{ck}"):
            to_remove.append(idx)

    for idx in reversed(to_remove):
        removed = plate.components.pop(idx)
        # a later component may reuse this id(); don't let it inherit the widgets
        for prefix in ("cq", "cu", "crm"):
            st.session_state.pop(f"{prefix}_{pk}_{id(removed)}", None)
    if to_remove:
        save_kitchen(kitchen)
        st.rerun()

    a1, a2 = st.columns(2)
    with a1:
        if kitchen.ingredients:
            ing = st.selectbox("Ajouter un ingrédient", kitchen.ingredients,
                               format_func=lambda i: i.name, key=f"add_ing_{pk}")
            if st.button("Ajouter", key=f"add_ing_btn_{pk}"):
                plate.add_ingredient(ing, 100.0, QuantityUnit.GRAM)
                save_kitchen(kitchen)
                st.rerun()
    with a2:
        # only plates that would not make this one include itself
        options = [p for p in kitchen.plates if p is not plate and not p.uses(plate)]
        if options:
            sub = st.selectbox("Ajouter une sous-recette", options,
                               format_func=plate_label, key=f"add_sub_{pk}")
            if st.button("Ajouter", key=f"add_sub_btn_{pk}"):
                plate.add_plate(sub, 100.0)
                save_kitchen(kitchen)
                st.rerun()


def plate_card(plate: Plate):
    pk = id(plate)
    with st.expander(plate.name, expanded=False):
        selling = st.number_input("Prix de Vente", min_value=0.0, value=float(plate.selling_price),
                                  step=0.1, key=f"sell_{pk}")
        set_field(plate, "selling_price", selling)
        b1, b2, b3 = st.columns(3)
        set_field(plate, "batch_preparation_time_hours",
                  b1.number_input("Temps de Préparation (h)", min_value=0.0, max_value=24.0,
                                  value=float(plate.batch_preparation_time_hours), step=0.1,
                                  key=f"prep_{pk}"))
        set_field(plate, "batch_quantity",
                  b2.number_input("Quantité par Lot", min_value=0.1, max_value=10000.0,
                                  value=float(plate.batch_quantity), step=0.1, key=f"bq_{pk}"))
        plate.batch_unit = b3.selectbox("Unité du Lot", UNITS, index=UNITS.index(plate.batch_unit),
                                        format_func=unit_label, key=f"bu_{pk}")

        rate = labor_rate()
        cyclic = None
        try:
            ingredient_cost = plate.ingredient_cost()
            total = plate.total_cost_price(rate)
            margin = plate.gross_margin(rate)
            margin_rate = plate.margin_rate(rate)
        except CyclicReferenceError as e:
            cyclic = e
            st.error(f"Coût incalculable : {e}")
        else:
            m1, m2, m3 = st.columns(3)
            m1.metric("Coût Ingrédients", format_money(ingredient_cost))
            m2.metric("Coût Main-d'œuvre", format_money(plate.labor_cost(rate)))
            m3.metric("Coût Total", format_money(total))
            m1, m2, m3 = st.columns(3)
            m1.metric("Marge Brute", format_money(margin))
            m2.metric("Taux de Marge", format_percent(margin_rate))
            m3.metric("Food-Cost", format_percent(plate.food_cost_rate()))
            if plate.selling_price == 0:
                st.caption("Pas de prix de vente : taux de marge affiché à 0 %.")

        st.markdown("#### Composants")
        plate_components_editor(plate)

        if cyclic is None:
            fig = cost_pie(plate)
            if fig is not None:
                st.pyplot(fig)
                plt.close(fig)
                st.caption("Répartition du coût par composant")

        if st.button("Supprimer ce plat 🗑️", key=f"del_plate_{pk}"):
            kitchen.remove_plate(plate)
            save_kitchen(kitchen)
            st.warning("Plat supprimé")
            st.rerun()


if page == "Plats (Recettes)":
    st.header("Plats (Recettes)")

    if st.button("➕ Ajouter une Nouvelle Recette", key="show_new_recipe"):
        st.session_state.show_add_recipe_form = True

    if st.session_state.show_add_recipe_form:
        with st.form("new_recipe_form"):
            st.subheader("Créer une Nouvelle Recette")
            name = st.text_input("Nom", key="nr_name")
            price = st.number_input("Prix de Vente", min_value=0.0, value=0.0, step=0.1, key="nr_price")
            prep = st.number_input("Temps de Préparation (h)", min_value=0.0, max_value=24.0,
                                   value=0.5, step=0.1, key="nr_prep")
            bq = st.number_input("Quantité par Lot", min_value=0.1, max_value=1000.0,
                                 value=1.0, step=0.1, key="nr_bq")
            bu = st.selectbox("Unité du Lot", UNITS, index=UNITS.index(QuantityUnit.UNIT),
                              format_func=unit_label, key="nr_bu")
            c1, c2 = st.columns(2)
            create = c1.form_submit_button("Créer la Recette")
            cancel = c2.form_submit_button("Annuler")
            if create:
                if not name.strip():
                    st.error("Veuillez saisir un nom")
                else:
                    try:
                        kitchen.plates.append(Plate(name.strip(), selling_price=price,
                                                    batch_preparation_time_hours=prep,
                                                    batch_quantity=bq, batch_unit=bu))
                    except InvalidQuantityError as e:
                        st.error(str(e))
                    else:
                        save_kitchen(kitchen)
                        st.session_state.show_add_recipe_form = False
                        st.success("Recette créée")
                        st.rerun()
            if cancel:
                st.session_state.show_add_recipe_form = False
                st.rerun()

    st.divider()
    if not kitchen.plates:
        st.info("Aucune recette. Créez-en une ci-dessus.")
    for plate in list(kitchen.plates):
        plate_card(plate)
    save_kitchen(kitchen)

# -----------------------------------------------------------------------------
# INGREDIENTS
# -----------------------------------------------------------------------------
if page == "Ingrédients":
    st.header("Ingrédients")
    filter_txt = st.sidebar.text_input("Filtrer les ingrédients", key="ing_filter")
    type_filter = st.sidebar.multiselect("Types", TYPES, format_func=lambda t: t.label,
                                         key="ing_type_filter")

    with st.expander("Ajouter un Nouvel Ingrédient ➕"):
        with st.form("add_ingredient_form"):
            new_name = st.text_input("Nom", key="ni_name")
            new_price = st.number_input("Prix", min_value=0.0, value=0.0, step=0.01, key="ni_price")
            new_qty = st.number_input("Quantité Réf.", min_value=0.0001, value=100.0, step=1.0,
                                      key="ni_qty")
            new_unit = st.selectbox("Unité", UNITS, format_func=unit_label, key="ni_unit")
            new_type = st.selectbox("Type", TYPES, format_func=lambda t: t.label, key="ni_type")
            if st.form_submit_button("Ajouter Ingrédient"):
                if not new_name.strip():
                    st.error("Veuillez saisir un nom")
                else:
                    try:
                        kitchen.ingredients.append(
                            Ingredient(new_name.strip(), new_price, new_qty, new_unit, new_type))
                    except InvalidQuantityError as e:
                        st.error(str(e))
                    else:
                        save_kitchen(kitchen)
                        st.success("Ingrédient ajouté")
                        st.rerun()

    st.divider()
    names = [
        i for i in kitchen.ingredients
        if filter_txt.lower() in i.name.lower()
        and (not type_filter or i.ingredient_type in type_filter)
    ]
    for ing in names:
        ik = id(ing)
        with st.expander(ing.name, expanded=False):
            set_field(ing, "cost_price",
                      st.number_input("Prix de Revient", min_value=0.0, value=float(ing.cost_price),
                                      step=0.01, key=f"ing_price_{ik}"))
            set_field(ing, "reference_quantity",
                      st.number_input(f"Quantité de Référence ({ing.unit.value})", min_value=0.0001,
                                      value=float(ing.reference_quantity), step=1.0,
                                      key=f"ing_qty_{ik}"))
            st.write(f"Fournisseur : {ing.supplier.name}"
                     + (f" ({ing.supplier.contact})" if ing.supplier.contact else ""))
            st.write(f"Type : {ing.ingredient_type.label}")
            st.info(f"Coût unitaire : {format_money(ing.cost_per_unit())}/{ing.unit.value}")
            users = kitchen.users_of(ing)
            if users:
                st.caption("Utilisé dans : " + ", ".join(p.name for p in users))
            if st.button("Supprimer 🗑", key=f"del_ing_{ik}"):
                # recipes keep their reference; only the catalog entry goes
                kitchen.remove_ingredient(ing)
                save_kitchen(kitchen)
                st.warning("Ingrédient retiré du catalogue")
                st.rerun()
    save_kitchen(kitchen)

# -----------------------------------------------------------------------------
# SETTINGS
# -----------------------------------------------------------------------------
if page == "Réglages":
    st.header("Réglages")

    settings["label"] = st.text_input("Libellé", value=settings.get("label", ""), key="settings_label")
    settings["value"] = st.slider("Valeur", 0.0, 10.0, float(settings.get("value", 2.7)),
                                  key="settings_value")
    settings["labor_rate"] = st.number_input("Taux horaire main-d'œuvre", min_value=0.0,
                                             value=labor_rate(), step=0.5, key="settings_rate")
    locales = config.LOCALES
    current = settings.get("locale", config.LOCALE)
    settings["locale"] = st.selectbox("Langue d'affichage", locales,
                                      index=locales.index(current) if current in locales else 0,
                                      key="settings_locale")
    if st.button("Enregistrer", key="settings_save"):
        save_settings(settings)
        st.success("Réglages enregistrés")

    st.markdown("---")
    if st.button("Réinitialiser les données d'exemple", key="settings_reset"):
        st.session_state.kitchen = sample_kitchen()
        save_kitchen(st.session_state.kitchen)
        logger.info("Kitchen reset to sample data")
        st.rerun()
