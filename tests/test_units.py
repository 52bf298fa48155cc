import sys
from itertools import permutations
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
from units import (
    COUNT,
    MASS,
    VOLUME,
    QuantityUnit,
    conversion_factor_to,
    convert,
    dimension_of,
    is_convertible,
)


def test_gram_kilogram():
    assert conversion_factor_to(QuantityUnit.KILOGRAM, QuantityUnit.GRAM) == 1000.0
    assert conversion_factor_to(QuantityUnit.GRAM, QuantityUnit.KILOGRAM) == 0.001


def test_same_unit_is_identity():
    for u in QuantityUnit:
        assert conversion_factor_to(u, u) == 1.0


def test_volume_factors():
    assert conversion_factor_to(QuantityUnit.LITER, QuantityUnit.CENTILITER) == pytest.approx(100.0)
    assert conversion_factor_to(QuantityUnit.DECILITER, QuantityUnit.MILLILITER) == pytest.approx(100.0)
    assert conversion_factor_to(QuantityUnit.TABLESPOON, QuantityUnit.TEASPOON) == pytest.approx(3.0)
    assert convert(2, QuantityUnit.CUP, QuantityUnit.LITER) == pytest.approx(0.5)


def test_round_trip_within_dimension():
    units = [u for u in QuantityUnit if dimension_of(u) in (MASS, VOLUME)]
    for a, b in permutations(units, 2):
        if dimension_of(a) != dimension_of(b):
            continue
        assert convert(convert(123.45, a, b), b, a) == pytest.approx(123.45)


def test_cross_dimension_not_convertible():
    assert conversion_factor_to(QuantityUnit.GRAM, QuantityUnit.TEASPOON) is None
    assert conversion_factor_to(QuantityUnit.LITER, QuantityUnit.KILOGRAM) is None
    assert convert(10, QuantityUnit.PIECE, QuantityUnit.GRAM) is None
    assert not is_convertible(QuantityUnit.MILLIGRAM, QuantityUnit.MILLILITER)


def test_count_units_only_convert_to_themselves():
    assert dimension_of(QuantityUnit.SLICE) == COUNT
    assert conversion_factor_to(QuantityUnit.UNIT, QuantityUnit.PIECE) is None
    assert conversion_factor_to(QuantityUnit.SLICE, QuantityUnit.SLICE) == 1.0


def test_accepts_unit_symbols():
    assert conversion_factor_to("kg", "g") == 1000.0
    assert QuantityUnit("cl").label == "Centilitre"
