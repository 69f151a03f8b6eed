import re
from datetime import date, datetime
from decimal import Decimal

import pytest

from searchplus.columns import (
    TYPE_BOOL,
    TYPE_DATE,
    TYPE_NUMERIC,
    TYPE_TEXT,
    Column,
    build_columns,
    infer_value_type,
    short_type,
)


@pytest.mark.parametrize(
    "value, column, expected",
    [
        ("Alice", "Nom", TYPE_TEXT),
        (None, "Nom", TYPE_TEXT),
        (True, "Actif", TYPE_BOOL),
        (42, "Qty", TYPE_NUMERIC),
        (3.5, "Prix", TYPE_NUMERIC),
        (date(2024, 1, 1), "Quand", TYPE_DATE),
        (datetime(2024, 1, 1, 8), "Quand", TYPE_DATE),
        ("2024-01-01", "Quand", TYPE_DATE),
        (1700000000, "created_at", TYPE_DATE),
        (1700000000, "Qty", TYPE_NUMERIC),
        (12, "Date", TYPE_NUMERIC),
    ],
)
def test_infer_value_type(value, column, expected):
    assert infer_value_type(value, column) == expected


def test_custom_date_hints():
    hints = re.compile(r"^when$", re.IGNORECASE)
    assert infer_value_type(1700000000, "When", hints) == TYPE_DATE
    assert infer_value_type(1700000000, "created_at", hints) == TYPE_NUMERIC


def test_short_type():
    assert [short_type(t) for t in (TYPE_TEXT, TYPE_NUMERIC, TYPE_BOOL, TYPE_DATE)] == ["TXT", "NUM", "BOOL", "DATE"]
    assert short_type("Choice") == "TXT"


def test_build_columns_follows_first_record_keys():
    records = [
        {"id": 1, "Nom": "Alice", "Salaire": None, "manualSort": 1},
        {"id": 2, "Nom": "Bob", "Salaire": 3100.0, "manualSort": 2},
    ]
    assert build_columns(records) == [Column("Nom", TYPE_TEXT), Column("Salaire", TYPE_NUMERIC)]


def test_build_columns_sample_size_limits_inference():
    records = [{"Note": None}, {"Note": None}, {"Note": 5}]
    assert build_columns(records, sample_size=2)[0].type == TYPE_TEXT
    assert build_columns(records, sample_size=3)[0].type == TYPE_NUMERIC


def test_build_columns_empty():
    assert build_columns([]) == []


def test_column_to_dict():
    assert Column("Nom").to_dict() == {"id": "Nom", "label": "Nom", "type": TYPE_TEXT}
    assert Column("Nom", label="Name").label == "Name"


def test_nan_numbers_are_numeric_not_dates():
    assert infer_value_type(Decimal("NaN"), "created_at") == TYPE_NUMERIC
    assert infer_value_type(float("nan"), "created_at") == TYPE_NUMERIC
    assert infer_value_type(Decimal("1700000000"), "created_at") == TYPE_DATE


def test_build_columns_survives_nan_values():
    records = [{"id": 1, "Prix": Decimal("NaN"), "Quand": "2024-05-13"}]
    assert build_columns(records) == [Column("Prix", TYPE_NUMERIC), Column("Quand", TYPE_DATE)]
