import pytest

from items import (
    coerce_item,
    parse_area,
    parse_items,
    parse_options,
    validate_area,
    validate_items,
)
from models import Item, ValidationError


def test_parse_items_from_json_list():
    items, err = parse_items({"items": [{"id": 1, "weight": 4}, {"id": "b", "weight": "2.5"}]})
    assert err is None
    assert items == [Item(1, 4.0), Item("b", 2.5)]


def test_parse_items_from_form_json_text():
    items, err = parse_items({"items": ['[{"id": 7, "weight": 1}]']})
    assert err is None
    assert items == [Item(7, 1.0)]


def test_parse_items_parallel_arrays():
    items, err = parse_items({"id[]": ["1", "2"], "weight[]": ["3", "1"]})
    assert err is None
    assert items == [Item(1, 3.0), Item(2, 1.0)]

    _, err = parse_items({"id": [1, 2], "weight": [1]})
    assert "lengths differ" in err


def test_parse_items_weights_mapping_and_keys():
    items, err = parse_items({"weights": {"a": 2, "b": 1}})
    assert err is None
    assert items == [Item("a", 2.0), Item("b", 1.0)]

    items, err = parse_items({"weight_10": ["2"], "weight[x]": "1", "width": "100"})
    assert err is None
    assert items == [Item(10, 2.0), Item("x", 1.0)]


def test_parse_items_reports_nothing_parsed():
    assert parse_items({}) == ([], "nothing parsed from request")
    assert parse_items({"width": 10}) == ([], "nothing parsed from request")
    _, err = parse_items({"items": [{"id": 1, "weight": "heavy"}]})
    assert "no numeric weight" in err


def test_coerce_item_accepts_pairs_and_items():
    assert coerce_item(("a", 2), 0) == Item("a", 2.0)
    assert coerce_item(Item("z", 1), 0) == Item("z", 1)
    assert coerce_item({"weight": 1}, 5) == Item(5, 1.0)
    with pytest.raises(ValidationError):
        coerce_item(3, 0)


def test_validate_items_and_area():
    with pytest.raises(ValidationError):
        validate_items([])
    with pytest.raises(ValidationError):
        validate_items([Item(1, 0.25)])
    assert validate_items([Item(1, 0.5)]) == [Item(1, 0.5)]
    assert validate_area("400", 300) == (400.0, 300.0)
    with pytest.raises(ValidationError):
        validate_area("wide", 300)
    with pytest.raises(ValidationError):
        validate_area(0, 300)


def test_parse_area_variants():
    assert parse_area({"width": ["640"], "height": ["480"]}) == (640.0, 480.0)
    assert parse_area({"area": [300, 200]}) == (300.0, 200.0)
    with pytest.raises(ValidationError):
        parse_area({})


def test_parse_options_legacy_names():
    opts = parse_options({
        "max_ratio": "2.5",
        "max_attempts": ["500"],
        "get_all_configurations": "false",
        "log_verbosity": 4,
        "criteria": {"0": ["Up", "Down"], "3": ["DownPosition", "UpPosition"]},
    })
    assert opts == {
        "max_ratio": 2.5,
        "max_attempts": 500,
        "log_verbosity": 4,
        "return_all": False,
        "criteria": {0: ("Up", "Down"), 3: ("DownPosition", "UpPosition")},
    }


def test_parse_options_nested_and_string_criteria():
    opts = parse_options({"options": {"criteria": "Up/Down; Down/Up", "workers": 2}})
    assert opts == {"workers": 2, "criteria": {0: ("Up", "Down"), 1: ("Down", "Up")}}
    assert parse_options({"criteria": ["Down", "Up"]}) == {"criteria": {0: ("Down", "Up")}}


def test_parse_options_rejects_garbage():
    with pytest.raises(ValidationError):
        parse_options({"max_ratio": "tall"})
    with pytest.raises(ValidationError):
        parse_options({"return_all": "maybe"})
    with pytest.raises(ValidationError):
        parse_options({"criteria": 5})
