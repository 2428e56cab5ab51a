from __future__ import annotations

from mobrel.core.structured import as_obj_list, as_str_dict, get_int, get_str, get_value_id


def test_as_str_dict() -> None:
    assert as_str_dict({"a": 1}) == {"a": 1}
    assert as_str_dict({1: "a"}) is None
    assert as_str_dict([]) is None


def test_as_obj_list() -> None:
    assert as_obj_list([1, "a"]) == [1, "a"]
    assert as_obj_list({"a": 1}) is None


def test_get_str_strips_and_drops_empty() -> None:
    assert get_str({"k": "  v "}, "k") == "v"
    assert get_str({"k": "   "}, "k") is None
    assert get_str({"k": 3}, "k") is None


def test_get_int() -> None:
    assert get_int({"k": 3}, "k") == 3
    assert get_int({"k": "42"}, "k") == 42
    assert get_int({"k": True}, "k") is None
    assert get_int({"k": "4x"}, "k") is None


def test_get_value_id() -> None:
    assert get_value_id({"Id": {"Value": 11}}, "Id") == 11
    assert get_value_id({"Id": 12}, "Id") == 12
    assert get_value_id({"Id": {"Other": 1}}, "Id") is None
    assert get_value_id({}, "Id") is None
