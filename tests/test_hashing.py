import re

from services.metrics import hash_input_data


def test_known_value():
    # "{}" -> 123 * 31 + 125 = 3938 -> "31e"
    assert hash_input_data({}) == "31e"


def test_key_order_does_not_matter():
    assert hash_input_data({"a": 1, "b": {"c": 2, "d": 3}}) == hash_input_data({"b": {"d": 3, "c": 2}, "a": 1})


def test_different_payloads_differ():
    assert hash_input_data({"arr": 100000}) != hash_input_data({"arr": 100001})


def test_base36_output_for_long_payloads():
    value = hash_input_data({"answer": "We grew MRR to €45k with 120 paying customers. " * 20})

    assert re.fullmatch(r"[0-9a-z]+", value)
    assert len(value) <= 7


def test_accepts_strings():
    assert hash_input_data("ARR is 1M") == hash_input_data("ARR is 1M")
