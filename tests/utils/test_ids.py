import pytest
from bson import ObjectId

# Module to test
from utils.ids import extract_id, is_object_id, new_object_id

VALID = "507f1f77bcf86cd799439011"


@pytest.mark.parametrize(
    "value, expected",
    [
        (VALID, True),
        (ObjectId(VALID), True),
        ("507f1f77bcf86cd79943901", False),  # too short
        ("507f1f77bcf86cd79943901z", False),  # not hex
        ("", False),
        (None, False),
        (12, False),
        (b"abcdefghijkl", False),  # 12 raw bytes are not accepted
    ],
)
def test_is_object_id(value, expected):
    assert is_object_id(value) is expected


def test_new_object_id_is_valid_and_unique():
    first, second = new_object_id(), new_object_id()
    assert is_object_id(first)
    assert first != second


class Holder:
    id = VALID


@pytest.mark.parametrize(
    "ref, expected",
    [
        (VALID, VALID),
        ({"id": VALID, "name": "Laptop"}, VALID),
        ({"_id": ObjectId(VALID)}, VALID),
        (Holder(), VALID),
        ({"name": "Laptop"}, None),
        ("not-an-id", "not-an-id"),
    ],
)
def test_extract_id(ref, expected):
    assert extract_id(ref) == expected
