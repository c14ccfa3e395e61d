import pytest

from app.services.bol.status_mapping import STATUS_MAP, map_status


@pytest.mark.parametrize(
    "bol_status, expected",
    [
        ("OPEN", "open"),
        ("NEW", "open"),
        ("ANNOUNCED", "in-transit-to-fulfilment"),
        ("ARRIVED_AT_WH", "arrived-at-fulfilment"),
        ("SHIPPED", "shipped"),
        ("DELIVERED", "delivered"),
        ("CANCELLED", "cancelled"),
    ],
)
def test_known_statuses(bol_status, expected):
    assert map_status(bol_status) == expected


@pytest.mark.parametrize("bol_status", ["UNKNOWN_X", "", "shipped", None, 42])
def test_unknown_or_missing_status_maps_to_open(bol_status):
    assert map_status(bol_status) == "open"


def test_every_mapped_value_is_non_empty():
    assert all(STATUS_MAP.values())
