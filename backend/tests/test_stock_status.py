"""Stock status derivation."""

import pytest

from stockdesk.stock_status import StockStatus, derive_status


@pytest.mark.parametrize(
    "quantity,min_stock,expected",
    [
        (0, 5, StockStatus.OUT_OF_STOCK),
        (0, 0, StockStatus.OUT_OF_STOCK),
        (1, 5, StockStatus.LOW_STOCK),
        (5, 5, StockStatus.LOW_STOCK),
        (6, 5, StockStatus.IN_STOCK),
        (1, 0, StockStatus.IN_STOCK),
        (2, 2, StockStatus.LOW_STOCK),
        (100, 5, StockStatus.IN_STOCK),
    ],
)
def test_derive_status(quantity, min_stock, expected):
    assert derive_status(quantity, min_stock) is expected


def test_status_values_match_stored_strings():
    assert StockStatus.IN_STOCK.value == "in_stock"
    assert StockStatus.LOW_STOCK.value == "low_stock"
    assert StockStatus.OUT_OF_STOCK.value == "out_of_stock"
    # str mixin: the enum compares equal to its stored column value
    assert derive_status(0, 5) == "out_of_stock"
