# Overview: Stock status derivation shared by product management and the inventory ledger.

from __future__ import annotations

from enum import Enum


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


STOCK_STATUS_VALUES = tuple(s.value for s in StockStatus)

DEFAULT_MIN_STOCK = 5


def derive_status(quantity: int, min_stock: int) -> StockStatus:
    """
    Classify a product's stock level.

    out_of_stock when nothing is left, low_stock at or below the reorder
    threshold, in_stock otherwise. Product.status is never written from
    anywhere else.
    """
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= min_stock:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK
