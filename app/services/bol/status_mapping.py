"""Bol.com fulfilment status -> internal order status."""

import logging
from typing import Optional

from app.core.enums import FulfilmentStatus, OrderStatus

logger = logging.getLogger(__name__)

STATUS_MAP = {
    FulfilmentStatus.OPEN.value: OrderStatus.OPEN.value,
    FulfilmentStatus.NEW.value: OrderStatus.OPEN.value,
    FulfilmentStatus.ANNOUNCED.value: OrderStatus.IN_TRANSIT_TO_FULFILMENT.value,
    FulfilmentStatus.ARRIVED_AT_WH.value: OrderStatus.ARRIVED_AT_FULFILMENT.value,
    FulfilmentStatus.SHIPPED.value: OrderStatus.SHIPPED.value,
    FulfilmentStatus.DELIVERED.value: OrderStatus.DELIVERED.value,
    FulfilmentStatus.CANCELLED.value: OrderStatus.CANCELLED.value,
}


def map_status(bol_status: Optional[str]) -> str:
    """Unknown or missing statuses map to 'open'; never raises."""
    mapped = STATUS_MAP.get(bol_status, OrderStatus.OPEN.value) if isinstance(bol_status, str) else OrderStatus.OPEN.value
    logger.debug(f"Mapping Bol status {bol_status!r} -> {mapped!r}")
    return mapped
