"""
Shared enums and constants used across the application.
"""

from enum import Enum


class PlatformName(str, Enum):
    BOL = "bol.com"

    @property
    def label(self):
        return "Bol.com"


class FulfilmentStatus(str, Enum):
    """Fulfilment stages reported by the Bol.com Retailer API"""
    OPEN = "OPEN"
    NEW = "NEW"
    ANNOUNCED = "ANNOUNCED"
    ARRIVED_AT_WH = "ARRIVED_AT_WH"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class OrderStatus(str, Enum):
    """Internal fulfilment-stage values stored in orders.status"""
    OPEN = "open"
    IN_TRANSIT_TO_FULFILMENT = "in-transit-to-fulfilment"
    ARRIVED_AT_FULFILMENT = "arrived-at-fulfilment"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
