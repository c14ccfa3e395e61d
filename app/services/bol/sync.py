"""
Bol.com order reconciliation.

Fetches page 1 of fulfilment-by-retailer open orders for one installation and
merges them into ``orders`` / ``order_items``:

- Orders are keyed by ``order_number`` (the Bol order id); a repeat sighting
  updates the row in place.
- Items with an EAN are inserted with insert-or-ignore on the
  ``(order_id, ean)`` unique constraint; existing items are never updated.
- Per-order detail, item and shipment sub-calls are best effort. A failed
  sub-call is logged and the summary's own fields are used instead.
"""
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import FulfilmentStatus, PlatformName
from app.core.exceptions import DetailFetchFailed, PersistenceError
from app.models.order import Order, OrderItem
from app.schemas.integration import BolCredentials
from app.services.bol.client import BolClient
from app.services.bol.status_mapping import map_status
from app.services.integration_service import get_bol_credentials

logger = logging.getLogger(__name__)

DEFAULT_COUNTRY = "NL"
UNKNOWN_CUSTOMER = "Unknown"
UNKNOWN_PRODUCT = "Unknown Product"


@dataclass
class SyncResult:
    imported: int = 0
    updated: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _parse_datetime(value: Any) -> Optional[datetime]:
    """ISO-8601 string from Bol -> naive UTC datetime; anything else -> None"""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable Bol datetime: {value!r}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def item_unit_price(item: Dict[str, Any]) -> Decimal:
    """First present of unitPrice, totalPrice, offerPrice"""
    for key in ("unitPrice", "totalPrice", "offerPrice"):
        if item.get(key) is not None:
            return _to_decimal(item[key])
    return Decimal("0")


def item_quantity(item: Dict[str, Any]) -> int:
    try:
        quantity = int(item.get("quantity") or 1)
    except (TypeError, ValueError):
        quantity = 1
    return quantity if quantity > 0 else 1


def item_ean(item: Dict[str, Any]) -> Optional[str]:
    product = item.get("product") or {}
    return item.get("ean") or product.get("ean") or None


def customer_name(details: Dict[str, Any]) -> str:
    first_name = details.get("firstName") or ""
    surname = details.get("surname") or ""
    return f"{first_name} {surname}".strip() or UNKNOWN_CUSTOMER


def format_address(details: Dict[str, Any]) -> str:
    parts = [
        details.get("streetName"),
        details.get("houseNumber"),
        details.get("zipCode"),
        details.get("city"),
    ]
    return ", ".join(str(part) for part in parts if part)


def order_value(items: List[Dict[str, Any]]) -> Decimal:
    total = sum((item_unit_price(item) * item_quantity(item) for item in items), Decimal("0"))
    return total.quantize(Decimal("0.01"))


class BolOrderSyncService:
    """Reconciles one installation's Bol.com open orders into the local store."""

    def __init__(self, db: AsyncSession, client: BolClient):
        self.db = db
        self.client = client

    async def reconcile(self, installation_id: int, user_id: Optional[int] = None) -> SyncResult:
        """
        Run one reconciliation for an installation.

        Args:
            installation_id: Tenant whose credentials and orders are used
            user_id: Set on newly created orders when a user triggered the sync

        Returns:
            SyncResult: imported/updated counts, total = imported + updated

        Raises:
            IntegrationNotFoundError / CredentialsFormatError: no usable credentials
            BolServiceError: order list could not be fetched
            PersistenceError: database failure; nothing of this run is kept
        """
        credentials = await get_bol_credentials(self.db, installation_id)

        logger.info(f"Starting Bol.com order sync for installation {installation_id}")
        response = await self.client.get_open_orders(credentials, page=1)
        orders = response.get("orders") or []
        logger.info(f"Bol.com returned {len(orders)} open orders for installation {installation_id}")

        result = SyncResult()
        try:
            for summary in orders:
                created = await self._reconcile_order(credentials, installation_id, summary, user_id)
                if created:
                    result.imported += 1
                else:
                    result.updated += 1
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error during Bol.com sync for installation {installation_id}: {str(e)}")
            raise PersistenceError(f"Database error while storing Bol.com orders: {str(e)}") from e
        except Exception:
            await self.db.rollback()
            raise

        result.total = result.imported + result.updated
        logger.info(
            f"Bol.com sync for installation {installation_id} finished: "
            f"{result.imported} imported, {result.updated} updated"
        )
        return result

    async def _fetch_detail(self, label: str, order_id: str, coro) -> Optional[Dict[str, Any]]:
        try:
            return await coro
        except Exception as exc:  # noqa: BLE001
            failure = DetailFetchFailed(f"Failed to fetch {label} for order {order_id}: {str(exc)}")
            logger.warning(str(failure))
            return None

    async def _fetch_details(
        self, credentials: BolCredentials, order_id: str
    ) -> Tuple[Optional[Dict], Optional[Dict], Optional[Dict]]:
        details = await self._fetch_detail(
            "order details", order_id, self.client.get_order(credentials, order_id)
        )
        items = await self._fetch_detail(
            "order items", order_id, self.client.get_order_items(credentials, order_id)
        )
        shipments = await self._fetch_detail(
            "shipment details", order_id, self.client.get_shipments(credentials, order_id)
        )
        return details, items, shipments

    def build_order_data(
        self,
        installation_id: int,
        summary: Dict[str, Any],
        details: Optional[Dict[str, Any]],
    ) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
        """Map a Bol order (detail if available, else summary) onto Order columns"""
        payload = details or summary
        items = payload.get("orderItems") or summary.get("orderItems") or []
        shipment_details = payload.get("shipmentDetails") or payload.get("billingDetails") or {}

        fulfilment_status = items[0].get("fulfilmentStatus") if items else None

        data = {
            "order_number": summary["orderId"],
            "installation_id": installation_id,
            "customer_name": customer_name(shipment_details),
            "customer_email": shipment_details.get("email"),
            "address": format_address(shipment_details),
            "country": shipment_details.get("countryCode") or DEFAULT_COUNTRY,
            "store_name": PlatformName.BOL.label,
            "platform": PlatformName.BOL.value,
            "order_date": _parse_datetime(payload.get("orderPlacedDateTime")),
            "delivery_date": _parse_datetime(payload.get("deliveryPromise")),
            "order_status": fulfilment_status or FulfilmentStatus.NEW.value,
            "shipping_status": fulfilment_status,
            "status": map_status(fulfilment_status),
            "order_value": order_value(items),
            "item_count": len(items),
        }
        return data, items

    async def _reconcile_order(
        self,
        credentials: BolCredentials,
        installation_id: int,
        summary: Dict[str, Any],
        user_id: Optional[int],
    ) -> bool:
        """Upsert one order and its items. Returns True when the order was created."""
        order_id = summary["orderId"]
        details, _items_detail, _shipments = await self._fetch_details(credentials, order_id)

        data, items = self.build_order_data(installation_id, summary, details)

        existing = (
            await self.db.execute(select(Order).where(Order.order_number == order_id))
        ).scalar_one_or_none()

        if existing:
            for key, value in data.items():
                setattr(existing, key, value)
            order = existing
            created = False
        else:
            order = Order(user_id=user_id, **data)
            self.db.add(order)
            created = True

        await self.db.flush()

        for item in items:
            await self._insert_item(order.id, item)

        logger.debug(f"{'Imported' if created else 'Updated'} Bol.com order {order_id} (status={data['status']})")
        return created

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(OrderItem)
        return sqlite.insert(OrderItem)

    async def _insert_item(self, order_pk: int, item: Dict[str, Any]) -> None:
        product = item.get("product") or {}
        images = product.get("images") or []
        image = images[0] if images else None
        if isinstance(image, dict):
            image = image.get("url")

        price = item_unit_price(item)
        values = {
            "order_id": order_pk,
            "product_name": product.get("title") or UNKNOWN_PRODUCT,
            "product_image": image,
            "ean": item_ean(item),
            "quantity": item_quantity(item),
            "price": price,
            "unit_price": price,
        }

        if values["ean"]:
            stmt = self._insert().values(**values).on_conflict_do_nothing(
                index_elements=["order_id", "ean"]
            )
            await self.db.execute(stmt)
            return

        # NULL eans never collide on the unique constraint
        existing = (
            await self.db.execute(
                select(OrderItem.id)
                .where(OrderItem.order_id == order_pk, OrderItem.ean.is_(None))
                .limit(1)
            )
        ).scalar_one_or_none()
        if existing is None:
            self.db.add(OrderItem(**values))
