"""
Bol.com endpoints: order sync, shipments, labels, returns and the sync scheduler.

Error bodies follow the dashboard contract: ``{"error": ...}`` with an optional
``details`` field carrying the underlying exception message.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import FulfilmentStatus, OrderStatus
from app.core.exceptions import AccessDeniedError
from app.core.security import (
    CurrentUser,
    ensure_installation_access,
    get_current_user,
    require_global_admin,
)
from app.dependencies import get_bol_client, get_db
from app.models.order import Order
from app.scheduler import BolSyncScheduler, get_sync_scheduler
from app.schemas.bol import ReturnHandlingRequest, ShipmentUpdateRequest, SyncOrdersResponse
from app.services.bol.client import BolClient
from app.services.bol.sync import BolOrderSyncService
from app.services.integration_service import get_bol_credentials

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/bol", tags=["bol"])


def error_response(status_code: int, message: str, details: Optional[str] = None) -> JSONResponse:
    content: Dict[str, Any] = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@router.get("/sync-orders")
async def sync_orders(
    installation_id: Optional[int] = Query(None, alias="installationId"),
    db: AsyncSession = Depends(get_db),
    client: BolClient = Depends(get_bol_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Run one reconciliation for the installation right now"""
    if installation_id is None:
        return error_response(400, "Installation ID is required")

    try:
        await ensure_installation_access(db, current_user, installation_id)
        logger.info(f"User {current_user.id} triggered Bol.com sync for installation {installation_id}")
        result = await BolOrderSyncService(db, client).reconcile(installation_id, user_id=current_user.id)
        return SyncOrdersResponse(success=True, **result.to_dict())
    except AccessDeniedError as e:
        return error_response(403, str(e))
    except Exception as e:  # noqa: BLE001
        logger.error(f"Sync Bol orders error for installation {installation_id}: {str(e)}")
        return error_response(500, "Failed to sync orders from Bol.com", str(e))


@router.get("/shipping-label")
async def get_shipping_label(
    installation_id: Optional[int] = Query(None, alias="installationId"),
    order_id: Optional[str] = Query(None, alias="orderId"),
    db: AsyncSession = Depends(get_db),
    client: BolClient = Depends(get_bol_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    if installation_id is None or not order_id:
        return error_response(400, "Installation ID and Order ID are required")

    try:
        await ensure_installation_access(db, current_user, installation_id)
        credentials = await get_bol_credentials(db, installation_id)
        return await client.get_shipping_label(credentials, order_id)
    except AccessDeniedError as e:
        return error_response(403, str(e))
    except Exception as e:  # noqa: BLE001
        logger.error(f"Get Bol shipping label error for order {order_id}: {str(e)}")
        return error_response(500, "Failed to get shipping label from Bol.com", str(e))


@router.put("/shipment")
async def update_shipment(
    payload: ShipmentUpdateRequest,
    installation_id: Optional[int] = Query(None, alias="installationId"),
    db: AsyncSession = Depends(get_db),
    client: BolClient = Depends(get_bol_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Push shipment/tracking to Bol.com, then mark the local order shipped"""
    if installation_id is None or not payload.order_id:
        return error_response(400, "Installation ID and Order ID are required")

    try:
        await ensure_installation_access(db, current_user, installation_id)
        credentials = await get_bol_credentials(db, installation_id)
        result = await client.update_shipment(credentials, payload.order_id, payload.to_bol_payload())

        order = (
            await db.execute(select(Order).where(Order.order_number == payload.order_id))
        ).scalar_one_or_none()
        if order:
            order.status = OrderStatus.SHIPPED.value
            order.shipping_status = FulfilmentStatus.SHIPPED.value
            await db.commit()
        else:
            logger.warning(f"Shipment sent to Bol.com for unknown local order {payload.order_id}")

        return {"success": True, "data": result}
    except AccessDeniedError as e:
        return error_response(403, str(e))
    except Exception as e:  # noqa: BLE001
        logger.error(f"Update Bol shipment error for order {payload.order_id}: {str(e)}")
        return error_response(500, "Failed to update shipment on Bol.com", str(e))


@router.get("/returns")
async def get_returns(
    installation_id: Optional[int] = Query(None, alias="installationId"),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
    client: BolClient = Depends(get_bol_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    if installation_id is None:
        return error_response(400, "Installation ID is required")

    try:
        await ensure_installation_access(db, current_user, installation_id)
        credentials = await get_bol_credentials(db, installation_id)
        return await client.get_returns(credentials, page)
    except AccessDeniedError as e:
        return error_response(403, str(e))
    except Exception as e:  # noqa: BLE001
        logger.error(f"Get Bol returns error for installation {installation_id}: {str(e)}")
        return error_response(500, "Failed to get returns from Bol.com", str(e))


@router.put("/return/{return_id}")
async def handle_return(
    return_id: str,
    payload: ReturnHandlingRequest,
    installation_id: Optional[int] = Query(None, alias="installationId"),
    db: AsyncSession = Depends(get_db),
    client: BolClient = Depends(get_bol_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    if installation_id is None:
        return error_response(400, "Installation ID is required")

    try:
        await ensure_installation_access(db, current_user, installation_id)
        credentials = await get_bol_credentials(db, installation_id)
        result = await client.handle_return(credentials, return_id, payload.to_bol_payload())
        return {"success": True, "data": result}
    except AccessDeniedError as e:
        return error_response(403, str(e))
    except Exception as e:  # noqa: BLE001
        logger.error(f"Handle Bol return error for return {return_id}: {str(e)}")
        return error_response(500, "Failed to handle return on Bol.com", str(e))


@router.get("/scheduler/status")
async def scheduler_status(
    scheduler: BolSyncScheduler = Depends(get_sync_scheduler),
    current_user: CurrentUser = Depends(require_global_admin),
):
    """Scheduler state, next run and the last cycle's outcome"""
    return scheduler.status()


@router.post("/scheduler/trigger")
async def trigger_sync_cycle(
    scheduler: BolSyncScheduler = Depends(get_sync_scheduler),
    current_user: CurrentUser = Depends(require_global_admin),
):
    logger.info(f"User {current_user.id} manually triggered a Bol.com sync cycle")
    summary = await scheduler.run_cycle()
    if summary is None:
        return {"status": "skipped", "message": "A sync cycle is already running"}
    return {"status": "success", "cycle": summary.to_dict()}
