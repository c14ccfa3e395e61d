"""
Integration management endpoints.

Credentials are write-only: responses carry a truncated client id and a
``hasSecret`` flag, never the secret itself.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessDeniedError, CredentialsFormatError, IntegrationNotFoundError
from app.core.security import CurrentUser, ensure_installation_access, get_current_user
from app.dependencies import get_bol_client, get_db
from app.routes.bol import error_response
from app.schemas.integration import IntegrationCreate, IntegrationRead, IntegrationUpdate
from app.services import integration_service
from app.services.bol.client import BolClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/integrations", tags=["integrations"])


def _read(integration) -> dict:
    data = integration_service.serialize_integration(integration)
    return IntegrationRead(**data).model_dump(by_alias=True, mode="json")


@router.get("")
async def list_integrations(
    installation_id: Optional[int] = Query(None, alias="installationId"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    if installation_id is None:
        return error_response(400, "Installation ID is required")

    try:
        await ensure_installation_access(db, current_user, installation_id)
    except AccessDeniedError as e:
        return error_response(403, str(e))

    integrations = await integration_service.list_integrations(db, installation_id)
    return {"integrations": [_read(integration) for integration in integrations]}


@router.post("")
async def create_integration(
    payload: IntegrationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        await ensure_installation_access(db, current_user, payload.installation_id)
        integration = await integration_service.create_integration(db, payload)
        return {"integration": _read(integration)}
    except AccessDeniedError as e:
        return error_response(403, str(e))
    except CredentialsFormatError as e:
        return error_response(400, str(e))


async def _load_for_user(db: AsyncSession, integration_id: int, current_user: CurrentUser):
    integration = await integration_service.get_integration(db, integration_id)
    await ensure_installation_access(db, current_user, integration.installation_id)
    return integration


@router.put("/{integration_id}")
async def update_integration(
    integration_id: int,
    payload: IntegrationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        integration = await _load_for_user(db, integration_id, current_user)
        integration = await integration_service.update_integration(db, integration, payload)
        return {"integration": _read(integration)}
    except IntegrationNotFoundError as e:
        return error_response(404, str(e))
    except AccessDeniedError as e:
        return error_response(403, str(e))
    except CredentialsFormatError as e:
        return error_response(400, str(e))


@router.delete("/{integration_id}")
async def delete_integration(
    integration_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        integration = await _load_for_user(db, integration_id, current_user)
        await integration_service.delete_integration(db, integration)
        return {"success": True, "message": "Integration deleted successfully"}
    except IntegrationNotFoundError as e:
        return error_response(404, str(e))
    except AccessDeniedError as e:
        return error_response(403, str(e))


@router.post("/{integration_id}/test")
async def test_integration(
    integration_id: int,
    db: AsyncSession = Depends(get_db),
    client: BolClient = Depends(get_bol_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Check the stored credentials against the marketplace"""
    try:
        integration = await _load_for_user(db, integration_id, current_user)
    except IntegrationNotFoundError as e:
        return error_response(404, str(e))
    except AccessDeniedError as e:
        return error_response(403, str(e))

    return await integration_service.check_integration_connection(integration, client)
