"""
Marketplace integration records: credential resolution and management.

Credential blobs are stored as serialized JSON in ``integrations.credentials``
and are parsed into their typed schema here, never further downstream.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import PlatformName
from app.core.exceptions import (
    BolAuthenticationError,
    CredentialsFormatError,
    IntegrationNotFoundError,
)
from app.models.integration import Integration
from app.schemas.integration import (
    BolCredentials,
    IntegrationCreate,
    IntegrationUpdate,
    parse_credentials,
)

logger = logging.getLogger(__name__)


async def get_bol_credentials(db: AsyncSession, installation_id: int) -> BolCredentials:
    """
    Resolve the active Bol.com credential pair for an installation.

    When several active bol.com integrations exist, the oldest one wins.

    Raises:
        IntegrationNotFoundError: No active bol.com integration for the installation
        CredentialsFormatError: Stored blob is not valid JSON or lacks clientId/clientSecret
    """
    stmt = (
        select(Integration)
        .where(
            Integration.installation_id == installation_id,
            Integration.platform == PlatformName.BOL.value,
            Integration.active.is_(True),
        )
        .order_by(Integration.id)
        .limit(1)
    )
    integration = (await db.execute(stmt)).scalar_one_or_none()

    if not integration:
        raise IntegrationNotFoundError("Bol.com integration not found or inactive")

    return parse_credentials(PlatformName.BOL.value, integration.credentials)


def sanitize_credentials(blob: Any) -> Dict[str, Any]:
    """Public view of a credential blob: truncated client id, never the secret"""
    if isinstance(blob, (str, bytes)):
        try:
            blob = json.loads(blob)
        except ValueError:
            logger.warning("Stored integration credentials are not valid JSON")
            blob = {}
    if not isinstance(blob, dict):
        blob = {}

    client_id = blob.get("clientId")
    return {
        "clientId": f"{str(client_id)[:8]}..." if client_id else None,
        "hasSecret": bool(blob.get("clientSecret")),
    }


def _load_settings(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning("Stored integration settings are not valid JSON")
        return None
    return value if isinstance(value, dict) else None


def serialize_integration(integration: Integration) -> Dict[str, Any]:
    return {
        "id": integration.id,
        "installation_id": integration.installation_id,
        "platform": integration.platform,
        "active": integration.active,
        "credentials": sanitize_credentials(integration.credentials),
        "settings": _load_settings(integration.settings),
        "created_at": integration.created_at,
        "updated_at": integration.updated_at,
    }


def _validate_credentials(platform: str, credentials: Dict[str, Any]) -> None:
    if platform == PlatformName.BOL.value:
        try:
            parse_credentials(platform, credentials)
        except CredentialsFormatError:
            raise CredentialsFormatError("Client ID and Client Secret are required for Bol.com")


async def list_integrations(db: AsyncSession, installation_id: int) -> List[Integration]:
    stmt = (
        select(Integration)
        .where(Integration.installation_id == installation_id)
        .order_by(Integration.created_at.desc(), Integration.id.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def get_integration(db: AsyncSession, integration_id: int) -> Integration:
    integration = await db.get(Integration, integration_id)
    if not integration:
        raise IntegrationNotFoundError("Integration not found")
    return integration


async def create_integration(db: AsyncSession, data: IntegrationCreate) -> Integration:
    """
    Store a new integration. Several integrations per platform are allowed.

    Raises:
        CredentialsFormatError: bol.com credentials without clientId/clientSecret
    """
    _validate_credentials(data.platform, data.credentials)

    integration = Integration(
        installation_id=data.installation_id,
        platform=data.platform,
        active=data.active,
        credentials=json.dumps(data.credentials),
        settings=json.dumps(data.settings) if data.settings else None,
    )
    db.add(integration)
    await db.commit()
    await db.refresh(integration)

    logger.info(f"Created {data.platform} integration {integration.id} for installation {data.installation_id}")
    return integration


async def update_integration(db: AsyncSession, integration: Integration, data: IntegrationUpdate) -> Integration:
    if data.credentials:
        _validate_credentials(integration.platform, data.credentials)
        integration.credentials = json.dumps(data.credentials)
    if data.settings:
        integration.settings = json.dumps(data.settings)
    if data.active is not None:
        integration.active = data.active

    await db.commit()
    await db.refresh(integration)

    logger.info(f"Updated integration {integration.id}")
    return integration


async def delete_integration(db: AsyncSession, integration: Integration) -> None:
    integration_id = integration.id
    await db.delete(integration)
    await db.commit()
    logger.info(f"Deleted integration {integration_id}")


async def check_integration_connection(integration: Integration, client) -> Dict[str, Any]:
    """
    Check stored credentials against the marketplace.

    Only bol.com can be tested; the check is a client-credentials token request.
    """
    if integration.platform != PlatformName.BOL.value:
        return {"success": False, "message": "Platform not supported for testing"}

    try:
        credentials = parse_credentials(integration.platform, integration.credentials)
        await client.authenticate(credentials.client_id, credentials.client_secret)
    except (CredentialsFormatError, BolAuthenticationError) as e:
        logger.warning(f"Connection test failed for integration {integration.id}: {str(e)}")
        return {"success": False, "message": str(e)}

    return {"success": True, "message": "Connection test successful"}
