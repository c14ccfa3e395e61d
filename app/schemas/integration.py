"""
Integration schemas.

Stored credential blobs are opaque JSON strings whose shape depends on the
platform. ``CREDENTIAL_SCHEMAS`` maps each platform identifier to its typed
credential model so the blob is parsed exactly once, at the service boundary.
"""
import hashlib
import json
from datetime import datetime
from typing import Any, Dict, Optional, Type

from pydantic import ConfigDict, Field, ValidationError

from app.core.enums import PlatformName
from app.core.exceptions import CredentialsFormatError
from app.schemas.base import BaseSchema


class PlatformCredentials(BaseSchema):
    """Credentials for a platform without a dedicated schema; keys are kept as stored."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class BolCredentials(PlatformCredentials):
    """Bol.com Retailer API client-credentials pair"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    client_id: str = Field(alias="clientId", min_length=1)
    client_secret: str = Field(alias="clientSecret", min_length=1)

    @property
    def fingerprint(self) -> str:
        """Stable, non-reversible key for caching tokens per credential pair"""
        raw = f"{self.client_id}:{self.client_secret}".encode("utf-8")
        return hashlib.sha256(raw).hexdigest()


CREDENTIAL_SCHEMAS: Dict[str, Type[PlatformCredentials]] = {
    PlatformName.BOL.value: BolCredentials,
}


def parse_credentials(platform: str, raw: Any) -> PlatformCredentials:
    """
    Deserialize a stored credential blob into the platform's credential model.

    Args:
        platform: Platform identifier, e.g. 'bol.com'
        raw: JSON string as stored, or an already-decoded dict

    Raises:
        CredentialsFormatError: If the blob is not JSON or misses required keys
    """
    schema = CREDENTIAL_SCHEMAS.get(platform, PlatformCredentials)

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CredentialsFormatError(f"Stored {platform} credentials are not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise CredentialsFormatError(f"Stored {platform} credentials must be a JSON object")

    try:
        return schema.model_validate(raw)
    except ValidationError as e:
        raise CredentialsFormatError(f"Stored {platform} credentials are incomplete: {e.error_count()} error(s)") from e


class IntegrationCreate(BaseSchema):
    installation_id: int = Field(alias="installationId")
    platform: str
    credentials: Dict[str, Any]
    settings: Optional[Dict[str, Any]] = None
    active: bool = True


class IntegrationUpdate(BaseSchema):
    credentials: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
    active: Optional[bool] = None


class IntegrationRead(BaseSchema):
    id: int
    installation_id: int = Field(serialization_alias="installationId")
    platform: str
    active: bool
    credentials: Dict[str, Any]
    settings: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, serialization_alias="updatedAt")
