"""
Schema exports for the application.
"""

from .base import BaseSchema

from .integration import (
    PlatformCredentials,
    BolCredentials,
    CREDENTIAL_SCHEMAS,
    parse_credentials,
    IntegrationCreate,
    IntegrationUpdate,
    IntegrationRead,
)

from .bol import (
    ShipmentUpdateRequest,
    ReturnHandlingRequest,
    SyncOrdersResponse,
)
