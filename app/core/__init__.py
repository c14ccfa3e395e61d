"""
Core module exports.
"""
from .enums import (
    PlatformName,
    FulfilmentStatus,
    OrderStatus,
)

from .exceptions import (
    BaseServiceError,
    AccessDeniedError,
    IntegrationError,
    IntegrationNotFoundError,
    CredentialsFormatError,
    PlatformServiceError,
    BolServiceError,
    BolAuthenticationError,
    BolInvalidCredentialsError,
    BolAPIError,
    BolAccountInactiveError,
    DetailFetchFailed,
    PersistenceError,
)
