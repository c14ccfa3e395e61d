class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class AccessDeniedError(BaseServiceError):
    """Raised when a user is not assigned to the requested installation."""

    def __init__(self, message: str = "Access denied to this installation"):
        super().__init__(message)

class IntegrationError(BaseServiceError):
    """Base exception for marketplace integration records."""
    pass

class IntegrationNotFoundError(IntegrationError):
    """Raised when no active integration exists for an installation/platform pair."""
    pass

class CredentialsFormatError(IntegrationError):
    """Raised when a stored credential blob cannot be deserialized."""
    pass

class PlatformServiceError(BaseServiceError):
    """Base exception for platform service errors."""
    pass

class BolServiceError(PlatformServiceError):
    """Base exception for Bol.com-specific errors."""
    pass

class BolAuthenticationError(BolServiceError):
    """Raised when the Bol.com token endpoint rejects the request."""

    def __init__(self, message: str, status_code: int = None, body: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

class BolInvalidCredentialsError(BolAuthenticationError):
    """Raised when Bol.com answers 401 to the client credentials grant."""

    def __init__(self, message: str = "Ongeldige Bol.com API credentials. Controleer je Client ID en Client Secret."):
        super().__init__(message, status_code=401)

class BolAPIError(BolServiceError):
    """Raised when Bol.com API calls fail."""

    def __init__(self, message: str, status_code: int = None, detail: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

class BolAccountInactiveError(BolAPIError):
    """Raised when Bol.com answers 403: the retailer account has no API access."""

    def __init__(self, message: str = (
        "Bol.com account is niet actief. Neem contact op met Bol.com partnerservice "
        "(partnerservice@bol.com) om je API toegang te activeren."
    )):
        super().__init__(message, status_code=403)

class DetailFetchFailed(BolServiceError):
    """Soft failure of a per-order enrichment call. Logged, never raised to callers."""
    pass

class PersistenceError(BaseServiceError):
    """Raised when a database operation fails during synchronization."""
    pass
