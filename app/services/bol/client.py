import json
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from app.core.config import Settings
from app.core.exceptions import (
    BolAPIError,
    BolAccountInactiveError,
    BolAuthenticationError,
    BolInvalidCredentialsError,
)
from app.schemas.integration import BolCredentials
from app.services.bol.token_manager import BolTokenCache

logger = logging.getLogger(__name__)

BOL_MEDIA_TYPE = "application/vnd.retailer.v10+json"


class BolClient:
    """
    Asynchronous client for the Bol.com Retailer API (v10).

    Functionality:
        - OAuth2 client-credentials token acquisition (authenticate), with an
          optional short-lived in-memory cache keyed by credential fingerprint.
        - Authenticated resource calls (call) that turn HTTP/JSON error bodies
          into BolAPIError / BolAccountInactiveError.
        - Order, shipment and return helpers used by the order sync and the
          /api/bol routes.

    Documentation: https://api.bol.com/retailer/public/Retailer-API/v10/functional/retailer-api/orders-shipments.html
    """

    PRODUCTION_TOKEN_URL = "https://login.bol.com/token"
    PRODUCTION_BASE_URL = "https://api.bol.com/retailer"

    def __init__(
        self,
        token_url: str = PRODUCTION_TOKEN_URL,
        base_url: str = PRODUCTION_BASE_URL,
        timeout: float = 30.0,
        token_cache: Optional[BolTokenCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Bol.com client

        Args:
            token_url: OAuth2 token endpoint
            base_url: Retailer API base URL
            timeout: Seconds before any single request is abandoned
            token_cache: Token cache; None re-authenticates for every request
            transport: Optional httpx transport (used by tests)
        """
        self.token_url = token_url
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token_cache = token_cache or BolTokenCache(ttl_seconds=0)
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "BolClient":
        return cls(
            token_url=settings.BOL_TOKEN_URL,
            base_url=settings.BOL_API_BASE_URL,
            timeout=settings.BOL_REQUEST_TIMEOUT,
            token_cache=BolTokenCache(ttl_seconds=settings.BOL_TOKEN_CACHE_TTL),
        )

    def _http_client(self) -> httpx.AsyncClient:
        if self.transport is not None:
            return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        return httpx.AsyncClient(timeout=self.timeout)

    # Authentication

    async def _request_token(self, client_id: str, client_secret: str) -> Dict[str, Any]:
        try:
            async with self._http_client() as client:
                response = await client.post(
                    self.token_url,
                    data={"grant_type": "client_credentials"},
                    auth=httpx.BasicAuth(client_id, client_secret),
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout requesting Bol.com token: {str(e)}")
            raise BolAuthenticationError(f"Token request timed out: {str(e)}")
        except httpx.RequestError as e:
            logger.error(f"Network error requesting Bol.com token: {str(e)}")
            raise BolAuthenticationError(f"Network error requesting access token: {str(e)}")

        if response.status_code == 401:
            logger.warning("Bol.com rejected client credentials (401)")
            raise BolInvalidCredentialsError()

        if not response.is_success:
            error_text = response.text
            logger.error(f"Bol.com token request failed: {response.status_code} - {error_text}")
            raise BolAuthenticationError(
                f"Failed to authenticate with Bol.com API: {response.status_code} - {error_text}",
                status_code=response.status_code,
                body=error_text,
            )

        try:
            token_data = response.json()
        except ValueError:
            raise BolAuthenticationError(
                "Bol.com token endpoint returned invalid JSON",
                status_code=response.status_code,
                body=response.text,
            )

        if not token_data.get("access_token"):
            raise BolAuthenticationError(
                "Bol.com token response did not contain an access token",
                status_code=response.status_code,
                body=response.text,
            )
        return token_data

    async def authenticate(self, client_id: str, client_secret: str) -> str:
        """
        Exchange a client id/secret pair for an access token

        Raises:
            BolInvalidCredentialsError: Bol.com answered 401
            BolAuthenticationError: Any other failure
        """
        token_data = await self._request_token(client_id, client_secret)
        return token_data["access_token"]

    async def _get_access_token(self, credentials: BolCredentials) -> Tuple[str, bool]:
        """Return (access_token, came_from_cache)"""
        fingerprint = credentials.fingerprint
        cached = self.token_cache.get_access_token(fingerprint)
        if cached:
            return cached, True

        token_data = await self._request_token(credentials.client_id, credentials.client_secret)
        self.token_cache.save_access_token(
            fingerprint, token_data["access_token"], token_data.get("expires_in")
        )
        return token_data["access_token"], False

    # Resource calls

    async def call(
        self,
        access_token: str,
        path: str,
        method: str = "GET",
        body: Optional[Dict] = None,
    ) -> Dict:
        """
        Make an authenticated request to the Retailer API

        Args:
            access_token: Bearer token from authenticate()
            path: Endpoint path including query string, e.g. '/orders/123'
            method: HTTP method
            body: JSON payload for PUT/POST

        Returns:
            Dict: Decoded JSON response ({} for empty bodies)

        Raises:
            BolAccountInactiveError: Bol.com answered 403
            BolAPIError: Any other non-2xx response, timeout or network error
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": BOL_MEDIA_TYPE,
            "Content-Type": BOL_MEDIA_TYPE,
        }
        content = json.dumps(body) if body is not None else None

        logger.debug(f"Making {method} request to {url}")

        try:
            async with self._http_client() as client:
                response = await client.request(method, url, headers=headers, content=content)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling Bol.com {method} {path}: {str(e)}")
            raise BolAPIError(f"Request timed out: {str(e)}")
        except httpx.RequestError as e:
            logger.error(f"Network error calling Bol.com {method} {path}: {str(e)}")
            raise BolAPIError(f"Network error: {str(e)}")

        if response.status_code == 403:
            logger.error(f"Bol.com refused {method} {path} (403): account not active")
            raise BolAccountInactiveError()

        if not response.is_success:
            raise self._api_error(response)

        logger.debug(f"Bol.com {method} {path} -> {response.status_code}")

        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError:
            raise BolAPIError(
                f"Bol API returned invalid JSON for {path}",
                status_code=response.status_code,
            )

    @staticmethod
    def _api_error(response: httpx.Response) -> BolAPIError:
        error_text = response.text
        message = f"Bol API error: {response.status_code}"
        detail = None
        try:
            error_json = json.loads(error_text)
            if isinstance(error_json, dict) and error_json.get("detail"):
                detail = str(error_json["detail"])
                message += f" - {detail}"
        except ValueError:
            detail = error_text
            message += f" - {error_text}"

        logger.error(message)
        return BolAPIError(message, status_code=response.status_code, detail=detail)

    async def request(
        self,
        credentials: BolCredentials,
        path: str,
        method: str = "GET",
        body: Optional[Dict] = None,
    ) -> Dict:
        """
        Authenticate with the given credentials and perform one API call.

        A 401 on a call made with a cached token evicts that token and retries
        once with a freshly issued one.
        """
        access_token, from_cache = await self._get_access_token(credentials)
        try:
            return await self.call(access_token, path, method, body)
        except BolAPIError as e:
            if e.status_code != 401 or not from_cache:
                raise
            logger.info("Cached Bol.com token was rejected, re-authenticating")
            self.token_cache.evict(credentials.fingerprint)
            access_token, _ = await self._get_access_token(credentials)
            return await self.call(access_token, path, method, body)

    # Orders

    async def get_open_orders(self, credentials: BolCredentials, page: int = 1) -> Dict:
        """Fulfilment-by-retailer open orders, one page"""
        return await self.request(credentials, f"/orders?fulfilment-method=FBR&page={page}")

    async def get_order(self, credentials: BolCredentials, order_id: str) -> Dict:
        return await self.request(credentials, f"/orders/{order_id}")

    async def get_order_items(self, credentials: BolCredentials, order_id: str) -> Dict:
        return await self.request(credentials, f"/orders/{order_id}/order-items")

    async def get_shipments(self, credentials: BolCredentials, order_id: str) -> Dict:
        return await self.request(credentials, f"/shipments?order-id={order_id}")

    async def update_shipment(self, credentials: BolCredentials, order_id: str, shipment: Dict) -> Dict:
        return await self.request(credentials, f"/orders/{order_id}/shipment", "PUT", shipment)

    async def get_shipping_label(self, credentials: BolCredentials, order_id: str) -> Dict:
        return await self.request(credentials, f"/orders/{order_id}/shipment-label")

    # Returns

    async def get_returns(self, credentials: BolCredentials, page: int = 1) -> Dict:
        return await self.request(credentials, f"/returns?page={page}")

    async def handle_return(self, credentials: BolCredentials, return_id: str, handling: Dict) -> Dict:
        return await self.request(credentials, f"/returns/{return_id}", "PUT", handling)
