import requests
import logging
from typing import Dict, Any

from django.conf import settings

from core_backend.exceptions import (
    AppError,
    ErrorCodes,
    NotFoundError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

AVAILABLE = "AVAILABLE"


class PricingOracleClient:
    """
    Client for the product catalog, the only trusted source of prices.

    Prices held in a cart are for display; checkout re-prices every line
    and every modifier through this client.
    """

    def __init__(self, tenant_id, base_url: str = None, api_key: str = None, timeout: float = None):
        self.tenant_id = str(tenant_id)
        self.base_url = (base_url or settings.PRODUCT_SERVICE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.PRODUCT_API_KEY
        self.timeout = timeout if timeout is not None else settings.PRODUCT_SERVICE_TIMEOUT

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Api-Key": self.api_key,
            "X-Tenant-Id": self.tenant_id,
            "Accept": "application/json",
        }

    def _get(self, endpoint: str, resource: str, identifier) -> Dict[str, Any]:
        """
        GET a catalog resource and unwrap the ``{code, message, data}`` envelope.

        Raises:
            NotFoundError: the catalog does not know the resource
            ServiceUnavailableError: the catalog could not be reached or answered badly
        """
        url = f"{self.base_url}{endpoint}"

        try:
            response = requests.get(url, headers=self._get_headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Product service request failed: GET {url} - {e}")
            raise ServiceUnavailableError(f"Product service unavailable: {e}")

        if response.status_code == 404:
            raise NotFoundError(resource, identifier)

        try:
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Product service returned an invalid response: GET {url} - {e}")
            raise ServiceUnavailableError(f"Product service error: {e}")

        if isinstance(body, dict) and "code" in body:
            if body["code"] != ErrorCodes.SUCCESS.code:
                raise AppError.from_payload(body)
            return body.get("data") or {}
        return body

    def get_menu_item(self, menu_item_id) -> Dict[str, Any]:
        """Current name, description, price and status of a menu item."""
        return self._get(f"/api/menu-items/{menu_item_id}", "Menu item", menu_item_id)

    def get_modifier_group(self, modifier_group_id) -> Dict[str, Any]:
        return self._get(f"/api/modifier-groups/{modifier_group_id}", "Modifier group", modifier_group_id)

    def get_modifier_option(self, modifier_group_id, modifier_option_id) -> Dict[str, Any]:
        return self._get(
            f"/api/modifier-groups/{modifier_group_id}/options/{modifier_option_id}",
            "Modifier option",
            modifier_option_id,
        )

    @staticmethod
    def is_available(menu_item: Dict[str, Any]) -> bool:
        return str(menu_item.get("status", "")).upper() == AVAILABLE
