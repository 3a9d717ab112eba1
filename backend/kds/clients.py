import requests
import logging
from typing import Dict, Optional

from django.conf import settings

logger = logging.getLogger(__name__)


class TableDirectoryClient:
    """
    Read-only client for the table/floor metadata service.

    Lookups are best-effort: any failure returns ``None`` so a ticket is
    still created, just without the table display snapshot.
    """

    def __init__(self, tenant_id, base_url: str = None, api_key: str = None, timeout: float = None):
        self.tenant_id = str(tenant_id)
        self.base_url = (base_url if base_url is not None else settings.TABLE_SERVICE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.TABLE_API_KEY
        self.timeout = timeout if timeout is not None else settings.TABLE_SERVICE_TIMEOUT

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Api-Key": self.api_key,
            "X-Tenant-Id": self.tenant_id,
            "Accept": "application/json",
        }

    def get_table(self, table_id) -> Optional[Dict[str, Optional[str]]]:
        """
        Returns ``{"tableNumber": ..., "floorName": ...}`` or ``None``.
        """
        if not self.base_url or not table_id:
            return None

        url = f"{self.base_url}/api/tables/{table_id}"
        try:
            response = requests.get(url, headers=self._get_headers(), timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Table lookup failed for {table_id}, continuing without snapshot: {e}")
            return None

        table = body.get("data") if isinstance(body, dict) and "data" in body else body
        if not isinstance(table, dict):
            return None

        floor = table.get("floor") or {}
        return {
            "tableNumber": table.get("tableNumber") or table.get("name"),
            "floorName": floor.get("name") if isinstance(floor, dict) else None,
        }
