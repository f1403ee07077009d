"""Shared plumbing for the tracker REST clients"""
import logging
from typing import Any, Optional

import httpx

from issuerelay.services.errors import TrackerAPIError

logger = logging.getLogger(__name__)


class TrackerHTTPClient:
    """Thin httpx wrapper turning HTTP error statuses into ``TrackerAPIError``."""

    system = "tracker"

    def __init__(
        self,
        base_url: str,
        *,
        headers: Optional[dict] = None,
        auth: Any = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            auth=auth,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(data, dict):
            if data.get("message"):
                return str(data["message"])
            if data.get("errorMessages"):
                return "; ".join(str(m) for m in data["errorMessages"])
            if data.get("errors"):
                return str(data["errors"])
        return str(data)[:200]

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = self._client.request(method, path, **kwargs)
        if response.status_code >= 400:
            raise TrackerAPIError(
                response.status_code, self._error_message(response), system=self.system
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        return response.json()
