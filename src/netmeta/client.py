"""
Client for a running netmeta API.

Used by the administrative CLI commands so they act on the live server's
registries rather than on a fresh, empty copy.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from typing import Any

import httpx

from netmeta.errors import (
    ExternalCallFailure,
    NotFound,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


class NetmetaClient:
    """
    Synchronous client for the netmeta REST API.

    Usage:
        with NetmetaClient("http://127.0.0.1:8080") as client:
            peers = client.list_peers()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def __enter__(self) -> "NetmetaClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = self._client.request(method, url, params=params, json=json)
        except httpx.TransportError as e:
            raise ExternalCallFailure(f"cannot reach netmeta at {self.base_url}: {e}") from e

        if response.is_success:
            return response.json()

        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text

        if response.status_code == 404:
            raise NotFound(detail)
        if response.status_code in (400, 422):
            raise ValidationFailure(str(detail))
        raise ExternalCallFailure(f"HTTP {response.status_code}: {detail}")

    def list_peers(self) -> list[dict[str, Any]]:
        return self._request("GET", "/api/v1/bgp/peers")

    def get_topology(self) -> dict[str, list[dict[str, Any]]]:
        return self._request("GET", "/api/v1/ospf/topology")

    def get_events(self, limit: int = 100) -> list[dict[str, Any]]:
        return self._request("GET", "/api/v1/remediation/events", params={"limit": limit})

    def remediate(self, peer: str = "", prefix: str = "", reason: str = "manual") -> dict[str, Any]:
        return self._request("POST", "/api/v1/remediation", json={
            "peer": peer,
            "prefix": prefix,
            "reason": reason,
        })

    def validate_labels(self, labels: list[int]) -> dict[str, Any]:
        return self._request("POST", "/api/v1/mpls/validate", json={"labels": labels})

    def corruption_count(self) -> int:
        return int(self._request("GET", "/api/v1/mpls/corruption")["count"])
