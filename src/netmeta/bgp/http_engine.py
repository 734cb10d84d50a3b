"""
HTTP session engine client.

Talks to a BGP speaker's REST sidecar. Every call is bounded by a timeout
and retried with exponential backoff on transport errors and 5xx replies.

Endpoints:
    POST /peers                  {"address", "asn", "port"}
    GET  /peers/{address}        -> {"state", "established", "advertised"}
    GET  /paths                  -> {"paths": [{"id", "prefix", "peer", "next_hop"}]}
    POST /paths/withdraw         {"id", "prefix", "peer", "next_hop"}

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator

import httpx

from netmeta.bgp.models import AdvertisedPath, BGPState, SessionStatus
from netmeta.bgp.session import SessionEngine
from netmeta.errors import ExternalCallFailure

logger = logging.getLogger(__name__)


@dataclass
class HTTPSessionConfig:
    """Configuration for the HTTP session engine client."""
    base_url: str
    timeout: float = 5.0
    max_retries: int = 3
    retry_delay: float = 0.5


class HTTPSessionEngine(SessionEngine):
    """
    Session engine backed by a REST API.

    Usage:
        engine = HTTPSessionEngine(HTTPSessionConfig(base_url="http://127.0.0.1:50052"))
        status = engine.get_session_state("10.0.0.1")
        engine.close()
    """

    def __init__(
        self,
        config: HTTPSessionConfig,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=config.base_url,
            headers={
                "User-Agent": "netmeta/0.1",
                "Accept": "application/json",
            },
            timeout=config.timeout,
            transport=transport,
        )

    def __enter__(self) -> "HTTPSessionEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        url: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a request, retrying transient failures."""
        attempts = max(1, self.config.max_retries)
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                response = self._client.request(method, url, json=json)
                if response.status_code >= 500:
                    raise httpx.HTTPStatusError(
                        f"server error {response.status_code}",
                        request=response.request,
                        response=response,
                    )
                response.raise_for_status()
                if not response.content:
                    return {}
                data = response.json()
                if not isinstance(data, dict):
                    raise ExternalCallFailure(
                        f"{method} {url} returned {type(data).__name__}, expected an object"
                    )
                return data

            except ValueError as e:
                raise ExternalCallFailure(f"{method} {url} returned invalid JSON: {e}") from e
            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    raise ExternalCallFailure(
                        f"{method} {url} failed: HTTP {e.response.status_code}"
                    ) from e
                last_error = e
            except httpx.TransportError as e:
                last_error = e

            if attempt < attempts - 1:
                delay = self.config.retry_delay * (2 ** attempt)
                logger.warning(
                    f"{method} {url} failed ({last_error}), retrying in {delay:.2f}s"
                )
                self._sleep(delay)

        raise ExternalCallFailure(
            f"{method} {url} failed after {attempts} attempt(s): {last_error}"
        ) from last_error

    def add_peer(self, address: str, asn: int, port: int) -> None:
        self._request("POST", "/peers", json={
            "address": address,
            "asn": asn,
            "port": port,
        })

    def get_session_state(self, address: str) -> SessionStatus:
        data = self._request("GET", f"/peers/{address}")
        try:
            return SessionStatus(
                state=BGPState.normalize(str(data["state"])),
                established=bool(data.get("established", False)),
                advertised_prefixes=int(data.get("advertised", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalCallFailure(f"malformed session state for {address}: {data!r}") from e

    def list_advertised_paths(self) -> Iterator[AdvertisedPath]:
        data = self._request("GET", "/paths")
        items = data.get("paths", [])
        if not isinstance(items, list):
            raise ExternalCallFailure(f"malformed path list: {items!r}")
        for item in items:
            try:
                yield AdvertisedPath.from_dict(item)
            except (KeyError, TypeError):
                logger.warning(f"Skipping malformed path entry: {item!r}")

    def withdraw_path(self, path: AdvertisedPath) -> None:
        self._request("POST", "/paths/withdraw", json=path.to_dict())
