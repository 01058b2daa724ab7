"""HTTP transport for the Foodime REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import aiohttp

from pyfoodime._constants import AUTH_HEADER, USER_AGENT
from pyfoodime._redact import redact_for_log
from pyfoodime.config import FoodimeConfig
from pyfoodime.exceptions import FoodimeNetworkError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Status code plus the decoded JSON body (``{}`` when there is none)."""

    status: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def message(self) -> str | None:
        value = self.body.get("message")
        return value if isinstance(value, str) and value else None


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> TransportResponse: ...


class HttpTransport:
    """JSON-over-HTTP transport that attaches the session nonce."""

    def __init__(self, config: FoodimeConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        """Send one request and decode the JSON reply.

        Non-2xx statuses are returned, not raised: the endpoint layer maps
        them (401/403 to auth errors, anything else to network errors)
        because it needs the server ``message`` either way. Only transport
        failures raise here.
        """
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if token:
            headers[AUTH_HEADER] = token

        url = f"{self._config.base_url}{endpoint}"
        body = json.dumps(dict(payload)) if payload is not None else None

        _logger.debug("%s %s payload=%s", method, url, redact_for_log(payload))

        try:
            async with self._http.request(method, url, data=body, headers=headers) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise FoodimeNetworkError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
        except TimeoutError as exc:
            raise FoodimeNetworkError(
                f"Request to {endpoint} timed out",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return TransportResponse(status=status)

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            if 200 <= status < 300:
                raise FoodimeNetworkError(
                    f"Invalid JSON from {endpoint}: {text[:200]}",
                    status_code=status,
                    endpoint=endpoint,
                ) from exc
            # Error pages are often HTML; keep the status and a short excerpt.
            return TransportResponse(status=status, body={"message": text[:200]})

        if not isinstance(decoded, dict):
            decoded = {"data": decoded}

        _logger.debug("%s %s -> %s %s", method, url, status, redact_for_log(decoded))
        return TransportResponse(status=status, body=decoded)
