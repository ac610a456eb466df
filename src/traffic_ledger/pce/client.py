"""HTTP client for the PCE async traffic query registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from traffic_ledger.config import PceSettings
from traffic_ledger.reconcile.models import AsyncQuery

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "traffic-ledger/1.0"


@dataclass(slots=True)
class PceApiError(Exception):
    """Failed PCE API call: transport error, non-2xx status, or unexpected body."""

    message: str
    code: str = "pce_api_error"
    status_code: int | None = None

    def __str__(self) -> str:
        return self.message


class QueryRegistry(Protocol):
    """Remote async query registry consumed by the reconciler.

    Implementations report remote failures as ``PceApiError``; anything else
    propagates unchanged.
    """

    def list_queries(self) -> list[AsyncQuery]:
        """Return every async query currently known to the remote service."""
        raise NotImplementedError

    def fetch_result(self, query: AsyncQuery) -> list[dict[str, Any]]:
        """Return the result items of one completed async query."""
        raise NotImplementedError


class PceClient:
    """Synchronous PCE API client with basic auth, timeout, and connect retries."""

    def __init__(
        self,
        settings: PceSettings,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._org = settings.org
        base_url = f"https://{settings.fqdn}:{settings.port}/api/v2"
        self._client = httpx.Client(
            base_url=base_url,
            auth=httpx.BasicAuth(settings.api_user, settings.api_key),
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            timeout=httpx.Timeout(settings.request_timeout_seconds, connect=10.0),
            transport=transport
            or httpx.HTTPTransport(
                retries=settings.max_retries,
                verify=not settings.disable_tls_checking,
            ),
        )

    def list_queries(self) -> list[AsyncQuery]:
        payload = self._get_json(
            "GetAsyncQueries",
            f"/orgs/{self._org}/traffic_flows/async_queries",
        )
        if not isinstance(payload, list):
            raise PceApiError(
                message="GetAsyncQueries returned a non-list body.",
                code="unexpected_body",
            )
        queries: list[AsyncQuery] = []
        for item in payload:
            if not isinstance(item, dict) or not isinstance(item.get("href"), str):
                raise PceApiError(
                    message=f"GetAsyncQueries returned an entry without href: {item!r}",
                    code="unexpected_body",
                )
            queries.append(AsyncQuery(href=item["href"], status=str(item.get("status", ""))))
        return queries

    def fetch_result(self, query: AsyncQuery) -> list[dict[str, Any]]:
        payload = self._get_json("GetAsyncQueryResults", f"{query.href}/download")
        if not isinstance(payload, list):
            raise PceApiError(
                message=f"GetAsyncQueryResults for {query.href} returned a non-list body.",
                code="unexpected_body",
            )
        return payload

    def _get_json(self, call_type: str, path: str) -> Any:
        try:
            response = self._client.get(path)
        except httpx.TimeoutException as exc:
            logger.debug("%s timeout: %s", call_type, exc)
            raise PceApiError(
                message=f"{call_type} timed out: {exc}",
                code="timeout",
            ) from exc
        except httpx.HTTPError as exc:
            logger.debug("%s http error: %s", call_type, exc)
            raise PceApiError(message=f"{call_type} failed: {exc}", code="http_error") from exc

        logger.debug("%s http request: GET %s", call_type, response.request.url)
        logger.info("%s response status code: %d", call_type, response.status_code)
        if not response.is_success:
            logger.debug("%s response body: %s", call_type, response.text)
            raise PceApiError(
                message=f"{call_type} returned HTTP {response.status_code}",
                code=f"http_{response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise PceApiError(
                message=f"{call_type} returned invalid JSON: {exc}",
                code="invalid_json",
                status_code=response.status_code,
            ) from exc

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> PceClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
