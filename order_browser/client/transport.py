from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, ContextManager, Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from order_browser.core.config import Settings, get_settings
from order_browser.core.errors import StoreError, ValidationError
from order_browser.domain.orders import OrderQueryService, PageRequest, PageResult
from order_browser.persistence import pg

logger = logging.getLogger(__name__)


class OrdersTransport(Protocol):
    transport_name: str

    async def get_orders(self, request: PageRequest) -> PageResult:
        ...

    async def close(self) -> None:
        ...


class HTTPOrdersTransport:
    transport_name = "http"

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.api_base_url.rstrip("/")
        self.timeout = max(1.0, self.settings.http_timeout_seconds)
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        # Injected clients belong to the caller.
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _params(request: PageRequest) -> dict[str, Any]:
        params: dict[str, Any] = {"limit": request.limit, "page": request.page}
        if request.filter.status is not None:
            params["status"] = request.filter.status.value
        return params

    async def _request(self, params: dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}/orders"
        logger.debug("GET %s params=%s", url, params)
        return await self.client.get(url, params=params)

    async def get_orders(self, request: PageRequest) -> PageResult:
        try:
            response = await self._request(self._params(request))
        except httpx.HTTPError as exc:
            raise StoreError(f"orders request failed: {exc}") from exc

        if 400 <= response.status_code < 500:
            raise ValidationError(_error_detail(response))
        if response.status_code >= 500:
            raise StoreError(_error_detail(response))

        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError(f"orders response is not JSON: {response.text[:200]!r}") from exc
        if not isinstance(payload, dict):
            raise StoreError(f"unexpected orders payload: {payload!r}")
        try:
            return PageResult.from_payload(payload, limit=request.limit)
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"malformed orders payload: {exc}") from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text}"
    detail = payload.get("detail") if isinstance(payload, dict) else None
    return f"HTTP {response.status_code}: {detail or payload}"


class LocalOrdersTransport:
    transport_name = "local"

    def __init__(
        self,
        session_factory: Callable[[], ContextManager[Session]] | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self._session_factory = session_factory

    def _scope(self) -> ContextManager[Session]:
        if self._session_factory is not None:
            return self._session_factory()
        return pg.session_scope()

    def _query(self, request: PageRequest) -> PageResult:
        try:
            with self._scope() as session:
                service = OrderQueryService.for_session(session, max_limit=self.settings.max_page_limit)
                return service.get_orders(request)
        except SQLAlchemyError as exc:
            logger.warning("local orders query failed: %s", exc)
            raise StoreError(f"orders query failed: {exc}") from exc

    async def get_orders(self, request: PageRequest) -> PageResult:
        # Sessions are opened inside the worker thread and never cross threads.
        return await asyncio.to_thread(self._query, request)

    async def close(self) -> None:
        return None


def build_transport(settings: Settings | None = None) -> OrdersTransport:
    cfg = settings or get_settings()
    if cfg.transport == "http":
        return HTTPOrdersTransport(cfg)
    return LocalOrdersTransport(settings=cfg)
