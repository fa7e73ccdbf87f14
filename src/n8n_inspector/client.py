"""Async client for the n8n public REST API (v1).

This module is the only place the CLI talks to n8n. It wraps an
`httpx.AsyncClient` authenticated with the `X-N8N-API-KEY` header and exposes
the handful of endpoints the inspector needs: execution detail / listing and
workflow detail / listing / update.

Failures are terminal for the calling command: transport errors and HTTP
status >= 400 raise `N8nApiError` without retrying. Workflow updates always go
through `build_update_payload`, so read-only fields are stripped and the
credentials of untouched nodes are preserved.
"""
from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Any, Dict, List, Optional, Type

import httpx

from .config import Settings
from .extraction.update_payload import build_update_payload
from .models.n8n import ExecutionSummary

logger = logging.getLogger(__name__)

__all__ = ["N8nClient", "N8nApiError"]

API_PREFIX = "/api/v1"


class N8nApiError(RuntimeError):
    """An n8n API request failed (transport error or HTTP status >= 400)."""

    def __init__(self, status_code: Optional[int], body: str):
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"n8n API request failed: {body}")
        else:
            super().__init__(f"n8n API error ({status_code}): {body}")


def _flag(value: bool) -> str:
    return "true" if value else "false"


class N8nClient:
    """Thin async wrapper over the n8n public API.

    Use as an async context manager so the underlying connection pool is
    closed:

        async with N8nClient.from_settings(settings) as client:
            execution = await client.get_execution("123")
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if base_url.endswith("/"):
            base_url = base_url.rstrip("/")
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=f"{base_url}{API_PREFIX}",
            headers={
                "X-N8N-API-KEY": api_key,
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "N8nClient":
        return cls(
            base_url=settings.N8N_BASE_URL,
            api_key=settings.N8N_API_KEY,
            timeout=settings.REQUEST_TIMEOUT,
            transport=transport,
        )

    async def __aenter__(self) -> "N8nClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        logger.debug("%s %s%s params=%s", method, API_PREFIX, path, params)
        try:
            resp = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            raise N8nApiError(None, str(e) or type(e).__name__) from e
        if resp.status_code >= 400:
            raise N8nApiError(resp.status_code, resp.text[:500])
        try:
            return resp.json()
        except ValueError as e:
            raise N8nApiError(resp.status_code, f"invalid JSON response: {e}") from e

    # ---------------- Executions -----------------

    async def get_execution(self, execution_id: str, *, include_data: bool = True) -> Dict[str, Any]:
        """Fetch one execution; `include_data` adds the full runData payload."""
        return await self._request(
            "GET",
            f"/executions/{execution_id}",
            params={"includeData": _flag(include_data)},
        )

    async def list_executions(
        self,
        workflow_id: Optional[str] = None,
        *,
        limit: int = 10,
        status: Optional[str] = None,
        include_data: bool = False,
    ) -> List[ExecutionSummary]:
        """List recent executions, optionally for one workflow and status."""
        params: Dict[str, Any] = {"limit": str(limit), "includeData": _flag(include_data)}
        if workflow_id:
            params["workflowId"] = workflow_id
        if status:
            params["status"] = status
        response = await self._request("GET", "/executions", params=params)
        rows = response.get("data", []) if isinstance(response, dict) else response
        return [ExecutionSummary.model_validate(row) for row in rows or []]

    # ---------------- Workflows -----------------

    async def list_workflows(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/workflows")
        rows = response.get("data", []) if isinstance(response, dict) else response
        return [row for row in rows or [] if isinstance(row, dict)]

    async def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/workflows/{workflow_id}")

    async def get_workflows(self, *workflow_ids: str) -> List[Dict[str, Any]]:
        """Fetch several workflows concurrently, preserving argument order."""
        return list(await asyncio.gather(*(self.get_workflow(w) for w in workflow_ids)))

    async def update_workflow(
        self,
        workflow_id: str,
        workflow: Dict[str, Any],
        *,
        existing: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Replace a workflow definition.

        The body is always sanitized with `build_update_payload`; when
        `existing` is not supplied the stored workflow is fetched first so its
        node credentials can be preserved.
        """
        if existing is None:
            existing = await self.get_workflow(workflow_id)
        payload = build_update_payload(workflow, existing)
        return await self._request("PUT", f"/workflows/{workflow_id}", json=payload)
