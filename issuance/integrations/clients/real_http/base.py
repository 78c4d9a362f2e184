"""
Shared HTTP plumbing for the issuance API clients.

Purpose:
- Attaches the static API credential to every call
- Serialises request bodies as JSON and decodes JSON responses
- Maps transport failures and non-2xx responses onto RemoteError
- Validates 2xx bodies against the response contract, keeping the real status
- Mirrors every call result to an optional observer (the diagnostic recorder)

Important:
- Keep this the ONLY place where issuance HTTP calls are made.
- No retries and no caching; callers decide what to do with a failure.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type
from urllib.parse import quote, urlencode

import httpx

from issuance.integrations.responses import (
    ModelT,
    RemoteError,
    build_model,
    build_model_list,
    problem_from_response,
    transport_problem,
    unauthorized_problem,
)

logger = logging.getLogger(__name__)

CallObserver = Callable[..., Any]


def path_segment(value: str) -> str:
    """Quote a server identifier for use inside a URL path."""
    return quote(str(value), safe="")


class ApiTransport:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        api_key_header: str = "X-API-Key",
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        observer: Optional[CallObserver] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_key_header = api_key_header
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self.observer = observer
        if not self.base_url:
            logger.warning("Issuance API URL is not set.")

    async def request_model(
        self,
        model_type: Type[ModelT],
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> ModelT:
        """Send one call and validate the 2xx body against ``model_type``."""
        status, body = await self._send(method, path, json=json, params=params)
        return build_model(model_type, body, status=status)

    async def request_model_list(
        self,
        model_type: Type[ModelT],
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
    ) -> List[ModelT]:
        status, body = await self._send(method, path, params=params)
        return build_model_list(model_type, body, status=status)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> Tuple[int, Any]:
        display_path = f"{path}?{urlencode(params)}" if params else path

        if not self.api_key:
            error = RemoteError(401, unauthorized_problem("API key is not configured"))
            logger.error("Refusing %s %s: no API key configured", method, display_path)
            self._notify(method, display_path, error.status, json, error.problem.model_dump())
            raise error

        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            self.api_key_header: self.api_key,
        }

        logger.debug("%s %s payload=%s", method, display_path, json)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, json=json, params=params, headers=headers)
        except httpx.RequestError as exc:
            error = RemoteError(0, transport_problem(exc))
            logger.error("Request error calling issuance API %s %s: %s", method, display_path, exc)
            self._notify(method, display_path, error.status, json, error.problem.model_dump())
            raise error from exc

        body = self._decode(response)
        logger.info("%s %s -> %s", method, display_path, response.status_code)
        self._notify(method, display_path, response.status_code, json, body)

        if response.is_success:
            return response.status_code, body

        problem = problem_from_response(response.status_code, body, response.text)
        logger.error(
            "Issuance API error on %s %s: status=%s title=%s detail=%s",
            method, display_path, problem.status, problem.title, problem.detail,
        )
        raise RemoteError(response.status_code, problem)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def _notify(self, method: str, path: str, status: int, request: Any, response: Any) -> None:
        if self.observer is None:
            return
        self.observer(method=method, path=path, status=status, request=request, response=response)
