"""Error shape and response normalisation for the issuance API.

Every failed call, whatever went wrong on the way, reaches callers as a
``RemoteError`` carrying the HTTP status and an RFC 7807 problem payload.
A 2xx body that breaks the response contract is an ``IntegrationResponseError``
with the status the server sent and category ``"malformed"``.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from issuance.integrations.contracts.interfaces import ProblemDetails

ModelT = TypeVar("ModelT", bound=BaseModel)

TRANSPORT_FAILURE_STATUS = 0


class RemoteError(Exception):
    def __init__(self, status: int, problem: ProblemDetails) -> None:
        super().__init__(problem.detail or problem.title or f"Request failed with status {status}")
        self.status = status
        self.problem = problem

    @property
    def detail(self) -> str:
        return str(self)

    @property
    def title(self) -> str:
        return self.problem.title

    @property
    def category(self) -> str:
        """Coarse classification of the status, for operator guidance only."""
        if self.status == TRANSPORT_FAILURE_STATUS:
            return "transport"
        if self.status in (401, 403):
            return "unauthorized"
        if self.status == 404:
            return "not_found"
        if self.status == 409:
            return "conflict"
        if self.status in (400, 422):
            return "invalid"
        if self.status >= 500:
            return "server"
        return "other"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, title={self.problem.title!r}, detail={self.detail!r})"


class IntegrationResponseError(RemoteError):
    """A 2xx response whose body does not match the expected contract.

    ``status`` is the 2xx status the server actually sent; ``category`` is
    ``"malformed"`` so it is never mistaken for an HTTP failure.
    """

    def __init__(self, message: str, *, status: int, payload: Any = None) -> None:
        super().__init__(
            status,
            ProblemDetails(title="Malformed Response", status=status, detail=message),
        )
        self.payload = payload

    @property
    def category(self) -> str:
        return "malformed"


def problem_from_response(status: int, body: Any, text: str = "") -> ProblemDetails:
    """Normalise whatever the server sent with a non-2xx status into a problem payload."""
    data: Dict[str, Any] = body if isinstance(body, dict) else {}
    title = _first_non_empty(data, "title", default=_reason_phrase(status))
    detail = _first_non_empty(data, "detail", "message", "error", default=(text or "").strip() or title)
    problem_type = _first_non_empty(data, "type", default="about:blank")
    return ProblemDetails(type=str(problem_type), title=str(title), status=status, detail=str(detail))


def transport_problem(exc: Exception) -> ProblemDetails:
    return ProblemDetails(
        title="Transport Error",
        status=TRANSPORT_FAILURE_STATUS,
        detail=f"Could not reach the issuance API: {exc}",
    )


def unauthorized_problem(detail: str) -> ProblemDetails:
    return ProblemDetails(title="Unauthorized", status=401, detail=detail)


def build_model(model_type: Type[ModelT], raw: Any, *, status: int = 200) -> ModelT:
    if not isinstance(raw, dict):
        raise IntegrationResponseError(
            f"Expected a JSON object for {model_type.__name__}, got {type(raw).__name__}.",
            status=status,
            payload=raw,
        )
    try:
        return model_type.model_validate(raw)
    except ValidationError as exc:
        raise IntegrationResponseError(
            f"Response validation failed for {model_type.__name__}: {exc}",
            status=status,
            payload=raw,
        ) from exc


def build_model_list(model_type: Type[ModelT], raw: Any, *, status: int = 200) -> list[ModelT]:
    # The API sends null for an empty list.
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise IntegrationResponseError(
            f"Expected a JSON array of {model_type.__name__}, got {type(raw).__name__}.",
            status=status,
            payload=raw,
        )
    return [build_model(model_type, item, status=status) for item in raw]


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def _reason_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return f"HTTP {status}"


__all__ = [
    "IntegrationResponseError",
    "ModelT",
    "RemoteError",
    "TRANSPORT_FAILURE_STATUS",
    "build_model",
    "build_model_list",
    "problem_from_response",
    "transport_problem",
    "unauthorized_problem",
]
