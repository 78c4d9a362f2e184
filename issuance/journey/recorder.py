"""Diagnostic recorder: keeps the most recent API request/response pairs for operators.

Purely observational; the journey never reads from it.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiCallRecord:
    method: str
    path: str
    status: int
    request: Optional[Any] = None
    response: Optional[Any] = None
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["recorded_at"] = self.recorded_at.isoformat()
        return data


class DiagnosticRecorder:
    def __init__(self, history_size: int = 20) -> None:
        self._history: Deque[ApiCallRecord] = deque(maxlen=history_size)

    def record(
        self,
        *,
        method: str,
        path: str,
        status: int,
        request: Optional[Any] = None,
        response: Optional[Any] = None,
    ) -> ApiCallRecord:
        entry = ApiCallRecord(method=method, path=path, status=status, request=request, response=response)
        self._history.append(entry)
        logger.debug("[Diagnostics] %s %s -> %s", method, path, status)
        return entry

    # The transport calls observers as plain callables.
    __call__ = record

    @property
    def last(self) -> Optional[ApiCallRecord]:
        return self._history[-1] if self._history else None

    def history(self) -> List[ApiCallRecord]:
        """Recorded calls, oldest first."""
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()
