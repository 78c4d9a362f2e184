"""Local errors raised by the journey layer.

Remote failures are ``issuance.integrations.responses.RemoteError``; a declined
application or offer is a business result (``stages.DeclinedOutcome``), not an
error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


class JourneyError(Exception):
    """Base class for failures produced on the client side of the journey."""


@dataclass(eq=False)
class FormValidationError(JourneyError):
    """Form input rejected before any call was attempted.

    Attributes:
        messages: ordered human-readable problems with the input.
        message: top-level message.
    """

    messages: List[str] = field(default_factory=list)
    message: str = "Please correct the highlighted fields"

    def __str__(self) -> str:
        return f"{self.message}: {'; '.join(self.messages)}" if self.messages else self.message


class StageTransitionError(JourneyError):
    """The action does not apply to the journey's current stage."""


class StageBusyError(JourneyError):
    """Another stage action is still outstanding."""


class PollTimeout(JourneyError):
    """A bounded wait used up its attempts without reaching a terminal state."""

    def __init__(self, wait_name: str, attempts: int, message: str) -> None:
        super().__init__(message)
        self.wait_name = wait_name
        self.attempts = attempts
