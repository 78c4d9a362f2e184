"""
Issuance journey orchestration.

- validation: pre-flight checks on form input
- polling: bounded waits for asynchronous server-side transitions
- stages / engine: the seven-stage workflow and its transitions
- recorder: last request/response pairs for operator visibility
"""

from .engine import IssuanceJourney, IssuanceOutcome, UnderwritingOutcome, WorkflowInstance
from .errors import FormValidationError, JourneyError, PollTimeout, StageBusyError, StageTransitionError
from .polling import PollingCoordinator, PollLoop, PollResult, PollState, PollStatus
from .recorder import ApiCallRecord, DiagnosticRecorder
from .stages import DeclinedOutcome, Hold, Stage
from .validation import ApplicantForm, QuoteForm

__all__ = [
    "ApiCallRecord",
    "ApplicantForm",
    "DeclinedOutcome",
    "DiagnosticRecorder",
    "FormValidationError",
    "Hold",
    "IssuanceJourney",
    "IssuanceOutcome",
    "JourneyError",
    "PollLoop",
    "PollResult",
    "PollState",
    "PollStatus",
    "PollTimeout",
    "PollingCoordinator",
    "QuoteForm",
    "Stage",
    "StageBusyError",
    "StageTransitionError",
    "UnderwritingOutcome",
    "WorkflowInstance",
]
