"""
Result types returned by ClinicActions.

These are the ONLY return types from mutating actions. Domain failures
(unknown patient, missing consent, ...) are values, never exceptions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional


class FailureReason(str, Enum):
    """
    Why an action was rejected.

    Values:
        PATIENT_NOT_FOUND: patient id not in the store
        CONSENT_REQUIRED: toggle_payment called before consent was given
        UNKNOWN_ASSESSMENT: assessment kind is not a recognized slot
        MISSING_SCORE: assessment update carried no score
        NOTE_NOT_FOUND: note index out of range
        ASSESSMENTS_INCOMPLETE: plan prerequisites enforced and not met
        UNKNOWN_COMMAND: handle() received an unrecognized command
    """
    PATIENT_NOT_FOUND = "patient_not_found"
    CONSENT_REQUIRED = "consent_required"
    UNKNOWN_ASSESSMENT = "unknown_assessment"
    MISSING_SCORE = "missing_score"
    NOTE_NOT_FOUND = "note_not_found"
    ASSESSMENTS_INCOMPLETE = "assessments_incomplete"
    UNKNOWN_COMMAND = "unknown_command"


@dataclass(frozen=True)
class ActionResult:
    """
    Outcome of a single action.

    Truthiness follows success, so callers written against the
    boolean-returning toggle_payment contract keep working:

        if not actions.toggle_payment(pid):
            show("Consent required before payment processing")

    Attributes:
        success: Whether the action was applied (and persisted)
        action: Name of the action method
        patient_id: Patient the action targeted (None for focus-only actions)
        reason: FailureReason when success is False
        message: Human-readable explanation
        data: Action-specific payload (e.g. {'plan_id': 'tp_...'})
    """
    success: bool
    action: str
    patient_id: Optional[str] = None
    reason: Optional[FailureReason] = None
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success

    @staticmethod
    def ok(action: str, patient_id: Optional[str] = None, message: str = "",
           **data) -> "ActionResult":
        return ActionResult(
            success=True,
            action=action,
            patient_id=patient_id,
            message=message,
            data=data,
        )

    @staticmethod
    def fail(action: str, reason: FailureReason, message: str,
             patient_id: Optional[str] = None) -> "ActionResult":
        return ActionResult(
            success=False,
            action=action,
            patient_id=patient_id,
            reason=reason,
            message=message,
        )

    def to_json(self) -> dict:
        """JSON-safe dict for the web surface"""
        return {
            'success': self.success,
            'action': self.action,
            'patient_id': self.patient_id,
            'reason': self.reason.value if self.reason else None,
            'message': self.message,
            'data': dict(self.data),
        }
