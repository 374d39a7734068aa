"""
Command types for ClinicActions.handle().

One frozen dataclass per mutating action. The web surface builds these
from request bodies; handle() dispatches each to the matching method.
Direct method calls remain available for in-process callers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class SelectRole:
    role: str


@dataclass(frozen=True)
class SelectPatient:
    patient_id: str


@dataclass(frozen=True)
class CreatePatient:
    """
    Register a new patient.

    Returns: ActionResult whose patient_id is the generated id.
    """
    profile: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RegisterPatient:
    """Patient self-registration: create, consent, select"""
    profile: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToggleConsent:
    patient_id: str


@dataclass(frozen=True)
class TogglePayment:
    """
    Flip payment between pending and completed.

    Rejected with CONSENT_REQUIRED when consent has not been given.
    """
    patient_id: str


@dataclass(frozen=True)
class SetPayLater:
    patient_id: str


@dataclass(frozen=True)
class PatientMarkPaid:
    patient_id: str


@dataclass(frozen=True)
class UpdateAssessment:
    patient_id: str
    kind: str
    result: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CreateTreatmentPlan:
    patient_id: str
    plan: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AddSession:
    patient_id: str
    session: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AddNote:
    patient_id: str
    author: str
    text: str


@dataclass(frozen=True)
class UpdateNote:
    patient_id: str
    index: int
    text: str


@dataclass(frozen=True)
class ResetState:
    """Discard persisted state and reseed the sample patient"""
    pass


# Command union type for type hints
Command = (
    SelectRole | SelectPatient | CreatePatient | RegisterPatient
    | ToggleConsent | TogglePayment | SetPayLater | PatientMarkPaid
    | UpdateAssessment | CreateTreatmentPlan | AddSession | AddNote
    | UpdateNote | ResetState
)
