"""
Input contracts for the clinical workflow action API.

This module defines immutable data structures describing what callers
(the role screens, the web surface, the console harness) hand to
ClinicActions. These are NOT validators - they define shape and
defaults without enforcing clinical rules.

Design principles:
- Frozen dataclasses (immutable after creation)
- No validation logic (range checks belong to the calling screen)
- from_dict() accepts the camelCase keys used by the persisted records
  and ignores unknown keys

Contents:
- PatientProfileInput: receptionist / self-registration form
- AssessmentInput: one assessment result
- TreatmentPlanInput: doctor's plan form
- SessionInput: clinical assistant's session log form

Usage:
    from clinic_backend.contracts import PatientProfileInput

    profile = PatientProfileInput(name='Jane', age=40)
"""

from dataclasses import dataclass, fields
from typing import Any, Optional


def _pick(cls, data: dict, aliases: dict) -> dict:
    """Keep only keys that map onto dataclass fields, translating camelCase aliases"""
    names = {f.name for f in fields(cls)}
    picked = {}
    for key, value in data.items():
        name = aliases.get(key, key)
        if name in names:
            picked[name] = value
    return picked


@dataclass(frozen=True)
class PatientProfileInput:
    """
    Partial profile supplied when a patient is created.

    Falsy name/age/gender are replaced with defaults by the action API
    ('New Patient', 30, '-'). Contact fields are stored only when given.
    """
    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    medical_history: Optional[str] = None

    @staticmethod
    def from_dict(data: dict) -> "PatientProfileInput":
        return PatientProfileInput(**_pick(
            PatientProfileInput, data, {'medicalHistory': 'medical_history'}
        ))


@dataclass(frozen=True)
class AssessmentInput:
    """
    Assessment result merged into a slot.

    Attributes:
        score: Numeric result. Required - a slot without a score is incomplete.
        completed_by: Clinician identity (free text)
        notes: Optional free-text remark kept on the slot
    """
    score: Any = None
    completed_by: Optional[str] = None
    notes: Optional[str] = None

    @staticmethod
    def from_dict(data: dict) -> "AssessmentInput":
        return AssessmentInput(**_pick(
            AssessmentInput, data, {'completedBy': 'completed_by'}
        ))


@dataclass(frozen=True)
class TreatmentPlanInput:
    """
    Plan fields supplied by the doctor.

    sessions_planned falls back to 6 when falsy.
    """
    disease: Optional[str] = None
    device: Optional[str] = None
    montage: Optional[str] = None
    sessions_planned: Optional[int] = None
    clinical_notes: Optional[str] = None

    @staticmethod
    def from_dict(data: dict) -> "TreatmentPlanInput":
        return TreatmentPlanInput(**_pick(
            TreatmentPlanInput, data,
            {'sessionsPlanned': 'sessions_planned', 'clinicalNotes': 'clinical_notes'}
        ))


@dataclass(frozen=True)
class SessionInput:
    """One logged treatment session"""
    device: Optional[str] = None
    montage: Optional[str] = None
    duration: Optional[int] = None
    notes: Optional[str] = None
    observations: Optional[str] = None
    patient_feedback: Optional[str] = None
    media_attached: bool = False
    completed_by: Optional[str] = None

    @staticmethod
    def from_dict(data: dict) -> "SessionInput":
        return SessionInput(**_pick(
            SessionInput, data,
            {
                'patientFeedback': 'patient_feedback',
                'mediaAttached': 'media_attached',
                'completedBy': 'completed_by',
            }
        ))


def coerce(contract_cls, value):
    """
    Accept either a contract instance or a plain dict.

    Args:
        contract_cls: One of the input dataclasses above
        value: Instance of contract_cls, dict, or None

    Returns:
        Instance of contract_cls
    """
    if isinstance(value, contract_cls):
        return value
    if value is None:
        return contract_cls()
    if isinstance(value, dict):
        return contract_cls.from_dict(value)
    raise TypeError(
        f"Expected {contract_cls.__name__} or dict, got {type(value).__name__}"
    )
