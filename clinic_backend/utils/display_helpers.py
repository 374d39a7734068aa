"""
Display Helpers - Convert patient records to human-readable markers

Used by the action API read methods and the web/console surfaces.
Pure functions over record dicts; no store access.
"""

from typing import Dict, Any, Optional

from clinic_backend.utils.roles import (
    ASSESSMENT_LABELS,
    AssessmentKind,
    PaymentStatus,
    PlanStatus,
    ROLE_LABELS,
    Role,
)


COMPLETE_MARK = "✔"
INCOMPLETE_MARK = "•"

PAYMENT_STATUS_TEXT = {
    PaymentStatus.COMPLETED: "Payment completed",
    PaymentStatus.PAY_LATER: "Scheduled for later payment",
    PaymentStatus.PENDING: "Payment pending",
}


def is_assessment_complete(record: Dict[str, Any], kind: AssessmentKind) -> bool:
    """A slot is complete iff its score is present"""
    slot = record.get('assessments', {}).get(kind.value) or {}
    return slot.get('score') is not None


def assessment_summary(record: Dict[str, Any]) -> Dict[str, str]:
    """
    Per-kind complete/incomplete marker.

    Args:
        record: PatientRecord dict

    Returns:
        dict: slot name -> marker string

    Example:
        {'prs': '✔ PRS', 'fnon': '• FNON', 'eeg': '• EEG',
         'brainMapping': '• Brain Mapping'}
    """
    summary = {}
    for kind in AssessmentKind:
        mark = COMPLETE_MARK if is_assessment_complete(record, kind) else INCOMPLETE_MARK
        summary[kind.value] = f"{mark} {ASSESSMENT_LABELS[kind]}"
    return summary


def payment_status_text(status: Optional[str]) -> str:
    """Receptionist checklist wording; anything unrecognized reads as pending"""
    try:
        return PAYMENT_STATUS_TEXT[PaymentStatus(status)]
    except ValueError:
        return PAYMENT_STATUS_TEXT[PaymentStatus.PENDING]


def treatment_progress(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Session progress against the treatment plan.

    Returns:
        dict: {
            'has_plan': bool,
            'completed': int,   # sessions logged
            'planned': int,     # 0 when no plan
            'percent': int      # rounded, 0 when no plan
        }
    """
    plan = record.get('treatmentPlan') or {}
    completed = len(record.get('sessions', []))
    has_plan = plan.get('status', PlanStatus.NOT_CREATED.value) != PlanStatus.NOT_CREATED.value
    planned = (plan.get('sessionsPlanned') or 0) if has_plan else 0

    percent = round(completed / planned * 100) if planned else 0

    return {
        'has_plan': has_plan,
        'completed': completed,
        'planned': planned,
        'percent': percent,
    }


def role_label(role: Optional[str]) -> str:
    try:
        return ROLE_LABELS[Role(role)]
    except ValueError:
        return "Unknown Role"


def patient_header(record: Optional[Dict[str, Any]]) -> str:
    """One-line patient banner, e.g. 'Patient: John Doe • Visit: 2025-11-26'"""
    if not record:
        return "No patient selected"
    profile = record['profile']
    return f"Patient: {profile['name']} • Visit: {profile['visitDate']}"
