"""
Utility helpers for the clinical workflow demo

Simple utility functions for ID and timestamp generation.
"""

import re
import time
from datetime import datetime, timezone


PATIENT_ID_PREFIX = "P"
PATIENT_ID_WIDTH = 3

_PATIENT_ID_PATTERN = re.compile(r"^P(\d+)$")


def utc_now_iso():
    """
    Current UTC time as ISO 8601 string

    Returns:
        str: e.g. '2025-11-26T15:30:45.123456+00:00'
    """
    return datetime.now(timezone.utc).isoformat()


def today_iso():
    """
    Today's date as YYYY-MM-DD (UTC)

    Returns:
        str: e.g. '2025-11-26'
    """
    return datetime.now(timezone.utc).date().isoformat()


def format_patient_id(sequence):
    """
    Build patient identifier from counter value

    Args:
        sequence (int): Monotonic counter value

    Returns:
        str: Patient ID

    Examples:
        >>> format_patient_id(2)
        'P002'

        >>> format_patient_id(1234)
        'P1234'
    """
    return f"{PATIENT_ID_PREFIX}{sequence:0{PATIENT_ID_WIDTH}d}"


def parse_patient_sequence(patient_id):
    """
    Extract counter value from a patient identifier

    Args:
        patient_id (str): e.g. 'P007'

    Returns:
        int or None: 7 for 'P007', None for ids outside the P<digits> scheme
    """
    match = _PATIENT_ID_PATTERN.match(str(patient_id))
    return int(match.group(1)) if match else None


def generate_plan_id():
    """
    Generate time-based treatment plan identifier

    No uniqueness guarantee beyond millisecond resolution.

    Returns:
        str: e.g. 'tp_1732635045123'
    """
    return f"tp_{int(time.time() * 1000)}"
