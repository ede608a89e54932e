"""Makeup-credit side effects of an attendance status change"""

from enum import Enum
from typing import List, Optional

from studio_core.domain.models import AttendanceStatus, MakeupCredit


class CreditEffect(str, Enum):
    NONE = "none"
    EMIT = "emit"  # new credit keyed by (student, date)
    CONSUME = "consume"  # spend the oldest unused credit
    RETRACT = "retract"  # delete the unused credit keyed by (student, date)


def transition(
    old_status: Optional[AttendanceStatus],
    new_status: AttendanceStatus,
    is_makeup_class: bool,
) -> CreditEffect:
    """
    Decide the credit-bank effect of replacing old_status with new_status.

    old_status is None when no mark existed for the (student, date, class) key.
    Effects are mutually exclusive:

    - regular class, new absent: EMIT (caller still guards against duplicates)
    - regular class, old absent, new anything else: RETRACT
    - makeup class, new present coming from a non-present mark: CONSUME
    - everything else: NONE

    Re-marking a makeup presence as present again does not consume a second
    credit, and a consumed credit is never refunded by a later correction.
    """
    if is_makeup_class:
        if new_status == AttendanceStatus.PRESENT and old_status != AttendanceStatus.PRESENT:
            return CreditEffect.CONSUME
        return CreditEffect.NONE

    if new_status == AttendanceStatus.ABSENT:
        return CreditEffect.EMIT
    if old_status == AttendanceStatus.ABSENT:
        return CreditEffect.RETRACT
    return CreditEffect.NONE


def oldest_unused(credits: List[MakeupCredit]) -> Optional[MakeupCredit]:
    """First-in-first-out pick among a student's credits"""
    unused = [c for c in credits if not c.is_used]
    if not unused:
        return None
    return min(unused, key=lambda c: c.generated_from_date)
