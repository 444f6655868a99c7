"""Central enum definitions for the PDR lifecycle.

Status, role and action values are parsed here once; everything downstream compares
enum members. Persisted values are the canonical `.value` strings. Older rows and
clients used a handful of alternate spellings, accepted only through the parse_* helpers.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, List, Optional, Union


class PDRDomainError(ValueError):
    """A value outside the enumerated PDR domain reached the lifecycle core."""


class UnknownStatusError(PDRDomainError):
    pass


class UnknownRoleError(PDRDomainError):
    pass


class UnknownActionError(PDRDomainError):
    pass


class PDRStatus(str, Enum):
    CREATED = 'Created'
    SUBMITTED = 'SUBMITTED'
    OPEN_FOR_REVIEW = 'OPEN_FOR_REVIEW'
    PLAN_LOCKED = 'PLAN_LOCKED'
    PDR_BOOKED = 'PDR_BOOKED'
    MID_YEAR_SUBMITTED = 'MID_YEAR_SUBMITTED'
    MID_YEAR_CHECK = 'MID_YEAR_CHECK'
    MID_YEAR_APPROVED = 'MID_YEAR_APPROVED'
    END_YEAR_SUBMITTED = 'END_YEAR_SUBMITTED'
    END_YEAR_REVIEW = 'END_YEAR_REVIEW'
    COMPLETED = 'COMPLETED'


class Role(str, Enum):
    EMPLOYEE = 'EMPLOYEE'
    CEO = 'CEO'


class PDRAction(str, Enum):
    SUBMIT_INITIAL_PDR = 'submitInitialPDR'
    START_REVIEW = 'startReview'
    APPROVE_PLAN = 'approvePlan'
    MARK_BOOKED = 'markBooked'
    SUBMIT_MID_YEAR = 'submitMidYear'
    START_MID_YEAR_REVIEW = 'startMidYearReview'
    APPROVE_MID_YEAR = 'approveMidYear'
    SUBMIT_FINAL_YEAR = 'submitFinalYear'
    START_FINAL_REVIEW = 'startFinalReview'
    COMPLETE_FINAL_REVIEW = 'completeFinalReview'


# Keys are lower-cased; lookups normalise the raw value the same way.
_STATUS_ALIASES: Dict[str, PDRStatus] = {
    'created': PDRStatus.CREATED,
    'draft': PDRStatus.CREATED,
    'open for review': PDRStatus.SUBMITTED,
    'under_review': PDRStatus.OPEN_FOR_REVIEW,
    'plan - locked': PDRStatus.PLAN_LOCKED,
    'pdr_booked': PDRStatus.PDR_BOOKED,
}
for _s in PDRStatus:
    _STATUS_ALIASES.setdefault(_s.value.lower(), _s)

_ACTION_ALIASES: Dict[str, PDRAction] = {
    'submitforreview': PDRAction.SUBMIT_INITIAL_PDR,
    'submitceoreview': PDRAction.APPROVE_PLAN,
}
for _a in PDRAction:
    _ACTION_ALIASES.setdefault(_a.value.lower(), _a)


def _lookup(raw, enum_cls, aliases):
    if isinstance(raw, enum_cls):
        return raw
    if not isinstance(raw, str):
        return None
    return aliases.get(raw.strip().lower())


def parse_status(raw: Union[str, PDRStatus]) -> PDRStatus:
    status = _lookup(raw, PDRStatus, _STATUS_ALIASES)
    if status is None:
        raise UnknownStatusError(f"Unknown PDR status {raw!r}")
    return status


def parse_role(raw: Union[str, Role]) -> Role:
    if isinstance(raw, Role):
        return raw
    if isinstance(raw, str) and raw.strip().upper() in Role.__members__:
        return Role[raw.strip().upper()]
    raise UnknownRoleError(f"Unknown role {raw!r}")


def parse_action(raw: Union[str, PDRAction]) -> PDRAction:
    action = _lookup(raw, PDRAction, _ACTION_ALIASES)
    if action is None:
        raise UnknownActionError(f"Unknown PDR action {raw!r}")
    return action


def try_parse_status(raw) -> Optional[PDRStatus]:
    return _lookup(raw, PDRStatus, _STATUS_ALIASES)


def try_parse_action(raw) -> Optional[PDRAction]:
    return _lookup(raw, PDRAction, _ACTION_ALIASES)


# Employee-authored submissions vs CEO approvals (used to derive submit capabilities)
EMPLOYEE_SUBMISSION_ACTIONS = frozenset({
    PDRAction.SUBMIT_INITIAL_PDR, PDRAction.SUBMIT_MID_YEAR, PDRAction.SUBMIT_FINAL_YEAR,
})
CEO_APPROVAL_ACTIONS = frozenset({
    PDRAction.APPROVE_PLAN, PDRAction.APPROVE_MID_YEAR, PDRAction.COMPLETE_FINAL_REVIEW,
})

LOCKED_STATUSES = frozenset({PDRStatus.PLAN_LOCKED, PDRStatus.PDR_BOOKED, PDRStatus.COMPLETED})

STATUS_DISPLAY_NAMES: Dict[PDRStatus, str] = {
    PDRStatus.CREATED: 'Draft',
    PDRStatus.SUBMITTED: 'Submitted for Review',
    PDRStatus.OPEN_FOR_REVIEW: 'Under CEO Review',
    PDRStatus.PLAN_LOCKED: 'Plan Approved',
    PDRStatus.PDR_BOOKED: 'Meeting Booked',
    PDRStatus.MID_YEAR_SUBMITTED: 'Mid-Year Submitted',
    PDRStatus.MID_YEAR_CHECK: 'Mid-Year Check-in',
    PDRStatus.MID_YEAR_APPROVED: 'Mid-Year Approved',
    PDRStatus.END_YEAR_SUBMITTED: 'End-Year Submitted',
    PDRStatus.END_YEAR_REVIEW: 'End-Year Review',
    PDRStatus.COMPLETED: 'Completed',
}

STATUS_DESCRIPTIONS: Dict[PDRStatus, str] = {
    PDRStatus.CREATED: 'PDR is being created by the employee',
    PDRStatus.SUBMITTED: 'PDR has been submitted and is awaiting CEO review',
    PDRStatus.OPEN_FOR_REVIEW: 'CEO is reviewing the initial plan',
    PDRStatus.PLAN_LOCKED: 'Initial PDR has been approved by CEO',
    PDRStatus.PDR_BOOKED: 'PDR review meeting has been booked',
    PDRStatus.MID_YEAR_SUBMITTED: 'Mid-year review has been submitted',
    PDRStatus.MID_YEAR_CHECK: 'CEO is reviewing the mid-year check-in',
    PDRStatus.MID_YEAR_APPROVED: 'Mid-year review has been approved by CEO',
    PDRStatus.END_YEAR_SUBMITTED: 'End-year review has been submitted',
    PDRStatus.END_YEAR_REVIEW: 'CEO is completing the final review',
    PDRStatus.COMPLETED: 'PDR cycle is complete',
}

STATUS_STAGES: Dict[PDRStatus, str] = {
    PDRStatus.CREATED: 'planning',
    PDRStatus.SUBMITTED: 'planning',
    PDRStatus.OPEN_FOR_REVIEW: 'planning',
    PDRStatus.PLAN_LOCKED: 'planning',
    PDRStatus.PDR_BOOKED: 'planning',
    PDRStatus.MID_YEAR_SUBMITTED: 'mid-year',
    PDRStatus.MID_YEAR_CHECK: 'mid-year',
    PDRStatus.MID_YEAR_APPROVED: 'mid-year',
    PDRStatus.END_YEAR_SUBMITTED: 'end-year',
    PDRStatus.END_YEAR_REVIEW: 'end-year',
    PDRStatus.COMPLETED: 'complete',
}

STATUS_PROGRESS: Dict[PDRStatus, int] = {
    PDRStatus.CREATED: 0,
    PDRStatus.SUBMITTED: 10,
    PDRStatus.OPEN_FOR_REVIEW: 20,
    PDRStatus.PLAN_LOCKED: 30,
    PDRStatus.PDR_BOOKED: 35,
    PDRStatus.MID_YEAR_SUBMITTED: 50,
    PDRStatus.MID_YEAR_CHECK: 60,
    PDRStatus.MID_YEAR_APPROVED: 70,
    PDRStatus.END_YEAR_SUBMITTED: 85,
    PDRStatus.END_YEAR_REVIEW: 95,
    PDRStatus.COMPLETED: 100,
}


def all_statuses() -> List[PDRStatus]:
    """Statuses in lifecycle order."""
    return list(PDRStatus)


def get_status_display_name(status) -> str:
    return STATUS_DISPLAY_NAMES[parse_status(status)]


def get_status_description(status) -> str:
    return STATUS_DESCRIPTIONS[parse_status(status)]


def get_status_stage(status) -> str:
    return STATUS_STAGES[parse_status(status)]


def get_status_progress(status) -> int:
    return STATUS_PROGRESS[parse_status(status)]


def is_final_status(status) -> bool:
    return parse_status(status) is PDRStatus.COMPLETED


def is_submitted_status(status) -> bool:
    return parse_status(status) in (
        PDRStatus.SUBMITTED, PDRStatus.MID_YEAR_SUBMITTED, PDRStatus.END_YEAR_SUBMITTED,
    )


def is_approved_status(status) -> bool:
    return parse_status(status) in (
        PDRStatus.PLAN_LOCKED, PDRStatus.MID_YEAR_APPROVED, PDRStatus.COMPLETED,
    )


def is_locked_status(status) -> bool:
    return parse_status(status) in LOCKED_STATUSES


def status_metadata(status) -> Dict[str, object]:
    s = parse_status(status)
    return {
        'status': s.value,
        'displayName': STATUS_DISPLAY_NAMES[s],
        'description': STATUS_DESCRIPTIONS[s],
        'stage': STATUS_STAGES[s],
        'progress': STATUS_PROGRESS[s],
    }


__all__ = [
    'PDRDomainError', 'UnknownStatusError', 'UnknownRoleError', 'UnknownActionError',
    'PDRStatus', 'Role', 'PDRAction',
    'parse_status', 'parse_role', 'parse_action', 'try_parse_status', 'try_parse_action',
    'EMPLOYEE_SUBMISSION_ACTIONS', 'CEO_APPROVAL_ACTIONS', 'LOCKED_STATUSES',
    'STATUS_DISPLAY_NAMES', 'STATUS_DESCRIPTIONS', 'STATUS_STAGES', 'STATUS_PROGRESS',
    'all_statuses', 'get_status_display_name', 'get_status_description', 'get_status_stage',
    'get_status_progress', 'is_final_status', 'is_submitted_status', 'is_approved_status',
    'is_locked_status', 'status_metadata',
]
