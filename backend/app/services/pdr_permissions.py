"""Permission resolver for PDRs.

Maps (status, role, ownership) to a CapabilitySet. The per-status policy lives in
STAGE_POLICY. Submit and booking capabilities are read off the transition table,
so they cannot drift from what validate_transition accepts.

Route handlers must not re-derive any of this inline; they call get_permissions.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from app.constants.pdr import (
    CEO_APPROVAL_ACTIONS, EMPLOYEE_SUBMISSION_ACTIONS, LOCKED_STATUSES,
    PDRAction, PDRStatus, Role, parse_role, parse_status,
)
from app.services.pdr_lifecycle import get_valid_next_states

S = PDRStatus


@dataclass(frozen=True)
class CapabilitySet:
    can_view: bool = False
    can_edit: bool = False
    can_view_employee_fields: bool = False
    can_edit_employee_fields: bool = False
    can_view_ceo_fields: bool = False
    can_edit_ceo_fields: bool = False
    can_submit_for_review: bool = False
    can_submit_ceo_review: bool = False
    can_mark_booked: bool = False
    read_only_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        out = {_camel(k): v for k, v in asdict(self).items()}
        if self.read_only_reason is None:
            out.pop('readOnlyReason')
        return out


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(p.title() for p in rest)


@dataclass(frozen=True)
class _StagePolicy:
    employee_editable: bool     # owner may edit employee fields (unless locked)
    ceo_review: bool            # CEO is actively reviewing; CEO fields editable
    employee_sees_ceo: bool     # CEO commentary is finalised and shown to the owner
    employee_reason: Optional[str]
    ceo_reason: Optional[str]


STAGE_POLICY: Dict[PDRStatus, _StagePolicy] = {
    S.CREATED: _StagePolicy(True, False, False, None, 'PDR not yet submitted for review'),
    S.SUBMITTED: _StagePolicy(True, False, False, None, 'PDR has been submitted; start the review to edit'),
    S.OPEN_FOR_REVIEW: _StagePolicy(False, True, False, 'PDR is under CEO review', None),
    S.PLAN_LOCKED: _StagePolicy(False, False, True, 'PDR is locked pending meeting booking', 'PDR is locked, only booking action available'),
    S.PDR_BOOKED: _StagePolicy(False, False, True, 'PDR is booked and awaiting mid-year review window', 'PDR is booked and awaiting mid-year review window'),
    S.MID_YEAR_SUBMITTED: _StagePolicy(False, False, True, 'Mid-year review submitted and awaiting CEO check-in', 'Mid-year review submitted; start the mid-year check-in to edit'),
    S.MID_YEAR_CHECK: _StagePolicy(False, True, False, 'Mid-year check-in is under CEO review', None),
    S.MID_YEAR_APPROVED: _StagePolicy(False, False, True, 'Mid-year review approved; plan stays locked until end-year submission', 'Mid-year review approved; awaiting employee end-year submission'),
    S.END_YEAR_SUBMITTED: _StagePolicy(False, False, True, 'End-year review submitted and awaiting CEO final review', 'End-year review submitted; start the final review to edit'),
    S.END_YEAR_REVIEW: _StagePolicy(False, True, False, 'End-year review is under CEO final review', None),
    S.COMPLETED: _StagePolicy(False, False, True, 'PDR is completed and permanently locked', 'PDR is completed and permanently locked'),
}

NOT_OWNER_REASON = 'PDR belongs to another employee'
EXPLICIT_LOCK_REASON = 'PDR has been locked by CEO'


def _action_capabilities(status: PDRStatus, role: Role) -> Dict[str, bool]:
    actions = {r.action for r in get_valid_next_states(status, role)}
    return {
        'can_submit_for_review': bool(actions & EMPLOYEE_SUBMISSION_ACTIONS),
        'can_submit_ceo_review': bool(actions & CEO_APPROVAL_ACTIONS),
        'can_mark_booked': PDRAction.MARK_BOOKED in actions,
    }


def get_permissions(status, role, is_owner: bool = False, *, is_locked: bool = False) -> CapabilitySet:
    """Resolve the capability set for a PDR.

    `is_locked` is the record's explicit lock flag; statuses in LOCKED_STATUSES are
    locked regardless. Unknown status or role values raise (PDRDomainError subclasses).
    """
    s = parse_status(status)
    r = parse_role(role)
    policy = STAGE_POLICY[s]
    locked = is_locked or s in LOCKED_STATUSES
    actions = _action_capabilities(s, r)

    if r is Role.CEO:
        submitted = s is not S.CREATED
        can_edit_ceo = policy.ceo_review
        return CapabilitySet(
            can_view=True,
            can_edit=can_edit_ceo,
            can_view_employee_fields=submitted,
            can_edit_employee_fields=False,
            can_view_ceo_fields=submitted,
            can_edit_ceo_fields=can_edit_ceo,
            can_submit_for_review=False,
            can_submit_ceo_review=actions['can_submit_ceo_review'],
            can_mark_booked=actions['can_mark_booked'],
            read_only_reason=None if can_edit_ceo else policy.ceo_reason,
        )

    if not is_owner:
        return CapabilitySet(read_only_reason=NOT_OWNER_REASON)

    can_edit_employee = policy.employee_editable and not locked
    reason = None
    if not can_edit_employee:
        reason = policy.employee_reason or EXPLICIT_LOCK_REASON
    return CapabilitySet(
        can_view=True,
        can_edit=can_edit_employee,
        can_view_employee_fields=True,
        can_edit_employee_fields=can_edit_employee,
        can_view_ceo_fields=policy.employee_sees_ceo,
        can_edit_ceo_fields=False,
        can_submit_for_review=actions['can_submit_for_review'],
        can_submit_ceo_review=False,
        can_mark_booked=False,
        read_only_reason=reason,
    )


def is_pdr_editable(status, role, is_owner: bool = False, *, is_locked: bool = False) -> bool:
    return get_permissions(status, role, is_owner, is_locked=is_locked).can_edit


def get_read_only_reason(status, role, is_owner: bool = False, *, is_locked: bool = False) -> Optional[str]:
    return get_permissions(status, role, is_owner, is_locked=is_locked).read_only_reason


__all__ = [
    'CapabilitySet', 'STAGE_POLICY', 'get_permissions', 'is_pdr_editable', 'get_read_only_reason',
]
