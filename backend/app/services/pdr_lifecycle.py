"""PDR lifecycle: the authoritative transition table and the transition validator.

Pure module. No I/O, no logging and no mutable module state. Route handlers call
`validate_transition` before persisting a status change and
`validate_transition_requirements` before submissions that need content.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from app.constants.pdr import (
    PDRAction, PDRStatus, Role,
    parse_role, parse_status, try_parse_action, try_parse_status,
)
from app.utils.fsm import TransitionErrorCode, TransitionResult, TransitionRule, TransitionValidator

S = PDRStatus
A = PDRAction

PDR_TRANSITIONS = (
    TransitionRule(S.CREATED, S.SUBMITTED, A.SUBMIT_INITIAL_PDR, Role.EMPLOYEE, ('goals', 'behaviors')),
    TransitionRule(S.SUBMITTED, S.OPEN_FOR_REVIEW, A.START_REVIEW, Role.CEO),
    TransitionRule(S.OPEN_FOR_REVIEW, S.PLAN_LOCKED, A.APPROVE_PLAN, Role.CEO, ('ceoFields',)),
    TransitionRule(S.PLAN_LOCKED, S.PDR_BOOKED, A.MARK_BOOKED, Role.CEO),
    TransitionRule(S.PLAN_LOCKED, S.MID_YEAR_SUBMITTED, A.SUBMIT_MID_YEAR, Role.EMPLOYEE),
    TransitionRule(S.PDR_BOOKED, S.MID_YEAR_SUBMITTED, A.SUBMIT_MID_YEAR, Role.EMPLOYEE),
    TransitionRule(S.MID_YEAR_SUBMITTED, S.MID_YEAR_CHECK, A.START_MID_YEAR_REVIEW, Role.CEO),
    TransitionRule(S.MID_YEAR_CHECK, S.MID_YEAR_APPROVED, A.APPROVE_MID_YEAR, Role.CEO),
    TransitionRule(S.MID_YEAR_APPROVED, S.END_YEAR_SUBMITTED, A.SUBMIT_FINAL_YEAR, Role.EMPLOYEE),
    TransitionRule(S.END_YEAR_SUBMITTED, S.END_YEAR_REVIEW, A.START_FINAL_REVIEW, Role.CEO),
    TransitionRule(S.END_YEAR_REVIEW, S.COMPLETED, A.COMPLETE_FINAL_REVIEW, Role.CEO),
)

PDR_FSM = TransitionValidator(PDR_TRANSITIONS, field_name='PDR status')

StatusLike = Union[str, PDRStatus]
ActionLike = Union[str, PDRAction]
RoleLike = Union[str, Role]


def validate_transition(from_status: StatusLike, to_status: StatusLike, action: ActionLike, role: RoleLike) -> TransitionResult:
    """Check a (from, to, action, role) tuple against the transition table.

    Unknown status or action strings fail closed with NO_SUCH_EDGE. An unknown
    role is a caller bug and raises UnknownRoleError.
    """
    r = parse_role(role)
    frm = try_parse_status(from_status)
    to = try_parse_status(to_status)
    act = try_parse_action(action)
    if frm is None or to is None or act is None:
        return TransitionResult(
            False,
            f"Invalid PDR status transition from '{from_status}' to '{to_status}' with action '{action}'",
            TransitionErrorCode.NO_SUCH_EDGE,
        )
    return PDR_FSM.validate(frm, to, act, r)


def get_valid_next_states(status: StatusLike, role: RoleLike) -> List[TransitionRule]:
    return PDR_FSM.rules_from(parse_status(status), parse_role(role))


def next_states_payload(status: StatusLike, role: RoleLike) -> List[Dict[str, str]]:
    return [{'toStatus': r.to_status.value, 'action': r.action.value} for r in get_valid_next_states(status, role)]


def rule_for_action(status: StatusLike, action: ActionLike) -> Optional[TransitionRule]:
    """Table row leaving `status` via `action` regardless of role (None when there is none)."""
    frm = try_parse_status(status)
    act = try_parse_action(action)
    if frm is None or act is None:
        return None
    return PDR_FSM.find(frm, act)


# ---------- Transition requirements ---------- #

@dataclass(frozen=True)
class RequirementResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def _blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def _items(value) -> List[Mapping[str, Any]]:
    """Field-group entries as mappings; anything that is not an object counts as empty.

    Field groups are free-form client JSON, so a bare string stands in for a one-item list.
    """
    if not value:
        return []
    if isinstance(value, (str, Mapping)) or not isinstance(value, (list, tuple)):
        value = [value]
    return [item if isinstance(item, Mapping) else {} for item in value]


def _unique(errors: List[str]) -> List[str]:
    return list(dict.fromkeys(errors))


def _check_goals(data: Mapping[str, Any]) -> List[str]:
    goals = _items(data.get('goals'))
    if not goals:
        return ['At least one goal is required before submitting for review']
    errors = []
    for goal in goals:
        if _blank(goal.get('title')):
            errors.append('All goals must have a title')
        if _blank(goal.get('description')):
            errors.append('All goals must have a description')
    return _unique(errors)


def _check_behaviors(data: Mapping[str, Any]) -> List[str]:
    behaviors = _items(data.get('behaviors'))
    if not behaviors:
        return ['At least one behavior assessment is required before submitting for review']
    errors = []
    for behavior in behaviors:
        if _blank(behavior.get('description')):
            errors.append('All behavior assessments must have a description')
        assessment = behavior.get('employeeSelfAssessment', behavior.get('employee_self_assessment'))
        if _blank(assessment):
            errors.append('All behavior assessments must have a self-assessment')
    return _unique(errors)


def _check_ceo_fields(data: Mapping[str, Any]) -> List[str]:
    ceo = data.get('ceoFields')
    if not ceo:
        return ['CEO review fields are required before submitting review']
    # Comments may sit on the goal/behavior items or in the CEO field group itself
    ceo_group = ceo if isinstance(ceo, Mapping) else {}
    errors = []
    goals = _items(data.get('goals')) + _items(ceo_group.get('goals'))
    behaviors = _items(data.get('behaviors')) + _items(ceo_group.get('behaviors'))
    if not any(not _blank(g.get('ceoComments')) for g in goals):
        errors.append('CEO must provide comments on at least one goal')
    if not any(not _blank(b.get('ceoComments')) for b in behaviors):
        errors.append('CEO must provide comments on at least one behavior')
    return errors


_REQUIREMENT_CHECKS = {
    'goals': _check_goals,
    'behaviors': _check_behaviors,
    'ceoFields': _check_ceo_fields,
}


def validate_transition_requirements(pdr_data: Mapping[str, Any], rule: TransitionRule) -> RequirementResult:
    errors: List[str] = []
    for name in rule.requirements:
        check = _REQUIREMENT_CHECKS.get(name)
        if check is None:
            errors.append(f"Unknown validation field: {name}")
            continue
        errors.extend(check(pdr_data))
    return RequirementResult(not errors, errors)


__all__ = [
    'PDR_TRANSITIONS', 'PDR_FSM', 'validate_transition', 'get_valid_next_states', 'next_states_payload',
    'rule_for_action', 'RequirementResult', 'validate_transition_requirements',
]
