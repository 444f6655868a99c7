from __future__ import annotations
"""Finite state machine utility for role-guarded status transitions.

A machine is an ordered edge list of TransitionRule(from, to, action, required_role).
`validate` is pure and returns a TransitionResult; `assert_can_transition` is the
route-facing variant that aborts with 400 (no such edge) or 403 (edge exists, wrong role).

Usage:
    from app.utils.fsm import TransitionRule, TransitionValidator
    FSM = TransitionValidator([
        TransitionRule('QUEUED', 'STARTED', 'start', 'OPERATOR'),
        TransitionRule('STARTED', 'COMPLETED', 'complete', 'OPERATOR'),
    ])
    FSM.validate('QUEUED', 'STARTED', 'start', 'OPERATOR').is_valid  # True
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Hashable, Iterable, List, Optional, Set, Tuple
from flask import abort


@dataclass(frozen=True)
class TransitionRule:
    from_status: Hashable
    to_status: Hashable
    action: Hashable
    required_role: Hashable
    requirements: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fromStatus': _label(self.from_status),
            'toStatus': _label(self.to_status),
            'action': _label(self.action),
            'requiredRole': _label(self.required_role),
        }


class TransitionErrorCode(str, Enum):
    NO_SUCH_EDGE = 'INVALID_STATE_TRANSITION'
    WRONG_ROLE = 'INSUFFICIENT_PERMISSIONS'


@dataclass(frozen=True)
class TransitionResult:
    is_valid: bool
    reason: Optional[str] = None
    code: Optional[TransitionErrorCode] = None
    rule: Optional[TransitionRule] = None


_HTTP_STATUS = {
    TransitionErrorCode.NO_SUCH_EDGE: 400,
    TransitionErrorCode.WRONG_ROLE: 403,
}


def _label(value) -> str:
    return str(getattr(value, 'value', value))


class TransitionValidator:
    def __init__(self, rules: Iterable[TransitionRule], field_name: str = 'status'):
        self.rules: Tuple[TransitionRule, ...] = tuple(rules)
        self.field_name = field_name
        edges: Dict[Tuple[Hashable, Hashable, Hashable], TransitionRule] = {}
        for rule in self.rules:
            key = (rule.from_status, rule.to_status, rule.action)
            if key in edges:
                raise ValueError(f"Duplicate {field_name} edge {_label(rule.from_status)} -> {_label(rule.to_status)} ({_label(rule.action)})")
            edges[key] = rule
        self._edges = edges

    @property
    def graph(self) -> Dict[Hashable, Set[Hashable]]:
        """Adjacency view {from: {to, ...}} ignoring actions and roles."""
        out: Dict[Hashable, Set[Hashable]] = {}
        for rule in self.rules:
            out.setdefault(rule.from_status, set()).add(rule.to_status)
        return out

    def rules_from(self, current, role=None) -> List[TransitionRule]:
        return [r for r in self.rules if r.from_status == current and (role is None or r.required_role == role)]

    def find(self, current, action) -> Optional[TransitionRule]:
        """Rule leaving `current` via `action`, whichever role it requires."""
        for rule in self.rules:
            if rule.from_status == current and rule.action == action:
                return rule
        return None

    def validate(self, current, target, action, role) -> TransitionResult:
        rule = self._edges.get((current, target, action))
        if rule is None:
            return TransitionResult(
                False,
                f"Invalid {self.field_name} transition from '{_label(current)}' to '{_label(target)}' with action '{_label(action)}'",
                TransitionErrorCode.NO_SUCH_EDGE,
            )
        if rule.required_role != role:
            return TransitionResult(
                False,
                f"User role '{_label(role)}' is not allowed to perform action '{_label(action)}'",
                TransitionErrorCode.WRONG_ROLE,
                rule,
            )
        return TransitionResult(True, rule=rule)

    def assert_can_transition(self, current, target, action, role) -> TransitionRule:
        result = self.validate(current, target, action, role)
        if not result.is_valid:
            abort(_HTTP_STATUS[result.code], description=result.reason)
        return result.rule


__all__ = ['TransitionRule', 'TransitionErrorCode', 'TransitionResult', 'TransitionValidator']
