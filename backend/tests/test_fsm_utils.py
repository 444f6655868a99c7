from app.utils.fsm import TransitionErrorCode, TransitionRule, TransitionValidator
from werkzeug.exceptions import BadRequest, Forbidden
import pytest


def _fsm():
    return TransitionValidator([
        TransitionRule('A', 'B', 'advance', 'OPERATOR'),
        TransitionRule('B', 'C', 'approve', 'MANAGER'),
    ])


def test_transition_validator_allows_valid():
    result = _fsm().validate('A', 'B', 'advance', 'OPERATOR')
    assert result.is_valid is True
    assert result.code is None
    assert result.rule.to_status == 'B'


def test_transition_validator_reports_missing_edge():
    result = _fsm().validate('A', 'C', 'approve', 'MANAGER')
    assert result.is_valid is False
    assert result.code is TransitionErrorCode.NO_SUCH_EDGE
    assert "from 'A' to 'C'" in result.reason


def test_transition_validator_reports_wrong_role():
    result = _fsm().validate('B', 'C', 'approve', 'OPERATOR')
    assert result.is_valid is False
    assert result.code is TransitionErrorCode.WRONG_ROLE
    assert "'OPERATOR'" in result.reason


def test_assert_can_transition_maps_to_http_errors():
    fsm = _fsm()
    assert fsm.assert_can_transition('A', 'B', 'advance', 'OPERATOR').action == 'advance'
    with pytest.raises(BadRequest):
        fsm.assert_can_transition('A', 'C', 'advance', 'OPERATOR')
    with pytest.raises(Forbidden):
        fsm.assert_can_transition('B', 'C', 'approve', 'OPERATOR')


def test_rules_from_and_find():
    fsm = _fsm()
    assert [r.to_status for r in fsm.rules_from('A')] == ['B']
    assert fsm.rules_from('A', 'MANAGER') == []
    assert fsm.find('B', 'approve').required_role == 'MANAGER'
    assert fsm.find('C', 'approve') is None
    assert fsm.graph == {'A': {'B'}, 'B': {'C'}}


def test_duplicate_edges_rejected():
    with pytest.raises(ValueError):
        TransitionValidator([
            TransitionRule('A', 'B', 'advance', 'OPERATOR'),
            TransitionRule('A', 'B', 'advance', 'MANAGER'),
        ])


def test_rule_to_dict_renders_enum_values():
    from app.constants.pdr import PDRAction, PDRStatus, Role
    rule = TransitionRule(PDRStatus.PLAN_LOCKED, PDRStatus.PDR_BOOKED, PDRAction.MARK_BOOKED, Role.CEO)
    assert rule.to_dict() == {
        'fromStatus': 'PLAN_LOCKED', 'toStatus': 'PDR_BOOKED', 'action': 'markBooked', 'requiredRole': 'CEO',
    }
