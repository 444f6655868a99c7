from __future__ import annotations
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import get_jwt
from app import get_db, get_pdr_store
from app.config.pagination import normalize_pagination
from app.constants.pdr import PDRAction, Role, parse_status, status_metadata, try_parse_action
from app.decorators.audit import audit_log
from app.decorators.auth import require_role
from app.models.pdr import PDR
from app.services.notifications import add_pdr_notification
from app.services.pdr_lifecycle import PDR_FSM, next_states_payload, validate_transition, validate_transition_requirements
from app.services.pdr_permissions import CapabilitySet
from app.services.pdr_store import StaleStatusError
from app.services.policy import assert_can_view, current_role, current_user_id, permissions_for
from app.utils.fsm import TransitionErrorCode

pdr_bp = Blueprint('pdrs', __name__)

_TRANSITION_HTTP_STATUS = {
    TransitionErrorCode.NO_SUCH_EDGE: 400,
    TransitionErrorCode.WRONG_ROLE: 403,
}
_MEETING_DATE_RE = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')


@pdr_bp.post('')
@require_role(Role.EMPLOYEE)
@audit_log('PDR.CREATE', entity='PDR', entity_id_key='id', meta_keys=['status'])
def create_pdr():
    data = request.get_json(silent=True) or {}
    fields = data.get('employeeFields') or {}
    if not isinstance(fields, dict):
        abort(400, description='employeeFields must be an object')
    pdr = get_pdr_store().add(PDR(user_id=current_user_id(), employee_fields=fields, ceo_fields={}))
    get_db().commit()
    return _pdr_json(pdr, permissions_for(pdr)), 201


@pdr_bp.get('')
@require_role()
def list_pdrs():
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    owner_filter = None if current_role() is Role.CEO else current_user_id()
    rows, total = get_pdr_store().list(user_id=owner_filter, limit=limit, offset=offset)
    return {
        'data': [_pdr_summary(p) for p in rows],
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


@pdr_bp.get('/<int:pdr_id>')
@require_role()
def get_pdr(pdr_id: int):
    pdr = _load(pdr_id)
    perms = assert_can_view(pdr)
    return _pdr_json(pdr, perms)


@pdr_bp.get('/<int:pdr_id>/permissions')
@require_role()
def get_pdr_permissions(pdr_id: int):
    pdr = _load(pdr_id)
    perms = permissions_for(pdr)
    return {
        'pdrId': pdr.id,
        'status': parse_status(pdr.status).value,
        'permissions': perms.to_dict(),
        'nextStates': next_states_payload(pdr.status, current_role()) if perms.can_view else [],
    }


@pdr_bp.patch('/<int:pdr_id>')
@require_role()
@audit_log('PDR.FIELDS.UPDATE', entity='PDR', entity_id_key='id', meta_keys=['status'])
def update_pdr_fields(pdr_id: int):
    pdr = _load(pdr_id)
    read_status = pdr.status
    perms = assert_can_view(pdr)
    data = request.get_json(silent=True) or {}
    values: Dict[str, Any] = {}
    for key, column, allowed in (
        ('employeeFields', 'employee_fields', perms.can_edit_employee_fields),
        ('ceoFields', 'ceo_fields', perms.can_edit_ceo_fields),
    ):
        if key not in data:
            continue
        if not allowed:
            abort(403, description=perms.read_only_reason or f'{key} are read-only')
        if not isinstance(data[key], dict):
            abort(400, description=f'{key} must be an object')
        values[column] = {**(getattr(pdr, column) or {}), **data[key]}
    if not values:
        abort(400, description='employeeFields or ceoFields required')
    loaded = pdr
    pdr = _compare_and_set(pdr.id, read_status, values)
    _commit_or_restore(loaded, pdr.status)
    return _pdr_json(pdr, permissions_for(pdr))


@pdr_bp.post('/<int:pdr_id>/transitions/<action>')
@require_role()
@audit_log(
    lambda data, kw: f"PDR.TRANSITION.{str(kw.get('action')).upper()}",
    entity='PDR', entity_id_key='id', diff_keys=['status'],
    pre_fetch=lambda a, kw: _prefetch_pdr(kw.get('pdr_id')),
)
def transition_pdr(pdr_id: int, action: str):
    act = try_parse_action(action)
    if act is None:
        abort(400, description=f"Unknown PDR action '{action}'")
    pdr = _load(pdr_id)
    # Everything below is decided against this read; the write is conditional on it
    read_status = pdr.status
    assert_can_view(pdr)
    role = current_role()
    current = parse_status(read_status)
    rule = PDR_FSM.find(current, act)
    if rule is None:
        abort(400, description=f"Action '{act.value}' is not available from status '{current.value}'")
    result = validate_transition(current, rule.to_status, act, role)
    if not result.is_valid:
        abort(_TRANSITION_HTTP_STATUS[result.code], description=result.reason)

    requirements = validate_transition_requirements(_requirement_payload(pdr), rule)
    if not requirements.is_valid:
        abort(400, description='Validation failed: ' + ', '.join(requirements.errors))

    body = request.get_json(silent=True) or {}
    values = _transition_side_effects(act, body)
    values['status'] = rule.to_status
    loaded = pdr
    pdr = _compare_and_set(pdr.id, read_status, values)
    try:
        if current_app.config.get('PDR_NOTIFICATIONS_ENABLED', True):
            add_pdr_notification(pdr, act, ceo_name=get_jwt().get('name') if role is Role.CEO else None)
        get_db().commit()
    except Exception:
        _rollback_write(loaded, pdr.status)
        raise
    current_app.logger.info('PDR %s transitioned %s -> %s via %s', pdr.id, current.value, rule.to_status.value, act.value)
    return _pdr_json(pdr, permissions_for(pdr))


def _load(pdr_id: int) -> PDR:
    pdr = get_pdr_store().get(pdr_id)
    if not pdr:
        abort(404)
    return pdr


def _compare_and_set(pdr_id: int, read_status: str, values: Dict[str, Any]) -> PDR:
    try:
        return get_pdr_store().compare_and_set(pdr_id, read_status, **values)
    except StaleStatusError as e:
        get_db().rollback()
        current_app.logger.warning('Stale PDR update rejected: %s', e)
        abort(409, description='PDR status changed concurrently; reload and retry')


def _rollback_write(loaded: PDR, written_status: str):
    """Undo a store write whose session rows (notification, audit) could not be committed."""
    get_db().rollback()
    get_pdr_store().restore(loaded, written_status)
    current_app.logger.warning('PDR %s write reverted after side effects failed', loaded.id)


def _commit_or_restore(loaded: PDR, written_status: str):
    try:
        get_db().commit()
    except Exception:
        _rollback_write(loaded, written_status)
        raise


def _transition_side_effects(act: PDRAction, body: Dict[str, Any]) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    if act is PDRAction.SUBMIT_INITIAL_PDR:
        return {'submitted_at': now}
    if act is PDRAction.APPROVE_PLAN:
        return {'is_locked': True, 'locked_at': now, 'locked_by': current_user_id()}
    if act is PDRAction.MARK_BOOKED:
        return {'meeting_booked': True, 'meeting_booked_at': _parse_meeting_date(body.get('meetingDate')) or now}
    return {}


def _parse_meeting_date(raw) -> Optional[datetime]:
    """Meeting dates arrive as dd/mm/yyyy."""
    if raw in (None, ''):
        return None
    match = _MEETING_DATE_RE.match(str(raw).strip())
    if not match:
        abort(400, description='meetingDate must be dd/mm/yyyy')
    day, month, year = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        abort(400, description='meetingDate is not a valid date')


def _requirement_payload(pdr: PDR) -> Dict[str, Any]:
    emp = pdr.employee_fields or {}
    return {
        'goals': emp.get('goals') or [],
        'behaviors': emp.get('behaviors') or [],
        'ceoFields': pdr.ceo_fields or None,
    }


def _iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat().replace('+00:00', 'Z')


def _pdr_summary(pdr: PDR) -> Dict[str, Any]:
    status = parse_status(pdr.status)
    return {
        'id': pdr.id,
        'userId': pdr.user_id,
        'status': status.value,
        'statusInfo': status_metadata(status),
        'isLocked': bool(pdr.is_locked),
        'meetingBooked': bool(pdr.meeting_booked),
        'updatedAt': _iso(pdr.updated_at),
    }


def _pdr_json(pdr: PDR, perms: CapabilitySet) -> Dict[str, Any]:
    out = _pdr_summary(pdr)
    out.update({
        'meetingBookedAt': _iso(pdr.meeting_booked_at),
        'lockedAt': _iso(pdr.locked_at),
        'lockedBy': pdr.locked_by,
        'submittedAt': _iso(pdr.submitted_at),
        'permissions': perms.to_dict(),
        'nextStates': next_states_payload(pdr.status, current_role()),
    })
    # Field groups the actor may not view are omitted, not blanked
    if perms.can_view_employee_fields:
        out['employeeFields'] = pdr.employee_fields or {}
    if perms.can_view_ceo_fields:
        out['ceoFields'] = pdr.ceo_fields or {}
    return out


def _prefetch_pdr(pdr_id: Optional[int]):
    pdr = get_pdr_store().get(pdr_id) if pdr_id is not None else None
    if not pdr:
        return {}
    return {'status': parse_status(pdr.status).value}
