from __future__ import annotations
from typing import Any, Dict, Optional, Tuple
from flask_jwt_extended import get_jwt_identity, get_jwt
from app import get_db
from app.models.audit import AuditLog
from app.services.policy import ROLE_CLAIM


def _actor() -> Tuple[int, Optional[str]]:
    """(user id, role claim) of the caller; (0, None) outside a verified request."""
    try:
        ident = get_jwt_identity()
        role = (get_jwt() or {}).get(ROLE_CLAIM)
    except RuntimeError:
        return 0, None
    try:
        return int(ident), role
    except (TypeError, ValueError):
        return 0, role


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[Any] = None, meta: Optional[Dict[str, Any]] = None) -> AuditLog:
    """Queue an AuditLog row in the current session.

    The caller owns the transaction; nothing is committed here. `action` codes are
    dotted upper-case strings such as PDR.CREATE or PDR.TRANSITION.APPROVEPLAN.
    """
    actor_id, actor_role = _actor()
    log = AuditLog(
        actor_user_id=actor_id,
        actor_role=actor_role,
        action=action,
        entity=entity,
        entity_id=None if entity_id is None else str(entity_id),
        meta=dict(meta or {}),
    )
    get_db().add(log)
    return log
