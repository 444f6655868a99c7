from __future__ import annotations
"""Audit logging decorator so route handlers don't call add_audit() by hand.

Usage examples:

@audit_log('PDR.CREATE', entity='PDR', entity_id_key='id', meta_keys=['status'])
def create_pdr():
    ... return _pdr_json(pdr), 201

@audit_log(lambda data, kwargs: f"PDR.TRANSITION.{kwargs['action'].upper()}", entity='PDR',
           entity_id_arg='pdr_id', diff_keys=['status'], pre_fetch=lambda a, kw: _snapshot(kw['pdr_id']))
def transition_pdr(pdr_id, action): ...

Parameters:
  action: audit action code, or a callable (data, kwargs) -> code for per-request codes.
  entity: optional entity label (PDR)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: list of keys to project from returned JSON into meta dict (shallow copy).
  diff_keys / pre_fetch: snapshot before the call and record {'before','after'} for keys that changed.

Only successful responses (status < 400) are audited. Audit failures are logged
and never change the response.
"""

from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional, Union
from flask import current_app

from app.services.audit import add_audit
from app import get_db


def _extract_payload(rv: Any):
    """Return (data, status_code) for the common Flask return shapes."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, getattr(rv, 'status_code', 200)


def audit_log(
    action: Union[str, Callable[[dict, dict], str]],
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    commit: bool = True,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = None
            if diff_keys and pre_fetch:
                try:
                    before_snapshot = pre_fetch(args, kwargs)
                except Exception:
                    current_app.logger.warning('Audit snapshot failed for %s', fn.__name__, exc_info=True)
                    before_snapshot = None
            rv = fn(*args, **kwargs)
            data, status = _extract_payload(rv)
            if status >= 400 or not isinstance(data, dict):
                return rv
            try:
                code = action(data, kwargs) if callable(action) else action
                entity_id = None
                if entity_id_key and entity_id_key in data:
                    entity_id = data.get(entity_id_key)
                elif entity_id_arg and entity_id_arg in kwargs:
                    entity_id = kwargs.get(entity_id_arg)
                meta = {k: data.get(k) for k in meta_keys if k in data} if meta_keys else {}
                if diff_keys and before_snapshot:
                    changes = {
                        k: {'before': before_snapshot.get(k), 'after': data.get(k)}
                        for k in diff_keys
                        if k in before_snapshot and k in data and before_snapshot.get(k) != data.get(k)
                    }
                    if changes:
                        meta['changes'] = changes
                add_audit(code, entity, entity_id, meta)
                if commit:
                    get_db().commit()
            except Exception:
                current_app.logger.exception('Audit logging failed for %s', fn.__name__)
                get_db().rollback()
            return rv
        return wrapper
    return outer
