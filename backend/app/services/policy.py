from __future__ import annotations
from typing import Optional
from flask import abort
from flask_jwt_extended import get_jwt, get_jwt_identity
from app.constants.pdr import Role, UnknownRoleError, parse_role
from app.services.pdr_permissions import CapabilitySet, get_permissions

# JWT claim carrying the acting user's role (issued by the identity service)
ROLE_CLAIM = 'role'


def current_role() -> Role:
    """Role from the verified JWT; a token without a recognised role is rejected with 403."""
    claims = get_jwt()
    try:
        return parse_role(claims.get(ROLE_CLAIM))
    except UnknownRoleError:
        abort(403, description='Token carries no recognised role')


def current_user_id() -> int:
    ident = get_jwt_identity()
    try:
        return int(ident)
    except (TypeError, ValueError):
        abort(401, description='Token identity must be a user id')


def is_owner(pdr, user_id: Optional[int] = None) -> bool:
    uid = current_user_id() if user_id is None else user_id
    return pdr.user_id == uid


def permissions_for(pdr) -> CapabilitySet:
    """Capability set for the current request's actor on `pdr`."""
    return get_permissions(pdr.status, current_role(), is_owner(pdr), is_locked=bool(pdr.is_locked))


def assert_can_view(pdr) -> CapabilitySet:
    perms = permissions_for(pdr)
    if not perms.can_view:
        abort(403, description=perms.read_only_reason or 'PDR access denied')
    return perms
