from __future__ import annotations
"""PDR persistence with compare-and-set status updates.

Every write that depends on the current status goes through `compare_and_set`,
which applies the change only if the stored status still equals the value the
caller read (and validated against). A lost race raises StaleStatusError; the
route layer answers 409 and the client re-reads and retries.

Two interchangeable stores:
  SqlPDRStore       conditional UPDATE ... WHERE id=:id AND status=:expected
  InMemoryPDRStore  same contract under a lock; used for demo mode and tests
"""
import copy
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import select, update, func
from app.constants.pdr import PDRStatus
from app.models.pdr import PDR


class StaleStatusError(Exception):
    def __init__(self, pdr_id: int, expected_status: str):
        self.pdr_id = pdr_id
        self.expected_status = expected_status
        super().__init__(f"PDR {pdr_id} status changed since it was read (expected '{expected_status}')")


def _status_value(value) -> str:
    return value.value if isinstance(value, PDRStatus) else value


class SqlPDRStore:
    def __init__(self, session):
        self.session = session

    def add(self, pdr: PDR) -> PDR:
        self.session.add(pdr)
        self.session.flush()
        return pdr

    def get(self, pdr_id: int) -> Optional[PDR]:
        return self.session.execute(select(PDR).where(PDR.id == pdr_id)).scalar_one_or_none()

    def list(self, user_id: Optional[int] = None, limit: int = 50, offset: int = 0) -> Tuple[List[PDR], int]:
        q = select(PDR)
        count_q = select(func.count()).select_from(PDR)
        if user_id is not None:
            q = q.where(PDR.user_id == user_id)
            count_q = count_q.where(PDR.user_id == user_id)
        total = self.session.execute(count_q).scalar_one()
        rows = self.session.execute(q.order_by(PDR.id.asc()).offset(offset).limit(limit)).scalars().all()
        return list(rows), total

    def compare_and_set(self, pdr_id: int, expected_status: str, **values: Any) -> PDR:
        if 'status' in values:
            values['status'] = _status_value(values['status'])
        stmt = (
            update(PDR)
            .where(PDR.id == pdr_id, PDR.status == _status_value(expected_status))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            raise StaleStatusError(pdr_id, _status_value(expected_status))
        pdr = self.get(pdr_id)
        self.session.refresh(pdr)
        return pdr

    def restore(self, pdr: PDR, written_status: str) -> None:
        # The UPDATE belongs to the session transaction; rolling that back is the undo
        pass


_PDR_COLUMNS = tuple(c.key for c in PDR.__table__.columns)


def _snapshot(pdr: PDR) -> PDR:
    """Detached copy; callers never hold the stored instance."""
    return PDR(**{key: copy.deepcopy(getattr(pdr, key)) for key in _PDR_COLUMNS})


class InMemoryPDRStore:
    """Rows live only inside the store. Reads hand out snapshots, so a status a
    handler validated stays fixed until it calls compare_and_set."""

    def __init__(self):
        self._rows: Dict[int, PDR] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def add(self, pdr: PDR) -> PDR:
        now = datetime.now(timezone.utc)
        with self._lock:
            pdr.id = self._next_id
            self._next_id += 1
            if pdr.status is None:
                pdr.status = PDRStatus.CREATED.value
            for attr, default in (('is_locked', False), ('meeting_booked', False)):
                if getattr(pdr, attr) is None:
                    setattr(pdr, attr, default)
            pdr.employee_fields = dict(pdr.employee_fields or {})
            pdr.ceo_fields = dict(pdr.ceo_fields or {})
            pdr.created_at = pdr.updated_at = now
            self._rows[pdr.id] = _snapshot(pdr)
        return pdr

    def get(self, pdr_id: int) -> Optional[PDR]:
        with self._lock:
            pdr = self._rows.get(pdr_id)
            return _snapshot(pdr) if pdr is not None else None

    def list(self, user_id: Optional[int] = None, limit: int = 50, offset: int = 0) -> Tuple[List[PDR], int]:
        with self._lock:
            rows = [p for _, p in sorted(self._rows.items()) if user_id is None or p.user_id == user_id]
            page = [_snapshot(p) for p in rows[offset:offset + limit]]
        return page, len(rows)

    def compare_and_set(self, pdr_id: int, expected_status: str, **values: Any) -> PDR:
        if 'status' in values:
            values['status'] = _status_value(values['status'])
        with self._lock:
            pdr = self._rows.get(pdr_id)
            if pdr is None or pdr.status != _status_value(expected_status):
                raise StaleStatusError(pdr_id, _status_value(expected_status))
            for key, val in values.items():
                setattr(pdr, key, copy.deepcopy(val))
            pdr.updated_at = datetime.now(timezone.utc)
            return _snapshot(pdr)

    def restore(self, pdr: PDR, written_status: str) -> None:
        """Put back the snapshot `pdr` unless another writer has moved on from `written_status`."""
        with self._lock:
            stored = self._rows.get(pdr.id)
            if stored is not None and stored.status == _status_value(written_status):
                self._rows[pdr.id] = _snapshot(pdr)


__all__ = ['StaleStatusError', 'SqlPDRStore', 'InMemoryPDRStore']
