from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Boolean, JSON, DateTime, func
from app.constants.pdr import PDRStatus
from .base import Base


class PDR(Base):
    __tablename__ = 'pdrs'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Owner; identities come from the JWT issuer, so no FK to a local users table
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=PDRStatus.CREATED.value, index=True)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    employee_fields: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    ceo_fields: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    meeting_booked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    meeting_booked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# Status flow: Created -> SUBMITTED -> OPEN_FOR_REVIEW -> PLAN_LOCKED [-> PDR_BOOKED] -> MID_YEAR_SUBMITTED
#   -> MID_YEAR_CHECK -> MID_YEAR_APPROVED -> END_YEAR_SUBMITTED -> END_YEAR_REVIEW -> COMPLETED
# Edges and required roles live in app.services.pdr_lifecycle.PDR_TRANSITIONS.
