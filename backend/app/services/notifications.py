from __future__ import annotations
from typing import Dict, Optional
from app import get_db
from app.constants.pdr import PDRAction
from app.models.notification import Notification

PDR_SUBMITTED = 'PDR_SUBMITTED'
PDR_LOCKED = 'PDR_LOCKED'
PDR_BOOKED = 'PDR_BOOKED'
MID_YEAR_APPROVED = 'MID_YEAR_APPROVED'
PDR_COMPLETED = 'PDR_COMPLETED'
PDR_REMINDER = 'PDR_REMINDER'

# Owner-facing notification emitted after a successful transition
NOTIFICATION_FOR_ACTION: Dict[PDRAction, str] = {
    PDRAction.SUBMIT_INITIAL_PDR: PDR_SUBMITTED,
    PDRAction.APPROVE_PLAN: PDR_LOCKED,
    PDRAction.MARK_BOOKED: PDR_BOOKED,
    PDRAction.APPROVE_MID_YEAR: MID_YEAR_APPROVED,
    PDRAction.COMPLETE_FINAL_REVIEW: PDR_COMPLETED,
}


def build_pdr_notification(pdr_id, user_id, notification_type: str, ceo_name: Optional[str] = None) -> Dict[str, object]:
    reviewer = ceo_name or 'Your manager'
    messages = {
        PDR_SUBMITTED: ('PDR Submitted for Review', 'Your PDR has been submitted and is now available for CEO review.'),
        PDR_LOCKED: ('PDR Locked', f"{reviewer} has locked your review pending PDR meeting."),
        PDR_BOOKED: ('PDR Meeting Booked', f"{reviewer} has booked your PDR review meeting."),
        MID_YEAR_APPROVED: ('Mid-Year Review Approved', f"{reviewer} has approved your mid-year check-in."),
        PDR_COMPLETED: ('PDR Completed', 'Your end-year review is complete and the PDR is now closed.'),
        PDR_REMINDER: ('PDR Reminder', "Don't forget to complete your PDR before the deadline."),
    }
    if notification_type not in messages:
        raise ValueError(f"Unknown notification type: {notification_type}")
    title, message = messages[notification_type]
    return {
        'userId': user_id,
        'pdrId': pdr_id,
        'type': notification_type,
        'title': title,
        'message': message,
    }


def add_pdr_notification(pdr, action: PDRAction, ceo_name: Optional[str] = None) -> Optional[Notification]:
    """Queue the owner notification for `action` in the current session (no commit)."""
    ntype = NOTIFICATION_FOR_ACTION.get(action)
    if ntype is None:
        return None
    payload = build_pdr_notification(pdr.id, pdr.user_id, ntype, ceo_name)
    note = Notification(user_id=pdr.user_id, pdr_id=pdr.id, type=ntype, title=payload['title'], message=payload['message'])
    get_db().add(note)
    return note
