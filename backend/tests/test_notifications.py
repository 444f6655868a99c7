import pytest
from app import get_db
from app.constants.pdr import PDRAction
from app.models.notification import Notification
from app.models.pdr import PDR
from app.services.notifications import (
    NOTIFICATION_FOR_ACTION, PDR_LOCKED, PDR_REMINDER, add_pdr_notification, build_pdr_notification,
)


def test_build_locked_notification_names_reviewer():
    note = build_pdr_notification(5, 9, PDR_LOCKED, ceo_name='Jordan')
    assert note == {
        'userId': 9,
        'pdrId': 5,
        'type': 'PDR_LOCKED',
        'title': 'PDR Locked',
        'message': 'Jordan has locked your review pending PDR meeting.',
    }


def test_build_notification_without_reviewer_name():
    assert build_pdr_notification(1, 2, PDR_LOCKED)['message'].startswith('Your manager ')
    assert build_pdr_notification(1, 2, PDR_REMINDER)['title'] == 'PDR Reminder'


def test_unknown_notification_type():
    with pytest.raises(ValueError, match='Unknown notification type: NOPE'):
        build_pdr_notification(1, 2, 'NOPE')


def test_review_starts_do_not_notify():
    assert PDRAction.START_REVIEW not in NOTIFICATION_FOR_ACTION
    assert PDRAction.START_MID_YEAR_REVIEW not in NOTIFICATION_FOR_ACTION


def test_add_pdr_notification_queues_row(app_context):
    session = get_db()
    pdr = PDR(user_id=321, employee_fields={}, ceo_fields={})
    session.add(pdr)
    session.flush()
    note = add_pdr_notification(pdr, PDRAction.MARK_BOOKED, ceo_name='Jordan')
    session.commit()
    stored = session.get(Notification, note.id)
    assert stored.user_id == 321
    assert stored.pdr_id == pdr.id
    assert stored.type == 'PDR_BOOKED'
    assert add_pdr_notification(pdr, PDRAction.START_REVIEW) is None
