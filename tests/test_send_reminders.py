"""
Tests for the reminder job
"""

from datetime import date, time

from detailbook.models.appointment import Appointment, AppointmentStatus
from detailbook.scripts.send_reminders import send_due_reminders

TOMORROW = date(2025, 3, 11)


def add_appointment(db, tenant, customer, at, status, reminder_sent=False, day=TOMORROW):
    appointment = Appointment(
        tenant_id=tenant.id,
        customer_id=customer.id,
        scheduled_date=day,
        scheduled_time=at,
        slot_time=at,
        service_name="Full Detail",
        status=status,
        reminder_sent=reminder_sent,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def test_reminds_confirmed_appointments_once(db, tenant, customer, notifier):
    due = add_appointment(db, tenant, customer, time(9, 0), AppointmentStatus.CONFIRMED)
    add_appointment(db, tenant, customer, time(10, 0), AppointmentStatus.PENDING)
    add_appointment(db, tenant, customer, time(11, 0), AppointmentStatus.CONFIRMED, reminder_sent=True)
    add_appointment(db, tenant, customer, time(12, 0), AppointmentStatus.CONFIRMED, day=date(2025, 3, 12))

    results = send_due_reminders(db, notifier, TOMORROW)

    assert results == {"processed": 1, "sent": 1, "failed": 0}
    db.refresh(due)
    assert due.reminder_sent is True
    assert len(notifier.sent) == 1

    assert send_due_reminders(db, notifier, TOMORROW)["processed"] == 0


def test_failed_delivery_counted(db, tenant, customer, failing_notifier):
    add_appointment(db, tenant, customer, time(9, 0), AppointmentStatus.CONFIRMED)

    results = send_due_reminders(db, failing_notifier, TOMORROW)

    assert results == {"processed": 1, "sent": 0, "failed": 1}


def test_nothing_due(db, tenant, notifier):
    assert send_due_reminders(db, notifier, TOMORROW) == {"processed": 0, "sent": 0, "failed": 0}
