"""
Background job to send appointment reminders

This script should be run periodically (e.g., daily via cron) to remind
customers of confirmed appointments scheduled for the next day.
"""

from datetime import date, timedelta
from typing import Optional
import sys

from sqlmodel import Session, select
import structlog

from detailbook.core.config import get_settings
from detailbook.core.database import engine
from detailbook.core.events import EventBus
from detailbook.core.exceptions import BookingError
from detailbook.models.appointment import Appointment, AppointmentStatus
from detailbook.services.lifecycle import AppointmentLifecycle
from detailbook.services.notifications import NotificationProvider, build_notification_provider

logger = structlog.get_logger(__name__)


def send_due_reminders(
    session: Session,
    notifier: NotificationProvider,
    target_date: Optional[date] = None
) -> dict:
    """Send reminders for confirmed appointments on ``target_date`` (tomorrow)"""
    target_date = target_date or date.today() + timedelta(days=1)
    lifecycle = AppointmentLifecycle(session, notifier, EventBus(), get_settings())

    due = session.exec(
        select(Appointment).where(
            Appointment.status == AppointmentStatus.CONFIRMED,
            Appointment.scheduled_date == target_date,
            Appointment.reminder_sent == False,  # noqa: E712
        ).order_by(Appointment.scheduled_time)
    ).all()

    if not due:
        logger.info(f"No reminders due for {target_date}")
        return {"processed": 0, "sent": 0, "failed": 0}

    sent = failed = 0
    for appointment in due:
        try:
            result = lifecycle.send_reminder(appointment.id, appointment.tenant_id)
        except BookingError as e:
            logger.error(f"Failed to send reminder for appointment {appointment.id}: {e.detail}")
            failed += 1
            continue

        if result.notification is not None and result.notification.sent:
            sent += 1
        else:
            failed += 1

    return {"processed": len(due), "sent": sent, "failed": failed}


def main():
    """Main entry point for reminder job"""
    logger.info("=" * 80)
    logger.info("Starting Appointment Reminder Job")
    logger.info("=" * 80)

    try:
        with Session(engine) as session:
            results = send_due_reminders(session, build_notification_provider(get_settings()))

            logger.info("=" * 80)
            logger.info("Appointment Reminder Job Complete")
            logger.info(f"Results: {results}")
            logger.info("=" * 80)

    except Exception as e:
        logger.error(f"Fatal error in reminder job: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
