import asyncio
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.services.appointment_service import list_due_reminders
from clinic.services.email_service import send_reminder_email

logger = logging.getLogger(__name__)


async def send_due_reminders(
    session: AsyncSession, window_start: datetime, window_end: datetime
) -> tuple[int, int]:
    """E-mail patients whose appointment starts in [window_start, window_end).

    Returns (processed, sent).
    """
    reminders = await list_due_reminders(session, window_start, window_end)
    sent = 0
    for reminder in reminders:
        if await asyncio.to_thread(send_reminder_email, reminder):
            sent += 1
    logger.info(
        "Reminders processed=%d sent=%d window=[%s, %s)",
        len(reminders),
        sent,
        window_start.isoformat(),
        window_end.isoformat(),
    )
    return len(reminders), sent


class ReminderRunner:
    """Scans `lead_hours` ahead, starting each run where the previous one ended.

    The first run covers [now + lead, now + lead + window). Later runs cover
    [previous end, now + lead + window), so late or slow runs leave no gap and
    nothing is scanned twice.
    """

    def __init__(self, lead_hours: int | None = None, window_minutes: int | None = None) -> None:
        self.lead = timedelta(
            hours=settings.reminder_lead_hours if lead_hours is None else lead_hours
        )
        self.window = timedelta(
            minutes=settings.reminder_window_minutes if window_minutes is None else window_minutes
        )
        self.covered_until: datetime | None = None

    async def run(self, session: AsyncSession, now: datetime | None = None) -> tuple[int, int]:
        now = now or datetime.now(UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        window_end = now + self.lead + self.window
        window_start = self.covered_until or window_end - self.window
        if window_start >= window_end:
            logger.debug("Reminder window already covered up to %s", window_start.isoformat())
            return 0, 0
        result = await send_due_reminders(session, window_start, window_end)
        self.covered_until = window_end
        return result
