import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mentorlink.realtime.bus import EventBus
from mentorlink.repositories.board_repository import BoardRepository
from mentorlink.repositories.conversation_repository import ConversationRepository
from mentorlink.repositories.notification_repository import NotificationRepository
from mentorlink.repositories.reminder_repository import ReminderRepository
from mentorlink.repositories.user_repository import UserRepository
from mentorlink.schemas.reminder import SweepResult

from .conversation_service import ConversationService
from .notification_service import NotificationService
from .reminder_service import ReminderService

logger = logging.getLogger(__name__)


def build_reminder_service(session: AsyncSession, bus: EventBus) -> ReminderService:
    """Wires a ReminderService outside of a request."""
    conv_service = ConversationService(
        ConversationRepository(session), UserRepository(session), bus
    )
    return ReminderService(
        reminder_repository=ReminderRepository(session),
        conversation_service=conv_service,
        board_repository=BoardRepository(session),
        notification_service=NotificationService(NotificationRepository(session), bus),
        event_bus=bus,
    )


async def run_sweep_once(
    session_maker: async_sessionmaker[AsyncSession], bus: EventBus
) -> SweepResult:
    async with session_maker() as session:
        return await build_reminder_service(session, bus).run_due_reminder_sweep()


def start_reminder_scheduler(
    session_maker: async_sessionmaker[AsyncSession],
    bus: EventBus,
    interval_seconds: int,
) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_sweep_once,
        trigger=IntervalTrigger(seconds=interval_seconds),
        args=[session_maker, bus],
        id="reminder_sweep",
        name="Claim due reminders and notify participants",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"Reminder scheduler started (every {interval_seconds}s)")
    return scheduler


def shutdown_reminder_scheduler(scheduler: AsyncIOScheduler | None) -> None:
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Reminder scheduler stopped")
