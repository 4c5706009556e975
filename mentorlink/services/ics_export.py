from datetime import datetime, timedelta

from mentorlink.core.clock import as_utc
from mentorlink.models import Reminder
from mentorlink.schemas.reminder import REMINDER_TYPE_LABELS, ReminderType

EVENT_DURATION = timedelta(minutes=30)
ALARM_OFFSET_MINUTES = 15
PRODID = "-//MentorLink//Reminder//EN"
UID_DOMAIN = "mentorlink"


def _ics_timestamp(value: datetime) -> str:
    return as_utc(value).strftime("%Y%m%dT%H%M%SZ")


def _escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def reminder_uid(reminder: Reminder) -> str:
    """Same reminder, same UID, so re-imports update instead of duplicating."""
    return f"reminder-{reminder.id}@{UID_DOMAIN}"


def build_reminder_ics(reminder: Reminder) -> str:
    title = REMINDER_TYPE_LABELS.get(ReminderType(reminder.type), "Reminder")
    start = as_utc(reminder.due_at)
    stamp = reminder.updated_at or reminder.created_at or start

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{reminder_uid(reminder)}",
        f"DTSTAMP:{_ics_timestamp(stamp)}",
        f"DTSTART:{_ics_timestamp(start)}",
        f"DTEND:{_ics_timestamp(start + EVENT_DURATION)}",
        f"SUMMARY:{_escape(title)}",
        f"DESCRIPTION:{_escape(title + ' for job application')}",
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        "BEGIN:VALARM",
        f"TRIGGER:-PT{ALARM_OFFSET_MINUTES}M",
        "ACTION:DISPLAY",
        f"DESCRIPTION:{_escape(f'{title} in {ALARM_OFFSET_MINUTES} minutes')}",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines) + "\r\n"
