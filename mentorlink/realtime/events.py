import enum


class CollaborationEvent(str, enum.Enum):
    """Event names carried on the bus and forwarded to live connections."""

    APPLICATION_CREATED = "application.created"
    APPLICATION_UPDATED = "application.updated"
    SUGGESTION_CREATED = "suggestion.created"
    SUGGESTION_RESOLVED = "suggestion.resolved"
    REMINDER_CREATED = "reminder.created"
    MENTORING_PLAN_UPDATED = "mentoringPlan.updated"
    ACTIVITY_LOG_CREATED = "activityLog.created"
    MESSAGE_NEW = "message:new"
    NOTIFICATION_NEW = "notification:new"
    INSIGHT_READY = "insight:ready"
    DASHBOARD_STATS_UPDATED = "dashboard:statsUpdated"


# Every connection subscribes to this fixed set
FORWARDED_EVENTS = tuple(CollaborationEvent)
