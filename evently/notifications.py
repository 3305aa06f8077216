"""
Notification model and display helpers.

Parses notifications returned by the notifications endpoints and formats
them for display: relative timestamps and a per-type icon.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from evently.models import parse_timestamp


class NotificationType(str, Enum):
    EVENT_CREATED = "EVENT_CREATED"
    EVENT_UPDATED = "EVENT_UPDATED"
    EVENT_CANCELLED = "EVENT_CANCELLED"
    EVENT_REMINDER = "EVENT_REMINDER"
    REGISTRATION_CONFIRMED = "REGISTRATION_CONFIRMED"
    REGISTRATION_APPROVED = "REGISTRATION_APPROVED"
    REGISTRATION_REJECTED = "REGISTRATION_REJECTED"
    FEEDBACK_REQUEST = "FEEDBACK_REQUEST"
    GENERAL = "GENERAL"

    @classmethod
    def parse(cls, value: Any) -> "NotificationType":
        """Parse a type string; unknown values become GENERAL."""
        try:
            return cls(value)
        except ValueError:
            return cls.GENERAL


NOTIFICATION_ICONS: dict[NotificationType, str] = {
    NotificationType.EVENT_CREATED: "🎉",
    NotificationType.EVENT_UPDATED: "📝",
    NotificationType.EVENT_CANCELLED: "❌",
    NotificationType.EVENT_REMINDER: "⏰",
    NotificationType.REGISTRATION_CONFIRMED: "✅",
    NotificationType.REGISTRATION_APPROVED: "👍",
    NotificationType.REGISTRATION_REJECTED: "👎",
    NotificationType.FEEDBACK_REQUEST: "💭",
    NotificationType.GENERAL: "📢",
}

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 1440
MINUTES_PER_WEEK = 10080


@dataclass
class Notification:
    """A notification addressed to the authenticated user."""

    id: str
    title: str
    message: str
    type: NotificationType = NotificationType.GENERAL
    is_read: bool = False
    event_id: Optional[str] = None
    event_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Notification":
        event = data.get("events") or {}
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title") or "",
            message=data.get("message") or "",
            type=NotificationType.parse(data.get("type")),
            is_read=bool(data.get("isRead", False)),
            event_id=data.get("eventId"),
            event_name=event.get("name") if isinstance(event, dict) else None,
            created_at=parse_timestamp(data.get("createdAt")),
        )

    @property
    def icon(self) -> str:
        return get_notification_icon(self.type)


def get_notification_icon(notification_type: Union[NotificationType, str, None]) -> str:
    """Get the display icon for a notification type."""
    if not isinstance(notification_type, NotificationType):
        notification_type = NotificationType.parse(notification_type)
    return NOTIFICATION_ICONS[notification_type]


def format_notification_time(
    created_at: Union[datetime, str],
    now: Optional[datetime] = None,
) -> str:
    """
    Format a notification timestamp relative to now.

    Args:
        created_at: Creation time (datetime or ISO-8601 string)
        now: Reference time, defaults to the current UTC time

    Returns:
        "Just now", "5m ago", "3h ago", "2d ago", or "Mar 4" for anything
        a week or older

    Raises:
        ValueError: If created_at is a string that cannot be parsed
    """
    if isinstance(created_at, str):
        parsed = parse_timestamp(created_at)
        if parsed is None:
            raise ValueError(f"Invalid timestamp: {created_at!r}")
        created_at = parsed

    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    minutes = int((now - created_at).total_seconds() // 60)

    if minutes < 1:
        return "Just now"
    if minutes < MINUTES_PER_HOUR:
        return f"{minutes}m ago"
    if minutes < MINUTES_PER_DAY:
        return f"{minutes // MINUTES_PER_HOUR}h ago"
    if minutes < MINUTES_PER_WEEK:
        return f"{minutes // MINUTES_PER_DAY}d ago"
    return f"{created_at.strftime('%b')} {created_at.day}"
