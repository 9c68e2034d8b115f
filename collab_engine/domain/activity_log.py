"""
Activity log.

Append-only trail of timestamped events kept on each collaboration. Entries
are frozen models; nothing in the engine edits or removes them.
"""

from datetime import datetime

from collab_engine.core.errors import ValidationError
from collab_engine.models.collaboration import Activity, ActivityKind, Collaboration

MAX_MESSAGE_LENGTH = 500


def check_activity_message(message: str) -> str:
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Activity message too long (max {MAX_MESSAGE_LENGTH} characters)")
    return message


def append_activity(
    collaboration: Collaboration,
    kind: ActivityKind,
    message: str,
    actor_id: str,
    at: datetime,
) -> Activity:
    """
    Appends an activity to the collaboration's trail and returns it.

    Raises:
        ValidationError: If the message exceeds `MAX_MESSAGE_LENGTH`.
    """

    check_activity_message(message)

    activity = Activity(kind=kind, message=message, actor_id=actor_id, created_at=at)
    collaboration.activities.append(activity)
    return activity


def activities_of_kind(collaboration: Collaboration, kind: ActivityKind) -> list[Activity]:
    return [activity for activity in collaboration.activities if activity.kind == kind]
