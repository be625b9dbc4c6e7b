"""Collaboration updates: task and milestone changes are pushed to the customer who owns the requirement."""

from backoffice.application.notification_service import NotificationService
from backoffice.application.platform_service import PlatformService, collaboration_link
from backoffice.domain.models.notification import Notification


async def notify_requirement_owner(
    platform: PlatformService,
    notifications: NotificationService,
    *,
    project_id: str,
    actor_id: str,
    type: str,
    title: str,
    message: str,
) -> list[Notification]:
    """Notify the owner of the project's requirement. Delivery failures are logged, not raised."""
    requirement = await platform.get_project_owner(project_id)
    if requirement is None:
        return []
    return await notifications.try_notify_users(
        recipient_ids=[requirement.owner_id],
        actor_id=actor_id,
        type=type,
        title=title,
        message=message,
        link=collaboration_link(requirement.id),
    )
