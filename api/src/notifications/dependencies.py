"""Dependencies for notification routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.notifications.service import NotificationService


def get_notification_service(request: Request) -> NotificationService:
    """Get NotificationService from app state."""
    service = getattr(request.app.state, "notification_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification service not available",
        )
    return service


NotificationServiceDep = Annotated[
    NotificationService, Depends(get_notification_service)
]
