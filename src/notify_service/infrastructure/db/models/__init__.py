"""Import all models so Alembic can discover them via Base.metadata."""
from notify_service.infrastructure.db.models.directory import FollowModel, UserModel
from notify_service.infrastructure.db.models.notification import NotificationModel
from notify_service.infrastructure.db.models.outbox import OutboxRecordModel

__all__ = [
    "FollowModel",
    "NotificationModel",
    "OutboxRecordModel",
    "UserModel",
]
