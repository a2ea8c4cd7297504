"""SQLAlchemy model for persisted notifications."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from edunotify.infrastructure.database import Base


def _new_notification_id() -> str:
    return str(uuid4())


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (
        CheckConstraint(
            "read_at IS NULL OR read_at >= created_at",
            name="ck_notification_read_after_created",
        ),
        Index("ix_notification_user_read", "user_id", "read_at"),
    )

    id = Column(String(36), primary_key=True, default=_new_notification_id)
    user_id = Column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(50), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False)
    read_at = Column(DateTime(), nullable=True)

    user = relationship("UserModel", back_populates="notifications")


__all__ = ["NotificationModel"]
