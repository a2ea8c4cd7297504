"""Persistence layer for user data."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from edunotify.domain.entities import User
from edunotify.infrastructure.models import UserModel
from edunotify.utils import ensure_app_naive_datetime, ensure_app_timezone, now_in_app_timezone


class UserRepository:
    """Read access to the recipients owned by the CRUD layer."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_email(self, email: str) -> User | None:
        model = self.session.query(UserModel).filter(UserModel.email == email).first()
        return self._to_entity(model) if model else None

    def list_active(self, *, role: str | None = None) -> Sequence[User]:
        query = self.session.query(UserModel).filter(UserModel.is_active.is_(True))
        if role is not None:
            query = query.filter(UserModel.role == role)
        return [self._to_entity(model) for model in query.order_by(UserModel.id).all()]

    def list_ids(self) -> list[int]:
        query = self.session.query(UserModel.id).order_by(UserModel.id)
        return [user_id for (user_id,) in query.all()]

    def list_active_ids(self) -> list[int]:
        query = (
            self.session.query(UserModel.id)
            .filter(UserModel.is_active.is_(True))
            .order_by(UserModel.id)
        )
        return [user_id for (user_id,) in query.all()]

    def create(self, user: User) -> User:
        model = UserModel(
            name=user.name,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            created_at=ensure_app_naive_datetime(user.created_at or now_in_app_timezone()),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            role=model.role,
            is_active=model.is_active,
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["UserRepository"]
