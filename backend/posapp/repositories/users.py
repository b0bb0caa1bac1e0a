from __future__ import annotations

from ..models import User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User
    unique_fields = ("username",)

    def _ordering(self, order_by):
        if order_by is None:
            return (User.username.asc(),)
        return super()._ordering(order_by)

    def find_by_username(self, username: str) -> User | None:
        return self.find_one(username=username)

    def find_by_email(self, email: str) -> User | None:
        return self.find_one(email=email)

    def find_active(self) -> list[User]:
        return self.find(is_active=True)

    def find_by_role(self, role: str) -> list[User]:
        return self.find(role=role)

    def active_admins_for_update(self) -> list[User]:
        return (
            self.session.query(User)
            .filter_by(role="admin", is_active=True)
            .order_by(User.id.asc())
            .with_for_update()
            .all()
        )

    def count_active_admins(self) -> int:
        return self.count(role="admin", is_active=True)

    def username_exists(self, username: str, exclude_id: int | None = None) -> bool:
        q = self.session.query(User).filter(User.username == username)
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        return self.session.query(q.exists()).scalar()

    def update_password(self, user_or_id, password_hash: str) -> User | None:
        return self.update(user_or_id, password_hash=password_hash)

    def activate(self, user_or_id) -> User | None:
        return self.update(user_or_id, is_active=True)

    def deactivate(self, user_or_id) -> User | None:
        return self.update(user_or_id, is_active=False)
