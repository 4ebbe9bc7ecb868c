from typing import List, Optional

from logging_config import get_logger
from models.user import UserModel

logger = get_logger("identity")


class UserRegistry:
    """Known users, in registration order. Everything else refers to them by id."""

    def __init__(self, users: Optional[List[UserModel]] = None):
        self._users: List[UserModel] = []
        for user in users or []:
            self.register(user)

    def register(self, user: UserModel) -> UserModel:
        existing = self.get(user.id)
        if existing is not None:
            return existing
        self._users.append(user)
        logger.debug("User registered", extra={"data": {"user_id": user.id, "name": user.name}})
        return user

    def get(self, user_id: str) -> Optional[UserModel]:
        return next((u for u in self._users if u.id == user_id), None)

    def find_by_phone(self, phone_number: str) -> Optional[UserModel]:
        return next((u for u in self._users if u.phone_number == phone_number), None)

    def all(self) -> List[UserModel]:
        return list(self._users)

    def rename(self, user_id: str, name: str) -> Optional[UserModel]:
        """Display names are mutable; ids never change."""
        user = self.get(user_id)
        if user is None or not name.strip():
            return None
        user.name = name.strip()
        return user

    def reset(self) -> None:
        self._users.clear()


class Identity:
    """The acting user handed to us by the identity provider. Never authenticated here."""

    def __init__(self, registry: UserRegistry, current_user: Optional[UserModel] = None):
        self.registry = registry
        self._current_user = current_user

    @property
    def current_user(self) -> Optional[UserModel]:
        return self._current_user

    def switch_user(self, user: UserModel) -> UserModel:
        self._current_user = self.registry.register(user)
        logger.info("Acting user switched", extra={"data": {"user_id": user.id}})
        return self._current_user


registry = UserRegistry()
