from __future__ import annotations

from abc import ABC, abstractmethod

from roombooking.domain.entities.room import Room
from roombooking.domain.entities.user import User


class RoomDirectoryPort(ABC):
    @abstractmethod
    def get_room(self, room_id: str) -> Room | None:
        raise NotImplementedError


class UserDirectoryPort(ABC):
    @abstractmethod
    def get_user(self, user_id: str) -> User | None:
        """Returns the user regardless of status; callers check is_active."""
        raise NotImplementedError

    @abstractmethod
    def find_by_email(self, email: str) -> User | None:
        raise NotImplementedError
