"""Minimal user registry used to attach an owner to each session."""

from __future__ import annotations

from dataclasses import dataclass

from parley.agents.config import UserRole


@dataclass(frozen=True)
class User:
    username: str
    role: UserRole | None = None


class UserManager:
    """In-memory user lookup; unknown usernames are registered on first sight."""

    def __init__(self, default_role: UserRole | None = None):
        self._users: dict[str, User] = {}
        self.default_role = default_role

    def get_user(self, username: str) -> User:
        user = self._users.get(username)
        if user is None:
            user = User(username=username, role=self.default_role)
            self._users[username] = user
        return user

    def add_user(self, user: User) -> None:
        self._users[user.username] = user
