"""Domain types shared by the protocol, storage and agent layers."""

from .messages import Author, Message, NewMessage, Role
from .status import QueryStatus

__all__ = [
    "Author",
    "Message",
    "NewMessage",
    "QueryStatus",
    "Role",
]
