"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    CLIENT: executor/administrator working through their own matter
    OPS: internal support staff (case view, overrides, availability)
    """

    CLIENT = "client"
    OPS = "ops"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_
