from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class UserDto:
    id: str
    mobile: str


class UserDirectory(Protocol):
    def resolve_or_create(self, mobile: str) -> UserDto:
        ...
