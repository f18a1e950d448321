from typing import Protocol


class RateLimiter(Protocol):
    """Counts hits per key; limits are fixed when the adapter is built."""

    def allow(self, key: str) -> bool:
        ...
