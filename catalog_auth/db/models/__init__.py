# Models package (re-export for stable imports)
from .user import User

__all__ = [
    "User",
]
