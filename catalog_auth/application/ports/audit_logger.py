from typing import Optional, Dict, Any, Protocol


class AuditLogger(Protocol):
    def log(self, action: str, mobile: Optional[str], user_id: Optional[str] = None, success: bool = True, reason: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        ...
