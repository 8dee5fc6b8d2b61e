import logging
import sys
from collections import deque
from datetime import datetime
from typing import Any, Dict, Optional

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger("marketplace")


class AuditLogger:
    """In-memory trail of security-relevant events (logins, impersonation, role changes)."""

    def __init__(self, max_logs: int = 1000):
        self.logs = deque(maxlen=max_logs)

    def log_event(
        self,
        event_type: str,
        description: str,
        actor_id: Optional[str] = None,
        target_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status: str = "info",
    ):
        log_entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "event_type": event_type,
            "description": description,
            "actor_id": actor_id,
            "target_id": target_id,
            "details": self._sanitize(details) if details else None,
            "status": status,
        }
        self.logs.append(log_entry)

        log_msg = f"[{event_type}] {description}"
        if status == "error":
            logger.error(log_msg)
        elif status == "warning":
            logger.warning(log_msg)
        else:
            logger.info(log_msg)

        return log_entry

    def _sanitize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        sanitized = data.copy()
        sensitive_keys = ["code", "otp", "token", "session", "authorization"]

        for key in sensitive_keys:
            if key in sanitized:
                value = str(sanitized[key])
                if len(value) > 8:
                    sanitized[key] = f"{value[:4]}...{value[-4:]}"
                else:
                    sanitized[key] = "***"

        return sanitized

    def get_logs(self, limit: Optional[int] = None) -> list:
        logs = list(self.logs)
        if limit:
            return logs[-limit:]
        return logs

    def clear_logs(self):
        self.logs.clear()
        logger.info("Cleared audit logs")


audit_logger = AuditLogger()
