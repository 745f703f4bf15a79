"""
Audit log for changes made to remote records through this service.

Appending is best effort: callers submit entries through a TaskSubmitter
and never wait for or retry them.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field


class AuditLogEntry(BaseModel):
    action: str
    table_id: Optional[str] = None
    record_id: Optional[str] = None
    field: Optional[str] = None
    old_value: Any = None
    new_value: Any = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuditLogAppender(ABC):
    @abstractmethod
    async def append(self, entry: AuditLogEntry) -> None:
        pass


class StructlogAuditLogAppender(AuditLogAppender):
    """Writes audit entries to a dedicated `audit` logger."""

    def __init__(self, logger_name: str = "audit"):
        self.logger = structlog.stdlib.get_logger(logger_name)

    async def append(self, entry: AuditLogEntry) -> None:
        self.logger.info("Audit log entry", **entry.model_dump(mode="json"))
