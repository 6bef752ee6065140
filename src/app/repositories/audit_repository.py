"""Repository for AuditLog entity."""

from src.app.models import AuditLog
from src.app.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    """Append-only repository for audit logs."""

    model = AuditLog
