"""
Temporal Activities - Fine-grained, idempotent operations.

Activities should be:
1. Idempotent - Safe to retry
2. Fine-grained - Do one thing well
3. Side-effect aware - Database writes go here, not in workflows
"""

from src.app.temporal.activities.maintenance import (
    purge_expired_jobs,
    purge_expired_logs,
    purge_old_executions,
    release_stale_locks,
)

__all__ = [
    "purge_expired_jobs",
    "purge_expired_logs",
    "purge_old_executions",
    "release_stale_locks",
]
