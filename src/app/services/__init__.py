from src.app.services.audit_service import AuditService
from src.app.services.execution_service import ExecutionService
from src.app.services.public_workflow_service import PublicWorkflowService
from src.app.services.queue_service import QueueService
from src.app.services.usage_service import UsageService
from src.app.services.workflow_service import WorkflowService

__all__ = [
    "AuditService",
    "ExecutionService",
    "PublicWorkflowService",
    "QueueService",
    "UsageService",
    "WorkflowService",
]
