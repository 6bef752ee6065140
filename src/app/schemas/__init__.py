from src.app.schemas.errors import CodedErrorDetail, CodedErrorResponse, UsageInfo
from src.app.schemas.execution import (
    ExecuteWorkflowRequest,
    ExecuteWorkflowResponse,
    ExecutionActionRequest,
    ExecutionActionResponse,
    ExecutionDetailResponse,
    ExecutionListItem,
    ExecutionListResponse,
    ExecutionLogRead,
    ExecutionRead,
    JobDetails,
    ProgressRead,
)
from src.app.schemas.job import (
    AppendLogsRequest,
    AppendLogsResponse,
    ClaimJobRequest,
    CompleteJobRequest,
    FailJobRequest,
    JobRead,
    LogEntryCreate,
    NodeOutcomeReport,
    NodeOutcomeResponse,
    QueueStatusRead,
)
from src.app.schemas.pagination import OffsetPagination
from src.app.schemas.public import (
    PublicExecuteRequest,
    PublicExecutionRead,
    PublicExecutionResponse,
    PublicWorkflowRead,
    PublicWorkflowResponse,
)
from src.app.schemas.workflow import (
    WorkflowCreate,
    WorkflowListResponse,
    WorkflowRead,
    WorkflowStatusResponse,
    WorkflowStatusUpdate,
    WorkflowUpdate,
)

__all__ = [
    # Errors
    "CodedErrorDetail",
    "CodedErrorResponse",
    "UsageInfo",
    # Execution
    "ExecuteWorkflowRequest",
    "ExecuteWorkflowResponse",
    "ExecutionActionRequest",
    "ExecutionActionResponse",
    "ExecutionDetailResponse",
    "ExecutionListItem",
    "ExecutionListResponse",
    "ExecutionLogRead",
    "ExecutionRead",
    "JobDetails",
    "ProgressRead",
    # Job queue
    "AppendLogsRequest",
    "AppendLogsResponse",
    "ClaimJobRequest",
    "CompleteJobRequest",
    "FailJobRequest",
    "JobRead",
    "LogEntryCreate",
    "NodeOutcomeReport",
    "NodeOutcomeResponse",
    "QueueStatusRead",
    # Pagination
    "OffsetPagination",
    # Public
    "PublicExecuteRequest",
    "PublicExecutionRead",
    "PublicExecutionResponse",
    "PublicWorkflowRead",
    "PublicWorkflowResponse",
    # Workflow
    "WorkflowCreate",
    "WorkflowListResponse",
    "WorkflowRead",
    "WorkflowStatusResponse",
    "WorkflowStatusUpdate",
    "WorkflowUpdate",
]
