"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import OrganizationFactory, WorkflowFactory, ...
"""

from tests.factories.base import BaseFactory, utc_now
from tests.factories.execution import (
    ExecutionLogFactory,
    WorkflowExecutionFactory,
    WorkflowJobFactory,
    manual_trigger,
)
from tests.factories.user import OrganizationFactory, OrganizationMembershipFactory, UserFactory
from tests.factories.workflow import WorkflowFactory, runnable_canvas

__all__ = [
    # Base
    "BaseFactory",
    "utc_now",
    # Identity
    "OrganizationFactory",
    "OrganizationMembershipFactory",
    "UserFactory",
    # Workflows
    "WorkflowFactory",
    "runnable_canvas",
    # Executions
    "ExecutionLogFactory",
    "WorkflowExecutionFactory",
    "WorkflowJobFactory",
    "manual_trigger",
]
