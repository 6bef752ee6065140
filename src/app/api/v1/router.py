from fastapi import APIRouter

from src.app.api.v1 import executions, internal_jobs, organizations, public, workflows

api_router = APIRouter(prefix="/api/v1")
# Public routes first so /workflows/public/... never resolves as a workflow id
api_router.include_router(public.router)
api_router.include_router(workflows.router)
api_router.include_router(executions.router)
api_router.include_router(organizations.router)
api_router.include_router(internal_jobs.router)
