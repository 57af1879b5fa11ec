"""
Health check and status endpoints.
"""
import time
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    task_manager = request.app.state.task_manager
    return {"status": "healthy", "users": task_manager.user_count, "timestamp": time.time()}


@router.get("/healthz")
async def healthz_check():
    """Alternative health check endpoint (Kubernetes style)"""
    return {"status": "ok", "timestamp": time.time()}
