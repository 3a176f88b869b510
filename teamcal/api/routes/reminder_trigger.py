"""Admin route for running a reminder scan on demand."""

import logging

from fastapi import APIRouter, HTTPException, Header, BackgroundTasks

from ...config.admin import AdminConfig
from ...services import ReminderScanner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

def execute_reminder_tick():
    """Run one reminder scan; failures are logged, never raised into the worker."""
    try:
        ReminderScanner().run_tick()
    except Exception as e:
        logger.error(f"Reminder tick failed: {e}")

@router.post("/trigger-reminders")
async def trigger_reminders(
    background_tasks: BackgroundTasks,
    authorization: str = Header(...)
):
    """
    Trigger a reminder scan outside the regular polling loop.
    This endpoint is protected by an authorization header.
    """
    admin_config = AdminConfig()
    try:
        admin_config.validate()
    except ValueError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not admin_config.verify_auth(authorization):
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization"
        )

    background_tasks.add_task(execute_reminder_tick)

    return {
        "status": "success",
        "message": "Reminder scan triggered successfully"
    }
