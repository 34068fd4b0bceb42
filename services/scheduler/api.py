"""
FastAPI endpoints for the job scheduler service.
"""

from functools import partial
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, HTTPException, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.config import settings
from core.logging_config import get_logger

from .composer import ScheduleComposer
from .database import SchedulerDatabase
from .models import ScheduleInput, ScheduleNotFoundError, SchedulePreview
from .registrar import SchedulerRegistrar
from .run_launcher import RunLauncher
from .timers import create_timer
from .worker import SchedulerWorker

logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Job Scheduler Service",
    description="Runs stored job schedules against the remote job server",
    version="1.0.0"
)

# Global instances
db: Optional[SchedulerDatabase] = None
registrar: Optional[SchedulerRegistrar] = None
worker: Optional[SchedulerWorker] = None
run_launcher: Optional[RunLauncher] = None


def get_db() -> SchedulerDatabase:
    """Dependency to get database instance."""
    if db is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return db


def get_registrar() -> SchedulerRegistrar:
    """Dependency to get registrar instance."""
    if registrar is None:
        raise HTTPException(status_code=500, detail="Registrar not initialized")
    return registrar


def get_worker() -> SchedulerWorker:
    """Dependency to get worker instance."""
    if worker is None:
        raise HTTPException(status_code=500, detail="Worker not initialized")
    return worker


@app.on_event("startup")
async def startup_event():
    """Initialize service components and schedule every stored job."""
    global db, registrar, worker, run_launcher

    try:
        db = SchedulerDatabase(settings.scheduler_db_path)
        run_launcher = RunLauncher.from_settings(settings)

        scheduler = AsyncIOScheduler(timezone="UTC")
        composer = ScheduleComposer(partial(create_timer, scheduler), run_launcher, db)

        registrar = SchedulerRegistrar(db)
        worker = SchedulerWorker(db, composer, scheduler=scheduler)

        await worker.start()
        logger.info("Scheduler service initialized successfully")

    except Exception as e:
        logger.error(f"Failed to initialize scheduler service: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Stop every timer and release connections."""
    if worker:
        await worker.stop()
    if db:
        await db.close()
    if run_launcher:
        await run_launcher.aclose()


# API Models
class ScheduleResponse(BaseModel):
    id: str
    cron_expr: Optional[str] = None


class StatusResponse(BaseModel):
    status: str
    worker_status: Dict[str, Any]


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "job-scheduler"}


# Schedule management endpoints
@app.post("/schedules", response_model=ScheduleResponse)
async def upsert_schedule(
    input_data: ScheduleInput,
    registrar: SchedulerRegistrar = Depends(get_registrar),
    db: SchedulerDatabase = Depends(get_db)
):
    """Create or update a schedule; responds once its timers are in place."""
    try:
        result = registrar.upsert_schedule(input_data)
        await db.drain()
        return ScheduleResponse(**result)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/schedules/{schedule_id}")
async def delete_schedule(
    schedule_id: str,
    registrar: SchedulerRegistrar = Depends(get_registrar),
    db: SchedulerDatabase = Depends(get_db)
):
    """Delete a schedule and stop its timers."""
    try:
        registrar.delete_schedule(schedule_id)
        await db.drain()
        return {"message": f"Schedule {schedule_id} deleted successfully"}
    except ScheduleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/schedules/{schedule_id}", response_model=SchedulePreview)
async def get_schedule(
    schedule_id: str,
    registrar: SchedulerRegistrar = Depends(get_registrar)
):
    """Get a schedule with preview of next fire times."""
    schedule_preview = registrar.get_schedule(schedule_id)
    if not schedule_preview:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return schedule_preview


@app.get("/schedules")
async def list_schedules(
    job_name: Optional[str] = None,
    limit: int = 100,
    registrar: SchedulerRegistrar = Depends(get_registrar)
):
    """List schedules with optional filtering."""
    schedules = registrar.list_schedules(job_name, limit)
    return {"schedules": [schedule.model_dump(mode="json") for schedule in schedules]}


# Worker endpoints
@app.get("/worker/status", response_model=StatusResponse)
async def get_worker_status(worker: SchedulerWorker = Depends(get_worker)):
    """Get the current status of the worker."""
    worker_status = worker.get_status()
    status = "running" if worker_status["running"] else "stopped"
    return StatusResponse(status=status, worker_status=worker_status)


@app.post("/worker/resync")
async def resync_schedules(worker: SchedulerWorker = Depends(get_worker)):
    """Rebuild the timers of every stored schedule."""
    scheduled = await worker.recreate_all_schedules()
    return {"message": f"{scheduled} job(s) scheduled.", "scheduled_jobs": scheduled}


# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )
