"""
Background job endpoints: enqueue report rendering and poll job status
"""

import asyncio
import logging
from typing import Optional

from arq import create_pool
from arq.jobs import Job, JobStatus
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import TenantContext, get_tenant_context
from ..database import get_db
from ..domain.worklogs.repository import WorkLogRepository
from ..worker import get_redis_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])
order_jobs_router = APIRouter(prefix="/orders", tags=["Jobs"])

STATUS_MAP = {
    JobStatus.deferred: "queued",
    JobStatus.queued: "queued",
    JobStatus.in_progress: "in_progress",
    JobStatus.complete: "complete",
    JobStatus.not_found: "not_found",
}


class JobStatusResponse(BaseModel):
    jobId: str
    status: str  # queued, in_progress, complete, failed
    result: Optional[dict] = None
    error: Optional[str] = None


async def _read_job(pool, job_id: str, tenant_id: int) -> JobStatusResponse:
    job = Job(job_id, pool)
    job_status = await asyncio.wait_for(job.status(), timeout=15.0)
    if job_status == JobStatus.not_found:
        raise HTTPException(status_code=404, detail="Job not found")

    # Jobs of other tenants, and cron jobs, are reported as missing
    info = await asyncio.wait_for(job.info(), timeout=10.0)
    if info is None or (info.kwargs or {}).get("tenant_id") != tenant_id:
        logger.warning(f"🚫 Tenant {tenant_id} asked for job {job_id} it does not own")
        raise HTTPException(status_code=404, detail="Job not found")

    status = STATUS_MAP.get(job_status, "unknown")
    result = None
    error = None
    if job_status == JobStatus.complete:
        try:
            job_result = await asyncio.wait_for(job.result(), timeout=10.0)
            result = job_result if isinstance(job_result, dict) else {"data": job_result}
        except asyncio.TimeoutError:
            logger.warning(f"⏰ Timeout getting result for job {job_id}")
            error = "Timeout retrieving job result"
            status = "failed"
        except Exception as e:
            error = str(e)
            status = "failed"
            logger.error(f"❌ Job {job_id} failed: {error}")

    return JobStatusResponse(jobId=job_id, status=status, result=result, error=error)


async def get_job_status_with_retry(
    job_id: str, tenant_id: int, max_retries: int = 3, retry_delay: float = 1.0
):
    """
    Get job status with exponential backoff retry logic
    """
    for attempt in range(max_retries):
        try:
            pool = await asyncio.wait_for(create_pool(get_redis_settings()), timeout=20.0)
            try:
                return await _read_job(pool, job_id, tenant_id)
            finally:
                try:
                    await pool.close()
                except Exception as e:
                    logger.debug(f"Pool close failed (non-critical): {e}")

        except HTTPException:
            raise
        except asyncio.TimeoutError:
            logger.warning(f"⏰ Timeout on attempt {attempt + 1}/{max_retries} for job {job_id}")
            if attempt == max_retries - 1:
                raise HTTPException(
                    status_code=504, detail="Timeout connecting to job queue - please try again"
                ) from None
        except Exception as e:
            logger.warning(f"🔄 Retry {attempt + 1}/{max_retries} for job {job_id}: {str(e)}")
            if attempt == max_retries - 1:
                logger.error(f"❌ All retries failed for job {job_id}: {str(e)}")
                raise HTTPException(
                    status_code=500, detail="Failed to retrieve job status after retries"
                ) from e
        # Exponential backoff
        if attempt < max_retries - 1:
            await asyncio.sleep(retry_delay * (2**attempt))


@router.get("/status/{job_id}")
async def get_job_status(job_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    """
    Get the status of a background job
    Includes retry logic for Redis connectivity issues
    """
    try:
        return await get_job_status_with_retry(job_id, ctx.tenant_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Unexpected error getting job status: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error") from e


@order_jobs_router.post("/{order_id}/report-pdf/jobs", status_code=202)
async def enqueue_report_pdf(
    order_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """Queue rendering of the technical report PDF; poll /jobs/status/{jobId}"""
    if not WorkLogRepository.get_order(db, order_id, ctx.tenant_id):
        raise HTTPException(status_code=404, detail="Service order not found")

    try:
        pool = await asyncio.wait_for(create_pool(get_redis_settings()), timeout=20.0)
    except Exception as e:
        logger.error(f"❌ Cannot reach job queue: {str(e)}")
        raise HTTPException(status_code=503, detail="Job queue unavailable") from e

    try:
        job = await pool.enqueue_job(
            "generate_report_pdf_task", order_id=order_id, tenant_id=ctx.tenant_id
        )
    finally:
        await pool.close()

    logger.info(f"📨 Queued report PDF job {job.job_id} for order {order_id}")
    return {"jobId": job.job_id, "status": "queued"}
