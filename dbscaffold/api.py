# File: dbscaffold/api.py
"""
dbscaffold - HTTP Service
==========================
FastAPI application exposing the job pipeline:

    POST /api/jobs                  submit a GenerationRequest (202)
    GET  /api/jobs/{job_id}         poll a job's status
    GET  /api/downloads/{file_name} fetch a finished package
    GET  /health                    liveness probe

The pipeline lives on ``app.state.pipeline``; running jobs are cancelled
when the application shuts down.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request, status
from fastapi.responses import FileResponse, JSONResponse

from dbscaffold import __version__
from dbscaffold.exceptions import InvalidFileNameError, PackageNotFoundError
from dbscaffold.models import (
    GenerationRequest,
    JobStatus,
    JobStatusResult,
    SubmitResult,
)
from dbscaffold.pipeline import JobPipeline
from dbscaffold.settings import PipelineSettings, get_settings

logger: logging.Logger = logging.getLogger("dbscaffold.api")

router = APIRouter(prefix="/api")


def _pipeline(request: Request) -> JobPipeline:
    return request.app.state.pipeline


@router.post("/jobs", response_model=SubmitResult, status_code=status.HTTP_202_ACCEPTED)
async def submit_job(body: GenerationRequest, request: Request):
    result: SubmitResult = await _pipeline(request).submit(body)
    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=result.model_dump(by_alias=True, mode="json"),
        )
    return result.model_dump(by_alias=True, mode="json")


@router.get("/jobs/{job_id}", response_model=JobStatusResult)
async def get_job(job_id: str, request: Request):
    result: JobStatusResult = _pipeline(request).get_status(job_id)
    payload: Dict[str, Optional[str]] = result.model_dump(by_alias=True, mode="json")
    if result.status == JobStatus.NOT_FOUND.value:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=payload)
    return payload


@router.get("/downloads/{file_name}")
async def download_package(file_name: str, request: Request) -> FileResponse:
    try:
        path = _pipeline(request).package_path(file_name)
    except InvalidFileNameError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except PackageNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return FileResponse(path, media_type="application/zip", filename=file_name)


def create_app(settings: Optional[PipelineSettings] = None) -> FastAPI:
    """Build the application around a fresh ``JobPipeline``."""
    resolved: PipelineSettings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Starting dbscaffold API (packages in %s).", resolved.package_dir
        )
        yield
        await app.state.pipeline.shutdown()
        logger.info("dbscaffold API stopped.")

    app = FastAPI(title="dbscaffold", version=__version__, lifespan=lifespan)
    app.state.pipeline = JobPipeline(resolved)
    app.include_router(router)

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


__all__: List[str] = ["create_app", "router"]
