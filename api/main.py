# ============================================================================
# api/main.py
# ============================================================================
"""
FastAPI Backend for Allergy Scribe

Provides the REST surface around the core:
- visit lifecycle (create, list, get, complete, delete)
- extraction from visit sources
- path-scoped clinician edits with re-analysis
"""

import sys
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from contextlib import asynccontextmanager

from allergy_scribe.config import base_settings, logging_settings
from allergy_scribe.core.config import get_config
from allergy_scribe.core.pipeline import ExtractionPipeline
from allergy_scribe.core.sources import Source
from allergy_scribe.core.visit_service import VisitService
from allergy_scribe.core.visit_store import create_repository
from allergy_scribe.utils.exceptions import (
    ConfigurationError,
    EditError,
    EmptyCorpusError,
    ExtractionFailure,
    SchemaValidationError,
    VisitExistsError,
    VisitNotFoundError,
)
from allergy_scribe.utils.logging import create_audit_logger, setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(logging_settings.LOG_LEVEL, format_json=logging_settings.LOG_FORMAT_JSON)
    logger.info(f"Allergy Scribe API starting (backend={get_config().get('backend')})")
    yield
    if _pipeline is not None:
        await _pipeline.engine.close()


app = FastAPI(
    title="Allergy Scribe API",
    description="Structured allergist extraction, review and reconciliation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Shared services (created on first use)
# ============================================================================

_visit_service: Optional[VisitService] = None
_pipeline: Optional[ExtractionPipeline] = None


def get_visit_service() -> VisitService:
    global _visit_service
    if _visit_service is None:
        config = {**get_config(), "visit_db_path": base_settings.VISIT_DB_PATH}
        audit_file = base_settings.AUDIT_LOG_PATH if logging_settings.ENABLE_AUDIT_TRAIL else None
        _visit_service = VisitService(
            repository=create_repository(config),
            audit_logger=create_audit_logger("visits", audit_file),
        )
    return _visit_service


def get_pipeline() -> ExtractionPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = ExtractionPipeline()
    return _pipeline


# ============================================================================
# Models
# ============================================================================

class CreateVisitRequest(BaseModel):
    visitId: Optional[str] = None
    patientAlias: Optional[str] = None


class SourcePayload(BaseModel):
    type: str = "text"
    content: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ExtractFactsRequest(BaseModel):
    visitId: str
    sources: List[SourcePayload] = Field(default_factory=list)
    acceptPartial: bool = False


class EditRequest(BaseModel):
    path: str
    value: Any = None


class CompleteVisitRequest(BaseModel):
    generatedNote: str


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/api/health")
async def health():
    """Health check for monitoring."""
    config = get_config()
    return {"status": "healthy", "service": "Allergy Scribe API", "backend": config.get("backend")}


@app.post("/api/visits", status_code=201)
async def create_visit(request: CreateVisitRequest, service: VisitService = Depends(get_visit_service)):
    try:
        visit = service.create_visit(request.visitId, patient_alias=request.patientAlias)
    except VisitExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return visit.to_dict()


@app.get("/api/visits")
async def list_visits(
    status: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    service: VisitService = Depends(get_visit_service)
):
    """List visits newest first; source content and history are omitted."""
    try:
        visits, total = service.list_visits(status=status, limit=limit, offset=offset)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown visit status: {status}")
    return {"visits": [v.summary() for v in visits], "total": total}


@app.get("/api/visits/statistics")
async def visit_statistics(service: VisitService = Depends(get_visit_service)):
    return service.get_statistics()


@app.get("/api/visits/{visit_id}")
async def get_visit(visit_id: str, service: VisitService = Depends(get_visit_service)):
    try:
        return service.get_visit(visit_id).to_dict()
    except VisitNotFoundError:
        raise HTTPException(status_code=404, detail="Visit not found")


@app.delete("/api/visits/{visit_id}")
async def delete_visit(visit_id: str, service: VisitService = Depends(get_visit_service)):
    if not service.delete_visit(visit_id):
        raise HTTPException(status_code=404, detail="Visit not found")
    return {"deleted": visit_id}


@app.post("/api/visits/{visit_id}/complete")
async def complete_visit(
    visit_id: str,
    request: CompleteVisitRequest,
    service: VisitService = Depends(get_visit_service)
):
    try:
        return service.complete_visit(visit_id, request.generatedNote).to_dict()
    except VisitNotFoundError:
        raise HTTPException(status_code=404, detail="Visit not found")


@app.post("/api/extract-facts")
async def extract_facts(
    request: ExtractFactsRequest,
    service: VisitService = Depends(get_visit_service),
    pipeline: ExtractionPipeline = Depends(get_pipeline)
):
    """
    Extract a validated record from the visit's sources and store it.

    The previous extraction, if any, is superseded and kept in history.
    """
    if not request.sources:
        raise HTTPException(status_code=400, detail="At least one source is required")

    try:
        service.get_visit(request.visitId)
    except VisitNotFoundError:
        raise HTTPException(status_code=404, detail="Visit not found")

    raw_sources = [s.model_dump() for s in request.sources]
    try:
        sources = [Source.from_dict(s) for s in raw_sources]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid source: {e}")

    try:
        outcome = await pipeline.run(sources, accept_partial=request.acceptPartial)
    except EmptyCorpusError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SchemaValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "error": "Data validation failed",
                "fieldErrors": [err.to_dict() for err in e.errors],
            },
        )
    except ExtractionFailure as e:
        logger.error(f"Extraction failed for visit {request.visitId}: {e}")
        raise HTTPException(
            status_code=503,
            detail="Failed to extract clinical information. Please try again.",
        )
    except ConfigurationError as e:
        logger.error(f"Extraction backend not configured: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    visit = service.create_from_extraction(request.visitId, outcome.record, sources=raw_sources)

    metadata = outcome.metadata()
    metadata["revision"] = visit.revision
    if outcome.errors:
        metadata["fieldErrors"] = [err.to_dict() for err in outcome.errors]

    return {**visit.extraction, "analysisMetadata": metadata}


@app.patch("/api/visits/{visit_id}/extraction")
async def edit_extraction(
    visit_id: str,
    request: EditRequest,
    service: VisitService = Depends(get_visit_service)
):
    """Apply one path-scoped edit; returns the updated record and analysis."""
    try:
        visit = service.apply_edit(visit_id, request.path, request.value)
    except VisitNotFoundError:
        raise HTTPException(status_code=404, detail="Visit not found")
    except EditError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    return {
        "visitId": visit.visit_id,
        "revision": visit.revision,
        "extraction": visit.extraction,
        "analysisMetadata": visit.analysis,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
