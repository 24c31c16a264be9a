"""
MedCheck API — Main Application

POST /analyze        — Analyze one advertisement text
POST /analyze/batch  — Analyze up to 50 texts concurrently
GET  /patterns       — Pattern dictionary (optionally one category)
GET  /departments    — Specialty tags and their rule counts
GET  /health         — Health check
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from medcheck import __version__
from medcheck.config import settings
from medcheck.detector import DetectionRequest, build_detector
from medcheck.logging import setup_logging, get_logger
from medcheck.taxonomy import Department, PatternCategory
from medcheck.schemas.analyze import (
    AnalyzeRequest,
    AnalyzeResponse,
    AnalyzeBatchRequest,
    AnalyzeBatchResponse,
    DepartmentsResponse,
    HealthResponse,
    PatternsResponse,
)

logger = get_logger("api")

# Built once; every request shares the same immutable rule tables.
detector = build_detector()


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    counts = detector.counts()
    logger.info(
        f"MedCheck API starting: {counts['patterns']} patterns, "
        f"{counts['compound_rules']} compound rules, {counts['department_rules']} department rules"
    )
    yield
    logger.info("MedCheck API shutting down")


app = FastAPI(
    title="MedCheck API",
    description="Medical advertisement violation detection (의료법 제56조)",
    version=f"{__version__} (core {settings.CORE_VERSION})",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=False,
)


# ============================================================
# GLOBAL ERROR HANDLER
# ============================================================

@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    """Unhandled exceptions become a structured 500."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={"error": str(exc), "path": request.url.path, "method": request.method},
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. The analysis could not be completed."},
    )


def _to_detection_request(body: AnalyzeRequest) -> DetectionRequest:
    return DetectionRequest(
        text=body.text,
        url=body.url,
        options=body.options.to_match_options() if body.options else None,
        enable_extended=body.enable_extended,
        enable_compound=body.enable_compound,
        enable_department=body.enable_department,
        enable_mandatory=body.enable_mandatory,
        enable_impression=body.enable_impression,
        department=body.department,
    )


# ============================================================
# ROUTES
# ============================================================

@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze(request: AnalyzeRequest):
    """Run the full pipeline over one text."""
    response = await detector.analyze_async(_to_detection_request(request))
    return response.to_dict()


@app.post("/analyze/batch", response_model=AnalyzeBatchResponse)
async def analyze_batch(request: AnalyzeBatchRequest):
    """Analyze multiple texts concurrently. One failure does not fail the batch."""
    results = await asyncio.gather(
        *[detector.analyze_async(_to_detection_request(item)) for item in request.items],
        return_exceptions=True,
    )

    items = []
    analyzed = 0
    for index, r in enumerate(results):
        if isinstance(r, Exception):
            logger.warning(
                "Batch item failed",
                extra={"error": str(r), "error_type": type(r).__name__},
            )
            items.append({"index": index, "error": f"{type(r).__name__}: {r}"})
            continue
        analyzed += 1
        items.append({"index": index, "result": r.to_dict()})

    logger.info(f"Batch complete: {analyzed}/{len(request.items)} analyzed")
    return {"results": items, "total": len(request.items), "analyzed": analyzed}


@app.get("/patterns", response_model=PatternsResponse)
async def get_patterns(category: Optional[PatternCategory] = Query(None)):
    """Pattern dictionary entries, optionally filtered to one category."""
    dictionary = detector.matcher.dictionary
    patterns = dictionary.get_patterns(category)
    return {
        "dictionary_version": dictionary.version,
        "category": category,
        "total": len(patterns),
        "patterns": patterns,
    }


@app.get("/departments", response_model=DepartmentsResponse)
async def get_departments():
    return {
        "departments": [
            {
                "department": d,
                "name": detector.departments.department_name(d),
                "rule_count": len(detector.departments.get_rules(d)),
            }
            for d in Department
        ],
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    return {
        "status": "operational",
        "version": __version__,
        "core_version": settings.CORE_VERSION,
        "dictionary_version": detector.matcher.dictionary.version,
        "rule_counts": detector.counts(),
    }


# --- Request Logging Middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with method, path, status, duration."""
    path = request.url.path
    if path == "/health":
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 1)

    logger.info(
        f"{request.method} {path} → {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.HOST, port=settings.PORT)
