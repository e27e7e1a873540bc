#!/usr/bin/env python3
"""HTTP surface for voice protein logging, the protein log and summaries."""
from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()

import asyncio
import base64
import binascii
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.contextvars import bind_contextvars, unbind_contextvars

from .config import Settings, get_settings, service_name
from .models import (
    AudioUploadRequest,
    DailySummaryResponse,
    ExtractionRequest,
    GoalRequest,
    GoalResponse,
    LogVoiceResultRequest,
    MonthlyStatsResponse,
    ProteinEntriesByDate,
    ProteinEntry,
    ProteinEntryCreate,
    StreakResponse,
    VoiceErrorPayload,
    VoiceInputResult,
    VoiceSessionResponse,
)
from .storage import ProteinLogService, get_db
from .telemetry import configure_logging, configure_tracing, reset_correlation_id, set_correlation_id
from .tracking import (
    apply_goal_adjustment,
    build_daily_summary,
    calculate_protein_goal,
    current_streak,
    monthly_stats,
)
from .tracking.summary import month_bounds
from .voice.assets import AudioAsset
from .voice.exceptions import (
    AuthError,
    BadAudio,
    ConfigError,
    DeviceUnavailable,
    InvalidTransitionError,
    NetworkError,
    NoActiveRecording,
    PermissionDenied,
    RateLimited,
    UpstreamError,
    VoiceError,
)
from .voice.pipeline import VoiceLoggingPipeline, interpret_asset

logger = logging.getLogger("protein_voice")

configure_logging()

ERROR_STATUS: Dict[type, int] = {
    PermissionDenied: 403,
    DeviceUnavailable: 503,
    NoActiveRecording: 409,
    ConfigError: 503,
    AuthError: 502,
    RateLimited: 429,
    BadAudio: 422,
    NetworkError: 504,
    UpstreamError: 502,
}


def status_for(exc: VoiceError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return 500


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach correlation identifiers and latency to responses."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        token = set_correlation_id(correlation_id)
        bind_contextvars(correlation_id=correlation_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled exception during request", extra={"path": request.url.path})
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            reset_correlation_id(token)
            unbind_contextvars("correlation_id")
            logger.info(
                "Request completed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": round(duration_ms, 2),
                },
            )

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time-ms"] = f"{duration_ms:.2f}"
        return response


# Dependency factories -----------------------------------------------------

_pipeline: Optional[VoiceLoggingPipeline] = None


def get_pipeline(settings: Settings = Depends(get_settings)) -> VoiceLoggingPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = VoiceLoggingPipeline.from_settings(settings)
    return _pipeline


def get_log_service(db: Session = Depends(get_db)) -> ProteinLogService:
    return ProteinLogService(db)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    if _pipeline is not None:
        await _pipeline.cancel()


app = FastAPI(title="Protein Voice", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)
configure_tracing(app, service_name())


@app.exception_handler(VoiceError)
async def voice_error_handler(_: Request, exc: VoiceError) -> JSONResponse:
    payload = VoiceErrorPayload(kind=exc.kind, message=exc.user_message)
    return JSONResponse(status_code=status_for(exc), content=payload.model_dump())


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(_: Request, exc: InvalidTransitionError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"kind": "invalid_transition", "message": str(exc)})


def _session_snapshot(pipeline: VoiceLoggingPipeline) -> VoiceSessionResponse:
    error = pipeline.error
    return VoiceSessionResponse(
        state=pipeline.state,
        result=pipeline.result,
        error=VoiceErrorPayload(kind=error.kind, message=error.user_message) if error else None,
    )


# Routes -------------------------------------------------------------------


@app.get("/healthz")
async def healthz(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    """Simple readiness probe for container orchestrators."""

    return {"status": "ok", "openai": "configured" if settings.has_credentials else "missing"}


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/voice/session", response_model=VoiceSessionResponse)
async def voice_session(pipeline: VoiceLoggingPipeline = Depends(get_pipeline)) -> VoiceSessionResponse:
    return _session_snapshot(pipeline)


@app.post("/voice/recording/start", response_model=VoiceSessionResponse)
async def start_recording(pipeline: VoiceLoggingPipeline = Depends(get_pipeline)) -> VoiceSessionResponse:
    await pipeline.start_recording()
    return _session_snapshot(pipeline)


@app.post("/voice/recording/stop", response_model=VoiceInputResult)
async def stop_recording(pipeline: VoiceLoggingPipeline = Depends(get_pipeline)) -> VoiceInputResult:
    return await pipeline.stop_and_process()


@app.post("/voice/recording/cancel", response_model=VoiceSessionResponse)
async def cancel_recording(pipeline: VoiceLoggingPipeline = Depends(get_pipeline)) -> VoiceSessionResponse:
    await pipeline.cancel()
    return _session_snapshot(pipeline)


@app.post("/voice/result/discard", response_model=VoiceSessionResponse)
async def discard_result(pipeline: VoiceLoggingPipeline = Depends(get_pipeline)) -> VoiceSessionResponse:
    pipeline.discard()
    return _session_snapshot(pipeline)


@app.post("/voice/result/log", response_model=ProteinEntry, status_code=201)
async def log_result(
    payload: LogVoiceResultRequest,
    pipeline: VoiceLoggingPipeline = Depends(get_pipeline),
    log: ProteinLogService = Depends(get_log_service),
) -> ProteinEntry:
    result = pipeline.result
    if pipeline.state != "completed" or result is None:
        raise InvalidTransitionError(f"No completed result in state '{pipeline.state}'")
    try:
        entry = log.log_voice_result(result, date=payload.date, amount=payload.amount)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    pipeline.acknowledge_persisted()
    return ProteinEntry.model_validate(entry)


@app.post("/voice/transcriptions", response_model=VoiceInputResult)
async def transcribe_upload(
    payload: AudioUploadRequest,
    pipeline: VoiceLoggingPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
) -> VoiceInputResult:
    pipeline.transcriber.ensure_configured()
    try:
        audio_bytes = base64.b64decode(payload.audio_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=422, detail="Invalid base64 audio payload") from exc

    container = payload.audio_format.lower().lstrip(".")
    settings.scratch_dir.mkdir(parents=True, exist_ok=True)
    path = settings.scratch_dir / f"upload-{uuid.uuid4().hex}.{container}"
    await asyncio.to_thread(path.write_bytes, audio_bytes)
    asset = AudioAsset(
        path=path,
        sample_rate=payload.sample_rate,
        channels=payload.channels,
        container=container,
    )
    return await interpret_asset(pipeline.transcriber, pipeline.extractor, asset)


@app.post("/voice/extractions", response_model=VoiceInputResult)
async def extract_transcript(
    payload: ExtractionRequest,
    pipeline: VoiceLoggingPipeline = Depends(get_pipeline),
) -> VoiceInputResult:
    return await pipeline.extractor.extract(payload.transcript.strip())


@app.post("/logs", response_model=ProteinEntry, status_code=201)
async def add_log_entry(
    payload: ProteinEntryCreate,
    log: ProteinLogService = Depends(get_log_service),
) -> ProteinEntry:
    try:
        entry = log.add_entry(
            payload.date,
            payload.amount,
            description=payload.description,
            source=payload.source,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ProteinEntry.model_validate(entry)


@app.get("/logs", response_model=ProteinEntriesByDate)
async def list_log_entries(
    start: date = Query(...),
    end: date = Query(...),
    log: ProteinLogService = Depends(get_log_service),
) -> ProteinEntriesByDate:
    if end < start:
        raise HTTPException(status_code=422, detail="end must not precede start")
    grouped = log.entries_for_range(start, end)
    return ProteinEntriesByDate(
        entries={
            day: [ProteinEntry.model_validate(entry) for entry in entries]
            for day, entries in grouped.items()
        }
    )


@app.get("/logs/{day}", response_model=list[ProteinEntry])
async def log_entries_for_day(
    day: date,
    log: ProteinLogService = Depends(get_log_service),
) -> list[ProteinEntry]:
    return [ProteinEntry.model_validate(entry) for entry in log.entries_for_date(day)]


@app.delete("/logs/{day}/{entry_id}", status_code=204)
async def delete_log_entry(
    day: date,
    entry_id: str,
    log: ProteinLogService = Depends(get_log_service),
) -> Response:
    if not log.delete_entry(entry_id, day):
        raise HTTPException(status_code=404, detail="Entry not found")
    return Response(status_code=204)


@app.delete("/logs/{day}")
async def clear_log_day(
    day: date,
    log: ProteinLogService = Depends(get_log_service),
) -> Dict[str, int]:
    return {"deleted": log.clear_date(day)}


@app.get("/summary/daily/{day}", response_model=DailySummaryResponse)
async def daily_summary(
    day: date,
    goal: Optional[int] = Query(default=None, gt=0),
    log: ProteinLogService = Depends(get_log_service),
    settings: Settings = Depends(get_settings),
) -> DailySummaryResponse:
    summary = build_daily_summary(day, log.entries_for_date(day), goal or settings.default_protein_goal)
    return DailySummaryResponse.model_validate(summary)


@app.get("/summary/monthly/{year}/{month}", response_model=MonthlyStatsResponse)
async def monthly_summary(
    year: int,
    month: int,
    goal: Optional[int] = Query(default=None, gt=0),
    log: ProteinLogService = Depends(get_log_service),
    settings: Settings = Depends(get_settings),
) -> MonthlyStatsResponse:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail="month must be between 1 and 12")
    start, end = month_bounds(year, month)
    stats = monthly_stats(
        log.totals_for_range(start, end),
        goal or settings.default_protein_goal,
        year,
        month,
    )
    return MonthlyStatsResponse.model_validate(stats)


@app.get("/summary/streak", response_model=StreakResponse)
async def streak(
    today: Optional[date] = Query(default=None),
    goal: Optional[int] = Query(default=None, gt=0),
    log: ProteinLogService = Depends(get_log_service),
    settings: Settings = Depends(get_settings),
) -> StreakResponse:
    goal_protein = goal or settings.default_protein_goal
    return StreakResponse(
        streak=current_streak(log, goal_protein, today or date.today()),
        goal_protein=goal_protein,
    )


@app.post("/goals/calculate", response_model=GoalResponse)
async def calculate_goal(payload: GoalRequest) -> GoalResponse:
    calculated = calculate_protein_goal(
        weight_lbs=payload.weight_lbs,
        weight_kg=payload.weight_kg,
        fitness_goal=payload.fitness_goal,
    )
    try:
        goal = apply_goal_adjustment(calculated, payload.adjustment, payload.custom_goal)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return GoalResponse(calculated_goal=calculated, goal=goal)
