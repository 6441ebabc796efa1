from __future__ import annotations

import logging
import time
from typing import Optional

import cv2
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response, StreamingResponse

from analytics.export import EXPORT_FORMATS, export_events
from analytics.summary import summarize
from models.policy import ALL_GROUPS, MAX_THRESHOLD, MIN_THRESHOLD, THRESHOLD_STEP, DetectionPolicy, PolicyError
from runtime.session import Session

from ..api_models import (
    LogEventModel,
    LogsResponse,
    PolicyResponse,
    PolicyUpdateRequest,
    StatusResponse,
    SummaryResponse,
)

router = APIRouter()

EXPORT_MEDIA_TYPES = {"csv": "text/csv", "json": "application/json"}


def get_session(request: Request) -> Session:
    return request.app.state.session


def _policy_response(policy: DetectionPolicy) -> PolicyResponse:
    return PolicyResponse(
        confidence_threshold=policy.confidence_threshold,
        enabled_groups=sorted(policy.enabled_groups),
        groups={group: policy.is_enabled(group) for group in sorted(ALL_GROUPS)},
        min_threshold=MIN_THRESHOLD,
        max_threshold=MAX_THRESHOLD,
        threshold_step=THRESHOLD_STEP,
    )


def _logs_response(session: Session, events) -> LogsResponse:
    return LogsResponse(
        count=len(events),
        capacity=session.log.capacity,
        events=[LogEventModel(**e.to_dict()) for e in events],
    )


@router.get("/health")
def health():
    return {"status": "ok", "timestamp": time.time()}


@router.get("/status", response_model=StatusResponse)
def status(session: Session = Depends(get_session)):
    """
    Loop state and live counters, polled by the dashboard.

    `failure_kind` tells a bad model ("model") apart from a lost camera
    ("source"); both leave `state` at "failed".
    """
    now = time.time()
    loop_status = session.loop_status
    sys_stats = session.get_system_stats_copy()
    last_frame_ts = sys_stats.get("last_frame_ts")

    return StatusResponse(
        state=loop_status.state,
        running=loop_status.state == "running",
        failure_kind=loop_status.failure_kind,
        failure_message=loop_status.failure_message,
        source_id=session.source_id,
        fps=sys_stats.get("fps") or 0.0,
        last_frame_age_s=(now - last_frame_ts) if last_frame_ts else None,
        uptime_seconds=int(now - session.start_time),
        log_size=len(session.log),
        log_capacity=session.log.capacity,
        cycles=session.get_cycle_stats(),
    )


@router.get("/policy", response_model=PolicyResponse)
def get_policy(session: Session = Depends(get_session)):
    return _policy_response(session.get_policy())


@router.put("/policy", response_model=PolicyResponse)
def update_policy(req: PolicyUpdateRequest, session: Session = Depends(get_session)):
    try:
        policy = session.update_policy(
            confidence_threshold=req.confidence_threshold,
            groups=req.groups,
        )
    except PolicyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logging.info(f"Policy updated: {policy.to_dict()}")
    return _policy_response(policy)


@router.get("/logs", response_model=LogsResponse)
def recent_logs(limit: Optional[int] = None, session: Session = Depends(get_session)):
    if limit is None:
        events = session.recent_for_display()
    elif limit < 0:
        raise HTTPException(status_code=400, detail="limit must be >= 0")
    else:
        events = session.log.recent(limit)
    return _logs_response(session, events)


@router.get("/logs/history", response_model=LogsResponse)
def log_history(session: Session = Depends(get_session)):
    return _logs_response(session, session.history())


@router.get("/logs/export")
def export_logs(format: str = "csv", session: Session = Depends(get_session)):
    if format not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail=f"format must be one of {', '.join(EXPORT_FORMATS)}")
    body = export_events(session.history(), format)
    return Response(
        content=body,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="session-log.{format}"'},
    )


@router.get("/stats/summary", response_model=SummaryResponse)
def stats_summary(top_n: Optional[int] = None, session: Session = Depends(get_session)):
    if top_n is not None and top_n < 0:
        raise HTTPException(status_code=400, detail="top_n must be >= 0")
    return summarize(session.history(), top_n=top_n).to_dict()


@router.get("/frame.jpg")
def latest_frame(session: Session = Depends(get_session)):
    frame = session.get_frame()
    if frame is None:
        raise HTTPException(status_code=404, detail="No frame available yet")
    ok, buf = cv2.imencode(".jpg", frame)
    if not ok:
        raise HTTPException(status_code=500, detail="Failed to encode frame")

    return StreamingResponse(
        iter([buf.tobytes()]),
        media_type="image/jpeg",
        headers={"Cache-Control": "no-store"},
    )
