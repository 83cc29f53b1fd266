"""FastAPI application that exposes the tracker to a local UI."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from .config import TrackerSettings
from .errors import (
    CollaboratorUnavailable,
    NotFoundError,
    PersistenceFailure,
    ValidationError,
)
from .models import TIME_RANGES, AppSettings, TrackingSpace
from .paths import get_db_path
from .service import TrackerService

logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)


class SpaceCreate(BaseModel):
    name: str
    color: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SpaceUpdate(BaseModel):
    name: str
    apps: List[str] = []
    color: str

    model_config = ConfigDict(extra="forbid")


class AppPayload(BaseModel):
    app_name: str

    model_config = ConfigDict(extra="forbid")


class TogglePayload(BaseModel):
    active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class SettingsPayload(BaseModel):
    enable_dnd: bool = False
    muted_apps: List[str] = []

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    service: Optional[TrackerService] = None,
    start_ticking: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    tracker = service or TrackerService(
        Path(db_path or get_db_path()), settings or TrackerSettings()
    )

    app = FastAPI(title="Space Tracker", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.tracker = tracker

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(PersistenceFailure)
    async def _persistence_failure(
        request: Request, exc: PersistenceFailure
    ) -> JSONResponse:
        logger.warning("Storage failure while serving %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})

    @app.exception_handler(CollaboratorUnavailable)
    async def _collaborator_unavailable(
        request: Request, exc: CollaboratorUnavailable
    ) -> JSONResponse:
        logger.warning("Collaborator failure while serving %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        if start_ticking:
            tracker.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        tracker.stop()

    def _tracker(request: Request) -> TrackerService:
        return request.app.state.tracker

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        svc = _tracker(request)
        return {
            "tracker_running": svc.is_running(),
            "database_path": str(svc.db_path),
            "tick_seconds": svc.settings.tick_interval.total_seconds(),
            "flush_seconds": svc.settings.flush_interval.total_seconds(),
            "revision": svc.notifier.revision,
        }

    @app.get("/api/spaces")
    def list_spaces(request: Request) -> Dict[str, Any]:
        return {"spaces": [asdict(space) for space in _tracker(request).list_spaces()]}

    @app.post("/api/spaces", status_code=201)
    def create_space(payload: SpaceCreate, request: Request) -> Dict[str, Any]:
        space = _tracker(request).create_space(payload.name, payload.color)
        return {"space": asdict(space)}

    @app.put("/api/spaces/{space_id}")
    def update_space(
        space_id: str, payload: SpaceUpdate, request: Request
    ) -> Dict[str, Any]:
        spaces = _tracker(request).update_space(
            TrackingSpace(
                id=space_id, name=payload.name, apps=payload.apps, color=payload.color
            )
        )
        return {"spaces": [asdict(space) for space in spaces]}

    @app.delete("/api/spaces/{space_id}")
    def delete_space(space_id: str, request: Request) -> Dict[str, Any]:
        spaces = _tracker(request).delete_space(space_id)
        return {"spaces": [asdict(space) for space in spaces]}

    @app.post("/api/spaces/{space_id}/apps")
    def add_app(space_id: str, payload: AppPayload, request: Request) -> Dict[str, Any]:
        space = _tracker(request).add_app(space_id, payload.app_name)
        return {"space": asdict(space)}

    @app.delete("/api/spaces/{space_id}/apps/{app_name}")
    def remove_app(space_id: str, app_name: str, request: Request) -> Dict[str, Any]:
        space = _tracker(request).remove_app(space_id, app_name)
        return {"space": asdict(space)}

    @app.post("/api/spaces/{space_id}/toggle")
    def toggle_space(
        space_id: str, request: Request, payload: Optional[TogglePayload] = None
    ) -> Dict[str, Any]:
        svc = _tracker(request)
        is_active = svc.set_active(space_id, payload.active if payload else None)
        return {
            "space_id": space_id,
            "is_active": is_active,
            "dnd_reminder": is_active and svc.load_settings().enable_dnd,
        }

    @app.post("/api/tracking/stop")
    def stop_tracking(request: Request) -> Dict[str, Any]:
        svc = _tracker(request)
        svc.stop_all()
        return _session_payload(svc)

    @app.get("/api/session")
    def session(request: Request) -> Dict[str, Any]:
        return _session_payload(_tracker(request))

    @app.get("/api/entries")
    def entries(
        request: Request,
        space_id: Optional[str] = Query(default=None),
        date_from: Optional[str] = Query(
            default=None, description="Start date in YYYY-MM-DD format (inclusive)."
        ),
        date_to: Optional[str] = Query(
            default=None, description="End date in YYYY-MM-DD format (inclusive)."
        ),
    ) -> Dict[str, Any]:
        for value in (date_from, date_to):
            if value is not None:
                _check_date(value)
        rows = _tracker(request).query_entries(space_id, date_from, date_to)
        return {"entries": [asdict(entry) for entry in rows]}

    @app.get("/api/stats/today")
    def today_stats(request: Request) -> Dict[str, Any]:
        svc = _tracker(request)
        return {"date": svc.today(), "apps": svc.query_today_stats()}

    @app.get("/api/analytics")
    def analytics(
        request: Request,
        range: str = Query(default="week", description="One of day, week, month."),
        space_id: Optional[str] = Query(default=None),
    ) -> Dict[str, Any]:
        if range not in TIME_RANGES:
            raise HTTPException(status_code=400, detail="Invalid range")
        summary = _tracker(request).analytics(range, space_id)
        return {
            "range": summary.range,
            "date_from": summary.date_from,
            "date_to": summary.date_to,
            "totals": {
                "total_seconds": summary.total_seconds,
                "daily_average_seconds": summary.daily_average_seconds,
                "apps_tracked": summary.apps_tracked,
            },
            "by_app": [
                {"app_name": name, "seconds": seconds} for name, seconds in summary.by_app
            ],
            "by_date": [
                {"date": day, "seconds": seconds} for day, seconds in summary.by_date
            ],
        }

    @app.get("/api/settings")
    def get_settings(request: Request) -> Dict[str, Any]:
        return asdict(_tracker(request).load_settings())

    @app.put("/api/settings")
    def put_settings(payload: SettingsPayload, request: Request) -> Dict[str, Any]:
        saved = _tracker(request).persist_settings(
            AppSettings(enable_dnd=payload.enable_dnd, muted_apps=payload.muted_apps)
        )
        return asdict(saved)

    @app.get("/api/apps/running")
    def running_apps(request: Request) -> Dict[str, Any]:
        apps = _tracker(request).running_applications()
        return {"apps": [asdict(app) for app in apps]}

    @app.get("/api/apps/installed")
    def installed_apps(request: Request) -> Dict[str, Any]:
        apps = _tracker(request).installed_applications()
        return {"apps": [asdict(app) for app in apps]}

    return app


def _session_payload(svc: TrackerService) -> Dict[str, Any]:
    info = svc.get_session_info()
    return {
        "space_id": info.space_id,
        "session_duration": info.session_duration,
        "is_tracking": info.is_tracking,
    }


def _check_date(value: str) -> None:
    """Accept only zero-padded YYYY-MM-DD, the form stored entries compare against."""
    if not _DATE_PATTERN.fullmatch(value):
        raise HTTPException(status_code=400, detail="Invalid date format")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc
