from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from habit_tracker import service
from habit_tracker.config import Settings
from habit_tracker.db import CheckIn, Database, Task, User
from habit_tracker.rate_limit import RateLimiter
from habit_tracker.schedule import schedule_label
from habit_tracker.service import InsightsView, ServiceError, TodayView, ValidationError
from habit_tracker.time_utils import DateParseError, now_local, parse_date_str, today_local

logger = logging.getLogger(__name__)

RANGE_PATTERN = re.compile(r"^(?P<days>\d{1,2})d$")
DEFAULT_RANGE_DAYS = 7
MAX_RANGE_DAYS = 90


class SignupRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)


class UserUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    daily_target: int | None = Field(default=None, alias="dailyTarget")


class TaskCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=255)
    schedule_preset: str = Field(alias="schedulePreset")
    days_of_week: list[int] | None = Field(default=None, alias="daysOfWeek")
    icon: str | None = None


class TaskUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = Field(default=None, min_length=1, max_length=255)
    schedule_preset: str | None = Field(default=None, alias="schedulePreset")
    days_of_week: list[int] | None = Field(default=None, alias="daysOfWeek")
    is_active: bool | None = Field(default=None, alias="isActive")
    icon: str | None = None


class CheckInRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: int = Field(alias="taskId")
    date: str = Field(min_length=1)


def _ok(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": data})


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _user_payload(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "dailyTarget": user.daily_target,
        "createdAt": user.created_at.isoformat(),
    }


def _task_payload(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "icon": task.icon,
        "schedulePreset": task.schedule_preset,
        "scheduleLabel": schedule_label(task.rule),
        "daysOfWeek": task.days_of_week,
        "isActive": task.is_active,
        "createdAt": task.created_at.isoformat(),
    }


def _check_in_payload(check_in: CheckIn) -> dict[str, Any]:
    return {
        "id": check_in.id,
        "taskId": check_in.task_id,
        "date": check_in.date.isoformat(),
        "status": check_in.status,
        "createdAt": check_in.created_at.isoformat(),
    }


def _today_payload(view: TodayView) -> dict[str, Any]:
    return {
        "date": view.date.isoformat(),
        "tasks": [
            {
                "id": t.id,
                "title": t.title,
                "icon": t.icon,
                "isCompleted": t.is_completed,
                "checkInId": t.check_in_id,
            }
            for t in view.tasks
        ],
        "completedCount": view.completed_count,
        "totalCount": view.total_count,
        "dailyTarget": view.daily_target,
        "isSuccessful": view.successful,
    }


def _insights_payload(view: InsightsView, lookback_days: int) -> dict[str, Any]:
    current_display = f"{view.current_streak}+" if view.current_streak_capped else str(view.current_streak)
    return {
        "days": [
            {
                "date": d.day.isoformat(),
                "completedCount": d.completed_count,
                "scheduledCount": d.scheduled_count,
                "isSuccessful": d.successful,
                "isExcluded": d.excluded,
            }
            for d in view.days
        ],
        "dailyTarget": view.daily_target,
        "currentStreak": view.current_streak,
        "currentStreakCapped": view.current_streak_capped,
        "currentStreakDisplay": current_display,
        "bestStreak": view.best_streak,
        "lookbackDays": lookback_days,
    }


def _parse_range(raw: str | None) -> int:
    match = RANGE_PATTERN.fullmatch((raw or "").strip())
    if not match:
        return DEFAULT_RANGE_DAYS
    days = int(match.group("days"))
    if not 1 <= days <= MAX_RANGE_DAYS:
        return DEFAULT_RANGE_DAYS
    return days


def _parse_day(raw: str) -> date:
    try:
        return parse_date_str(raw)
    except DateParseError as exc:
        raise ValidationError("Invalid date") from exc


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",", maxsplit=1)[0].strip()
    return request.client.host if request.client else "unknown"


def build_api_app(
    db: Database,
    settings: Settings,
    limiter: RateLimiter,
    today_provider: Callable[[], date] | None = None,
    now_provider: Callable[[], datetime] | None = None,
) -> FastAPI:
    app = FastAPI(title="Habit Tracker API", version="1.0.0")
    get_today = today_provider or (lambda: today_local(settings.tz))
    get_now = now_provider or (lambda: now_local(settings.tz))

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        return _fail(exc.status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def handle_http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return _fail(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = str(errors[0].get("msg", "Invalid request")) if errors else "Invalid request"
        return _fail(400, message)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s failed", request.method, request.url.path)
        return _fail(500, "Something went wrong")

    def _require_user(request: Request) -> User:
        token = request.headers.get("x-api-token") or request.query_params.get("token")
        if not token:
            raise HTTPException(status_code=401, detail="Authentication required")
        user = db.get_user_by_token(token)
        if user is not None:
            return user
        if not limiter.hit("auth_ip", _client_ip(request)).allowed:
            raise HTTPException(status_code=429, detail="Too many attempts, try again later")
        raise HTTPException(status_code=401, detail="Authentication required")

    @app.get("/api/health")
    async def api_health() -> dict[str, Any]:
        return {"status": "ok"}

    @app.post("/api/auth/signup")
    async def api_signup(request: Request, payload: SignupRequest) -> JSONResponse:
        result = limiter.hit("signup_ip", _client_ip(request))
        if not result.allowed:
            raise HTTPException(status_code=429, detail="Too many signups, try again later")
        user = service.signup(db, payload.email, get_now())
        return _ok({**_user_payload(user), "apiToken": user.api_token}, status_code=201)

    @app.get("/api/user")
    async def api_user(request: Request) -> JSONResponse:
        user = _require_user(request)
        return _ok(_user_payload(user))

    @app.patch("/api/user")
    async def api_update_user(request: Request, payload: UserUpdateRequest) -> JSONResponse:
        user = _require_user(request)
        if payload.daily_target is not None:
            user = service.update_daily_target(db, user, payload.daily_target)
        return _ok(_user_payload(user))

    @app.get("/api/tasks")
    async def api_tasks(request: Request, includeInactive: bool = False) -> JSONResponse:
        user = _require_user(request)
        tasks = db.list_tasks(user.id, include_inactive=includeInactive)
        return _ok([_task_payload(t) for t in tasks])

    @app.post("/api/tasks")
    async def api_create_task(request: Request, payload: TaskCreateRequest) -> JSONResponse:
        user = _require_user(request)
        task = service.create_task(
            db,
            user,
            title=payload.title,
            schedule_preset=payload.schedule_preset,
            days_of_week=payload.days_of_week,
            now=get_now(),
            icon=payload.icon,
        )
        return _ok(_task_payload(task), status_code=201)

    @app.patch("/api/tasks/{task_id}")
    async def api_update_task(task_id: int, request: Request, payload: TaskUpdateRequest) -> JSONResponse:
        user = _require_user(request)
        task = service.update_task(db, user, task_id, payload.model_dump())
        return _ok(_task_payload(task))

    @app.delete("/api/tasks/{task_id}")
    async def api_delete_task(task_id: int, request: Request) -> JSONResponse:
        user = _require_user(request)
        service.delete_task(db, user, task_id)
        return _ok({"id": task_id})

    @app.get("/api/today")
    async def api_today(request: Request) -> JSONResponse:
        user = _require_user(request)
        return _ok(_today_payload(service.compute_today(db, user, get_today())))

    @app.post("/api/checkins")
    async def api_check_in(request: Request, payload: CheckInRequest) -> JSONResponse:
        user = _require_user(request)
        day = _parse_day(payload.date)
        created = service.check_in(db, user, payload.task_id, day, get_now())
        return _ok(_check_in_payload(created), status_code=201)

    @app.delete("/api/checkins")
    async def api_undo_check_in(request: Request, payload: CheckInRequest) -> JSONResponse:
        user = _require_user(request)
        day = _parse_day(payload.date)
        service.undo_check_in(db, user, payload.task_id, day)
        return _ok({"taskId": payload.task_id, "date": day.isoformat()})

    @app.get("/api/insights")
    async def api_insights(request: Request, range_param: str = Query("7d", alias="range")) -> JSONResponse:
        user = _require_user(request)
        view = service.compute_insights(
            db,
            user,
            get_today(),
            days=_parse_range(range_param),
            lookback_days=settings.streak_lookback_days,
        )
        return _ok(_insights_payload(view, settings.streak_lookback_days))

    return app
