# app.py
# =============================================================================
# Workout Tracker API — workouts, exercises & sets (FastAPI + SQLAlchemy 2.x
# async, Pydantic v2). Accounts are identified by the X-User-Id header set by
# the identity provider in front of this service.
# =============================================================================

from __future__ import annotations

import logging
import math
import os
import re
import time
import traceback
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path as OSPath
from typing import AsyncGenerator, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi import Path as FPath
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    asc,
    desc,
    event,
    func,
    or_,
    select,
    text,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from date_utils import day_bounds, format_date_with_ordinal, format_time_12h, parse_date_param
from workout_data import WorkoutExerciseOut, WorkoutWithExercisesOut, aggregate_workouts

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(levelname)s %(name)s %(message)s",
)
log = logging.getLogger("workout-tracker")

# -----------------------------------------------------------------------------
# DB connection
# Priority:
#   1) DATABASE_URL (PostgreSQL, driven through asyncpg)
#   2) env WORKOUT_DB (path to a SQLite file)
#   3) ./data/workouts.db if it exists
#   4) ./workouts.db
# -----------------------------------------------------------------------------
_database_url = os.getenv("DATABASE_URL")


def _asyncpg_url(url: str) -> str:
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


if _database_url:
    DB_PATH = _asyncpg_url(_database_url)
    engine = create_async_engine(
        DB_PATH, echo=False, pool_pre_ping=True,
        pool_size=10, max_overflow=20, pool_timeout=30,
    )
    log.info("Using PostgreSQL (async)")
else:
    env_db = os.getenv("WORKOUT_DB")
    if env_db:
        DB_PATH = env_db
    else:
        data_db = (OSPath(__file__).parent / "data" / "workouts.db").resolve()
        DB_PATH = str(data_db if data_db.exists() else (OSPath(__file__).parent / "workouts.db").resolve())
    engine = create_async_engine(f"sqlite+aiosqlite:///{DB_PATH}", echo=False)
    log.info(f"Using SQLite (async): {DB_PATH}")

    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_foreign_keys(dbapi_conn, _record):
        # cascades on workout_exercises/sets depend on this
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# -----------------------------------------------------------------------------
# SQLAlchemy models
# -----------------------------------------------------------------------------
class Base(DeclarativeBase):
    pass


class Exercise(Base):
    """A movement definition. user_id is NULL for the predefined catalogue."""
    __tablename__ = "exercises"
    __table_args__ = (
        UniqueConstraint("name", "user_id", name="exercises_name_user_id_unique"),
        Index("exercises_user_id_idx", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )


class Workout(Base):
    __tablename__ = "workouts"
    __table_args__ = (
        Index("workouts_user_id_idx", "user_id"),
        Index("workouts_started_at_idx", "started_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)


class WorkoutExercise(Base):
    """Places an exercise in a workout; order is the display position."""
    __tablename__ = "workout_exercises"
    __table_args__ = (
        Index("workout_exercises_workout_id_order_idx", "workout_id", "order"),
        Index("workout_exercises_exercise_id_idx", "exercise_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workout_id: Mapped[int] = mapped_column(
        ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False
    )
    exercise_id: Mapped[int] = mapped_column(
        ForeignKey("exercises.id", ondelete="RESTRICT"), nullable=False
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)


class WorkoutSet(Base):
    __tablename__ = "sets"
    __table_args__ = (
        Index("sets_workout_exercise_id_set_number_idx", "workout_exercise_id", "set_number"),
        CheckConstraint("weight > 0", name="sets_weight_check"),
        CheckConstraint("reps > 0", name="sets_reps_check"),
        CheckConstraint("duration_seconds > 0", name="sets_duration_check"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workout_exercise_id: Mapped[int] = mapped_column(
        ForeignKey("workout_exercises.id", ondelete="CASCADE"), nullable=False
    )
    set_number: Mapped[int] = mapped_column(Integer, nullable=False)
    weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    reps: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)


# -----------------------------------------------------------------------------
# Startup: create tables & seed the predefined exercise catalogue
# -----------------------------------------------------------------------------
PREDEFINED_EXERCISES = [
    "Bench Press",
    "Barbell Row",
    "Deadlift",
    "Overhead Press",
    "Plank",
    "Pull-up",
    "Squat",
]


async def _init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as s:
        result = await s.execute(select(Exercise.name).where(Exercise.user_id.is_(None)))
        existing = set(result.scalars().all())
        missing = [n for n in PREDEFINED_EXERCISES if n not in existing]
        if missing:
            s.add_all([Exercise(name=n) for n in missing])
            await s.commit()
            log.info(f"Seeded {len(missing)} predefined exercises")


# -----------------------------------------------------------------------------
# Pydantic schemas
# -----------------------------------------------------------------------------
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _validate_date_str(v: str) -> str:
    if not _DATE_RE.match(v):
        raise ValueError("date must be YYYY-MM-DD format")
    try:
        datetime.strptime(v, "%Y-%m-%d")
    except ValueError:
        raise ValueError("date is not a valid calendar date")
    return v


def _local_naive(v: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive local time."""
    if v is not None and v.tzinfo is not None:
        return v.astimezone().replace(tzinfo=None)
    return v


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class HealthOut(BaseModel):
    ok: bool = True
    db_connected: bool = True
    db_type: str
    timestamp: str


class GenericResponse(BaseModel):
    message: str


class ExerciseIn(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("exercise name cannot be empty")
        return v

    @field_validator("description")
    @classmethod
    def normalize_description(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ExerciseOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    predefined: bool


class WorkoutIn(BaseModel):
    """New workout. started_at defaults to now."""
    name: Optional[str] = None
    started_at: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @field_validator("started_at")
    @classmethod
    def to_local(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _local_naive(v)


class WorkoutUpdateIn(BaseModel):
    """Partial update: only keys present in the request body are applied."""
    name: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @field_validator("started_at", "completed_at")
    @classmethod
    def to_local(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _local_naive(v)

    @model_validator(mode="after")
    def check_order(self) -> "WorkoutUpdateIn":
        if self.started_at and self.completed_at and self.completed_at < self.started_at:
            raise ValueError("completed_at cannot be before started_at")
        return self


class WorkoutOut(BaseModel):
    id: int
    name: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    created_at: datetime


class WorkoutExerciseIn(BaseModel):
    exercise_id: int = Field(..., ge=1)
    order: Optional[int] = Field(None, ge=0)


class WorkoutExerciseLinkOut(BaseModel):
    id: int
    workout_id: int
    exercise_id: int
    order: int


class SetIn(BaseModel):
    set_number: Optional[int] = Field(None, ge=1)
    weight: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    reps: Optional[int] = Field(None, gt=0)
    duration_seconds: Optional[int] = Field(None, gt=0)


class SetOut(BaseModel):
    id: int
    workout_exercise_id: int
    set_number: int
    weight: Optional[str] = None
    reps: Optional[int] = None
    duration_seconds: Optional[int] = None


class ExerciseStatsOut(BaseModel):
    name: str
    total_sets: int
    avg_reps: int
    max_weight: Optional[float] = None


class WorkoutCardOut(BaseModel):
    id: int
    title: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration: Optional[str] = None
    status: str
    exercises: List[ExerciseStatsOut] = Field(default_factory=list)


class DashboardOut(BaseModel):
    date: str
    date_label: str
    workouts: List[WorkoutCardOut] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------
class NotFound(Exception):
    """A row is missing or belongs to another account."""


class WorkoutNotFound(NotFound):
    def __init__(self):
        super().__init__("Workout not found")


class ExerciseNotFound(NotFound):
    def __init__(self):
        super().__init__("Exercise not found")


class WorkoutExerciseNotFound(NotFound):
    def __init__(self):
        super().__init__("Workout exercise not found")


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    await _init_db()
    yield
    await engine.dispose()


app = FastAPI(
    title="Workout Tracker API",
    description="Personal workout log: workouts, exercises and sets, browsed by day.",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(NotFound)
async def _not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# -----------------------------------------------------------------------------
# Global exception handler — log full traceback before answering 500
# -----------------------------------------------------------------------------
@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exc()
    log.error(f"Unhandled error on {request.method} {request.url.path}: {exc}\n{tb}")
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {type(exc).__name__}: {exc}"},
    )


# -----------------------------------------------------------------------------
# Rate limiting middleware
# -----------------------------------------------------------------------------
_rate_limit_store: Dict[str, List[float]] = defaultdict(list)
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "300"))
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW", "60"))


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    client_ip = request.client.host if request.client else "unknown"
    now = time.time()
    window_start = now - RATE_LIMIT_WINDOW
    _rate_limit_store[client_ip] = [
        t for t in _rate_limit_store[client_ip] if t > window_start
    ]
    if len(_rate_limit_store[client_ip]) >= RATE_LIMIT_REQUESTS:
        return Response(
            content='{"detail":"Rate limit exceeded. Try again later."}',
            status_code=429,
            media_type="application/json",
        )
    _rate_limit_store[client_ip].append(now)
    if len(_rate_limit_store) > 1000:
        stale = [ip for ip, ts in _rate_limit_store.items()
                 if not ts or ts[-1] < window_start]
        for ip in stale:
            del _rate_limit_store[ip]
    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(RATE_LIMIT_REQUESTS)
    response.headers["X-RateLimit-Remaining"] = str(
        RATE_LIMIT_REQUESTS - len(_rate_limit_store[client_ip])
    )
    return response


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
async def current_user(x_user_id: Optional[str] = Header(None)) -> str:
    """Account id forwarded by the identity provider."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(401, "Unauthorized")
    return x_user_id.strip()


def _db_type() -> str:
    """Return a safe description of the DB type (no credentials)."""
    return "PostgreSQL" if _database_url else "SQLite"


def _workout_to_out(w: Workout) -> WorkoutOut:
    return WorkoutOut(
        id=w.id,
        name=w.name,
        started_at=w.started_at,
        completed_at=w.completed_at,
        created_at=w.created_at,
    )


def _exercise_to_out(e: Exercise) -> ExerciseOut:
    return ExerciseOut(id=e.id, name=e.name, description=e.description, predefined=e.user_id is None)


def _link_to_out(we: WorkoutExercise) -> WorkoutExerciseLinkOut:
    return WorkoutExerciseLinkOut(
        id=we.id, workout_id=we.workout_id, exercise_id=we.exercise_id, order=we.order
    )


def _set_to_out(ws: WorkoutSet) -> SetOut:
    return SetOut(
        id=ws.id,
        workout_exercise_id=ws.workout_exercise_id,
        set_number=ws.set_number,
        weight=str(ws.weight) if ws.weight is not None else None,
        reps=ws.reps,
        duration_seconds=ws.duration_seconds,
    )


def _duration(started_at: datetime, completed_at: Optional[datetime]) -> Optional[str]:
    if not completed_at:
        return None
    minutes = math.floor((completed_at - started_at).total_seconds() / 60)
    return f"{minutes} min"


def _exercise_stats(ex: WorkoutExerciseOut) -> ExerciseStatsOut:
    total = len(ex.sets)
    avg_reps = math.floor(sum(s.reps or 0 for s in ex.sets) / total + 0.5) if total else 0
    weights = [float(s.weight) for s in ex.sets if s.weight is not None]
    best = max(weights) if weights else None
    return ExerciseStatsOut(
        name=ex.name,
        total_sets=total,
        avg_reps=avg_reps,
        max_weight=best if best and best > 0 else None,
    )


def _workout_card(w: WorkoutWithExercisesOut) -> WorkoutCardOut:
    status = f"Completed at {format_time_12h(w.completed_at)}" if w.completed_at else "In progress"
    return WorkoutCardOut(
        id=w.id,
        title=w.name or "Untitled Workout",
        started_at=w.started_at,
        completed_at=w.completed_at,
        duration=_duration(w.started_at, w.completed_at),
        status=status,
        exercises=[_exercise_stats(e) for e in w.exercises],
    )


# -----------------------------------------------------------------------------
# Data access (always scoped to one account)
# -----------------------------------------------------------------------------
async def get_workouts_for_date(
    session: AsyncSession, user_id: str, day
) -> List[WorkoutWithExercisesOut]:
    """The account's workouts started on day's local date, newest first, nested."""
    start, end = day_bounds(day)
    stmt = (
        select(Workout, WorkoutExercise, Exercise, WorkoutSet)
        .select_from(Workout)
        .outerjoin(WorkoutExercise, WorkoutExercise.workout_id == Workout.id)
        .outerjoin(Exercise, Exercise.id == WorkoutExercise.exercise_id)
        .outerjoin(WorkoutSet, WorkoutSet.workout_exercise_id == WorkoutExercise.id)
        .where(
            Workout.user_id == user_id,
            Workout.started_at >= start,
            Workout.started_at < end,
        )
        .order_by(desc(Workout.started_at))
    )
    result = await session.execute(stmt)
    return aggregate_workouts(result.all())


async def get_all_workouts(session: AsyncSession, user_id: str) -> List[Workout]:
    result = await session.execute(
        select(Workout)
        .where(Workout.user_id == user_id)
        .order_by(desc(Workout.started_at), desc(Workout.id))
    )
    return list(result.scalars().all())


async def get_workout(session: AsyncSession, user_id: str, workout_id: int) -> Optional[Workout]:
    result = await session.execute(
        select(Workout)
        .where(Workout.id == workout_id, Workout.user_id == user_id)
        .limit(1)
    )
    return result.scalar()


async def create_workout(
    session: AsyncSession,
    user_id: str,
    name: Optional[str] = None,
    started_at: Optional[datetime] = None,
) -> Workout:
    obj = Workout(user_id=user_id, name=name or None, started_at=started_at or datetime.now())
    session.add(obj)
    await session.commit()
    return obj


async def update_workout(
    session: AsyncSession, user_id: str, workout_id: int, data: Dict
) -> Workout:
    w = await get_workout(session, user_id, workout_id)
    if w is None:
        raise WorkoutNotFound()
    for k, v in data.items():
        setattr(w, k, v)
    if w.completed_at is not None and w.completed_at < w.started_at:
        await session.rollback()
        raise HTTPException(422, "completed_at cannot be before started_at")
    await session.commit()
    await session.refresh(w)
    return w


async def add_exercise_to_workout(
    session: AsyncSession,
    user_id: str,
    workout_id: int,
    exercise_id: int,
    order: Optional[int] = None,
) -> WorkoutExercise:
    if await get_workout(session, user_id, workout_id) is None:
        raise WorkoutNotFound()
    exercise = await session.get(Exercise, exercise_id)
    if exercise is None or exercise.user_id not in (None, user_id):
        raise ExerciseNotFound()
    if order is None:
        current = await session.scalar(
            select(func.max(WorkoutExercise.order)).where(WorkoutExercise.workout_id == workout_id)
        )
        order = 0 if current is None else current + 1
    obj = WorkoutExercise(workout_id=workout_id, exercise_id=exercise_id, order=order)
    session.add(obj)
    await session.commit()
    return obj


async def add_set(
    session: AsyncSession, user_id: str, workout_exercise_id: int, body: SetIn
) -> WorkoutSet:
    link = await session.scalar(
        select(WorkoutExercise)
        .join(Workout, Workout.id == WorkoutExercise.workout_id)
        .where(WorkoutExercise.id == workout_exercise_id, Workout.user_id == user_id)
    )
    if link is None:
        raise WorkoutExerciseNotFound()
    set_number = body.set_number
    if set_number is None:
        current = await session.scalar(
            select(func.max(WorkoutSet.set_number))
            .where(WorkoutSet.workout_exercise_id == workout_exercise_id)
        )
        set_number = 1 if current is None else current + 1
    obj = WorkoutSet(
        workout_exercise_id=workout_exercise_id,
        set_number=set_number,
        weight=body.weight,
        reps=body.reps,
        duration_seconds=body.duration_seconds,
    )
    session.add(obj)
    await session.commit()
    await session.refresh(obj)  # weight as stored, NUMERIC(10,2)
    return obj


# =============================================================================
# ENDPOINTS — Health / Root
# =============================================================================
@app.get("/health", response_model=HealthOut)
async def health() -> HealthOut:
    db_connected = False
    try:
        async with async_session() as s:
            await s.execute(text("SELECT 1"))
            db_connected = True
    except Exception as e:
        log.error(f"Health check DB query failed: {e}")
    return HealthOut(
        ok=db_connected,
        db_connected=db_connected,
        db_type=_db_type(),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/", response_model=GenericResponse)
async def root() -> GenericResponse:
    return GenericResponse(message="Workout Tracker API v1 is running")


# =============================================================================
# ENDPOINTS — Exercises
# =============================================================================
@app.get("/exercises", response_model=List[ExerciseOut])
async def list_exercises(user_id: str = Depends(current_user)) -> List[ExerciseOut]:
    async with async_session() as s:
        result = await s.execute(
            select(Exercise)
            .where(or_(Exercise.user_id.is_(None), Exercise.user_id == user_id))
            .order_by(asc(Exercise.name), asc(Exercise.id))
        )
        rows = result.scalars().all()
    return [_exercise_to_out(e) for e in rows]


@app.post("/exercises", response_model=ExerciseOut)
async def add_exercise(body: ExerciseIn, user_id: str = Depends(current_user)) -> ExerciseOut:
    async with async_session() as s:
        obj = Exercise(user_id=user_id, name=body.name, description=body.description)
        s.add(obj)
        try:
            await s.commit()
        except IntegrityError:
            await s.rollback()
            raise HTTPException(409, f"Exercise '{body.name}' already exists")
    log.info(f"Created exercise {obj.id} for {user_id}")
    return _exercise_to_out(obj)


# =============================================================================
# ENDPOINTS — Workouts
# =============================================================================
@app.get("/workouts", response_model=List[WorkoutOut])
async def list_workouts(user_id: str = Depends(current_user)) -> List[WorkoutOut]:
    async with async_session() as s:
        rows = await get_all_workouts(s, user_id)
    return [_workout_to_out(w) for w in rows]


@app.post("/workouts", response_model=WorkoutOut)
async def add_workout(body: WorkoutIn, user_id: str = Depends(current_user)) -> WorkoutOut:
    async with async_session() as s:
        w = await create_workout(s, user_id, name=body.name, started_at=body.started_at)
    log.info(f"Created workout {w.id} for {user_id}")
    return _workout_to_out(w)


# IMPORTANT: static paths before /workouts/{workout_id}
@app.get("/workouts/by_date", response_model=List[WorkoutWithExercisesOut])
async def workouts_by_date(
    date: str = Query(..., description="YYYY-MM-DD"),
    user_id: str = Depends(current_user),
) -> List[WorkoutWithExercisesOut]:
    try:
        _validate_date_str(date)
    except ValueError as e:
        raise HTTPException(422, str(e))
    async with async_session() as s:
        return await get_workouts_for_date(s, user_id, datetime.strptime(date, "%Y-%m-%d"))


@app.get("/workouts/{workout_id}", response_model=WorkoutOut)
async def read_workout(
    workout_id: int = FPath(..., ge=1), user_id: str = Depends(current_user)
) -> WorkoutOut:
    async with async_session() as s:
        w = await get_workout(s, user_id, workout_id)
    if w is None:
        raise WorkoutNotFound()
    return _workout_to_out(w)


@app.put("/workouts/{workout_id}", response_model=WorkoutOut)
async def edit_workout(
    body: WorkoutUpdateIn,
    workout_id: int = FPath(..., ge=1),
    user_id: str = Depends(current_user),
) -> WorkoutOut:
    data = body.model_dump(exclude_unset=True)
    if "started_at" in data and data["started_at"] is None:
        del data["started_at"]  # NOT NULL column
    async with async_session() as s:
        w = await update_workout(s, user_id, workout_id, data)
    return _workout_to_out(w)


@app.post("/workouts/{workout_id}/exercises", response_model=WorkoutExerciseLinkOut)
async def add_workout_exercise(
    body: WorkoutExerciseIn,
    workout_id: int = FPath(..., ge=1),
    user_id: str = Depends(current_user),
) -> WorkoutExerciseLinkOut:
    async with async_session() as s:
        we = await add_exercise_to_workout(s, user_id, workout_id, body.exercise_id, body.order)
    return _link_to_out(we)


@app.post("/workout_exercises/{workout_exercise_id}/sets", response_model=SetOut)
async def add_workout_set(
    body: SetIn,
    workout_exercise_id: int = FPath(..., ge=1),
    user_id: str = Depends(current_user),
) -> SetOut:
    async with async_session() as s:
        ws = await add_set(s, user_id, workout_exercise_id, body)
    return _set_to_out(ws)


# =============================================================================
# ENDPOINTS — Dashboard
# =============================================================================
@app.get("/dashboard", response_model=DashboardOut)
async def dashboard(
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    user_id: str = Depends(current_user),
) -> DashboardOut:
    day = parse_date_param(date)
    async with async_session() as s:
        workouts = await get_workouts_for_date(s, user_id, day)
    return DashboardOut(
        date=day.strftime("%Y-%m-%d"),
        date_label=format_date_with_ordinal(day),
        workouts=[_workout_card(w) for w in workouts],
    )
