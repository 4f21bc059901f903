# workout_data.py
# =============================================================================
# Folds the flat workout ⟕ workout_exercise ⟕ exercise ⟕ set join into
# workouts -> exercises -> sets. Pure: no session, no I/O.
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from pydantic import BaseModel, Field

log = logging.getLogger("workout-tracker.data")


class JoinedRow(NamedTuple):
    """One row of the left join. Any member after workout may be None."""
    workout: Any
    workout_exercise: Any = None
    exercise: Any = None
    workout_set: Any = None


class WorkoutSetOut(BaseModel):
    set_number: int
    weight: Optional[str] = None  # text, keeps NUMERIC precision
    reps: Optional[int] = None
    duration_seconds: Optional[int] = None


class WorkoutExerciseOut(BaseModel):
    name: str
    sets: List[WorkoutSetOut] = Field(default_factory=list)


class WorkoutWithExercisesOut(BaseModel):
    id: int
    name: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    exercises: List[WorkoutExerciseOut] = Field(default_factory=list)


def _weight_text(weight) -> Optional[str]:
    return None if weight is None else str(weight)


def aggregate_workouts(rows: Iterable) -> List[WorkoutWithExercisesOut]:
    """Nest joined rows into workouts with their exercises and sets.

    Workouts keep first-seen order. Exercises are deduplicated by exercise id
    (first row's name/order win) and sorted by order; sets are sorted by
    set_number. Both sorts are stable. Rows without a workout are skipped.
    """
    workouts: Dict[int, dict] = {}
    skipped = 0
    for row in rows:
        workout, workout_exercise, exercise, workout_set = JoinedRow(*row)
        if workout is None:
            skipped += 1
            continue

        entry = workouts.get(workout.id)
        if entry is None:
            entry = workouts[workout.id] = {
                "id": workout.id,
                "name": workout.name,
                "started_at": workout.started_at,
                "completed_at": workout.completed_at,
                "exercises": {},
            }

        if exercise is None or workout_exercise is None:
            continue
        ex = entry["exercises"].get(exercise.id)
        if ex is None:
            ex = entry["exercises"][exercise.id] = {
                "name": exercise.name,
                "order": workout_exercise.order,
                "sets": [],
            }
        if workout_set is not None:
            ex["sets"].append(WorkoutSetOut(
                set_number=workout_set.set_number,
                weight=_weight_text(workout_set.weight),
                reps=workout_set.reps,
                duration_seconds=workout_set.duration_seconds,
            ))

    if skipped:
        log.debug(f"Skipped {skipped} joined rows without a workout")

    result: List[WorkoutWithExercisesOut] = []
    for entry in workouts.values():
        exercises = sorted(entry["exercises"].values(), key=lambda e: e["order"])
        result.append(WorkoutWithExercisesOut(
            id=entry["id"],
            name=entry["name"],
            started_at=entry["started_at"],
            completed_at=entry["completed_at"],
            exercises=[
                WorkoutExerciseOut(
                    name=e["name"],
                    sets=sorted(e["sets"], key=lambda s: s.set_number),
                )
                for e in exercises
            ],
        ))
    return result
