"""Grading every exercise at once and recording the results as JSON."""

from __future__ import annotations

import json
import os
import threading
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from crabdrill.exercise import Exercise, ExerciseFailed
from crabdrill.run import run

DEFAULT_RESULT_PATH = ".github/result/check_result.json"


@dataclass
class ExerciseResult:
    """Whether one exercise passed."""

    name: str
    result: bool


@dataclass
class ExerciseStatistics:
    """Totals over a grading run."""

    total_exercations: int = 0
    total_succeeds: int = 0
    total_failures: int = 0
    total_time: int = 0


@dataclass
class ExerciseCheckList:
    """Per-exercise results and the totals of a grading run."""

    exercises: list[ExerciseResult] = field(default_factory=list)
    user_name: str | None = None
    statistics: ExerciseStatistics = field(default_factory=ExerciseStatistics)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def record(self, name: str, result: bool) -> None:
        """Add one exercise's result and update the totals."""
        with self._lock:
            self.exercises.append(ExerciseResult(name=name, result=result))
            if result:
                self.statistics.total_succeeds += 1
            else:
                self.statistics.total_failures += 1

    def to_dict(self) -> dict:
        stats = self.statistics
        return {
            "exercises": [
                {"name": entry.name, "result": entry.result} for entry in self.exercises
            ],
            "user_name": self.user_name,
            "statistics": {
                "total_exercations": stats.total_exercations,
                "total_succeeds": stats.total_succeeds,
                "total_failures": stats.total_failures,
                "total_time": stats.total_time,
            },
        }

    def to_json(self) -> str:
        """Serialise as indented JSON."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def _now() -> int:
    return int(time.time())


def cicv_verify(
    exercises: Iterable[Exercise],
    output_path: str | os.PathLike = DEFAULT_RESULT_PATH,
) -> ExerciseCheckList:
    """Run every exercise concurrently, then write the results to output_path."""
    exercises = list(exercises)
    total = len(exercises)
    started = _now()
    checklist = ExerciseCheckList(statistics=ExerciseStatistics(total_exercations=total))
    rights = 0
    rights_lock = threading.Lock()

    def check(exercise: Exercise, task_started: int) -> None:
        nonlocal rights
        try:
            run(exercise, True)
        except ExerciseFailed:
            print(f"{exercise.name}执行失败")
            print(f"总的题目数: {total}")
            with rights_lock:
                current = rights
            print(f"当前做正确的题目数: {current}")
            print(f"当前修改试卷耗时: {_now() - task_started} s")
            checklist.record(exercise.name, False)
        else:
            with rights_lock:
                rights += 1
                current = rights
            print(f"{exercise.name}执行成功")
            print(f"总的题目数: {total}")
            print(f"当前做正确的题目数: {current}")
            print(f"当前修改试卷耗时: {_now() - task_started} s")
            checklist.record(exercise.name, True)

    with ThreadPoolExecutor() as pool:
        futures = [pool.submit(check, exercise, _now()) for exercise in exercises]
        for future in futures:
            future.result()

    total_time = _now() - started
    print(
        "===============================试卷批改完成,总耗时: "
        f"{total_time} s; =================================="
    )
    checklist.statistics.total_time = total_time
    Path(output_path).write_text(checklist.to_json(), encoding="utf-8")
    return checklist