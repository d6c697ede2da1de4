"""Running a single exercise and resetting it with git."""

from __future__ import annotations

import subprocess
import sys

from crabdrill import ui
from crabdrill.exercise import Exercise, ExerciseFailed, Mode
from crabdrill.verify import test


def _stderr_is_tty() -> bool:
    isatty = getattr(sys.stderr, "isatty", None)
    return bool(isatty and isatty())


class _Status:
    """A one-line status message on stderr, shown only on a terminal."""

    def __init__(self, message: str) -> None:
        self._active = _stderr_is_tty()
        self.set(message)

    def set(self, message: str) -> None:
        if self._active:
            sys.stderr.write(f"\r\x1b[2K{message}")
            sys.stderr.flush()

    def clear(self) -> None:
        if self._active:
            sys.stderr.write("\r\x1b[2K")
            sys.stderr.flush()
            self._active = False


def run(exercise: Exercise, verbose: bool = False) -> None:
    """Compile and run one exercise; raise ExerciseFailed if it fails."""
    if exercise.mode in (Mode.TEST, Mode.BUILD_SCRIPT):
        test(exercise, verbose)
    else:
        compile_and_run(exercise)


def reset(exercise: Exercise) -> subprocess.Popen:
    """Stash the changes made to the exercise file; raise OSError if git cannot start."""
    return subprocess.Popen(["git", "stash", "--", str(exercise.path)])


def compile_and_run(exercise: Exercise) -> None:
    """Compile the exercise, run the binary and show its output."""
    status = _Status(f"Compiling {exercise}...")
    try:
        compiled = exercise.compile()
    except ExerciseFailed as failed:
        status.clear()
        ui.warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
        print(failed.output.stderr)
        raise

    with compiled:
        status.set(f"Running {exercise}...")
        try:
            output = compiled.run()
        except ExerciseFailed as failed:
            status.clear()
            print(failed.output.stdout)
            print(failed.output.stderr)
            ui.warn(f"Ran {exercise} with errors")
            raise
        status.clear()

    print(output.stdout)
    ui.success(f"Successfully ran {exercise}")