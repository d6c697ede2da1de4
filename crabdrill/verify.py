"""Verifying exercises in order, with a progress bar and completion prompts."""

from __future__ import annotations

import enum
import math
import sys
from collections.abc import Iterable

from crabdrill import ui
from crabdrill.exercise import CompiledExercise, Exercise, ExerciseFailed, Mode

_BAR_WIDTH = 60


class RunMode(enum.Enum):
    """Whether a successful test run asks the user to remove the marker."""

    INTERACTIVE = enum.auto()
    NON_INTERACTIVE = enum.auto()


class VerificationFailed(Exception):
    """An exercise did not pass verification."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"verification of {exercise} failed")
        self.exercise = exercise


def _stderr_is_tty() -> bool:
    isatty = getattr(sys.stderr, "isatty", None)
    return bool(isatty and isatty())


class _Spinner:
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


class _ProgressBar:
    """The overall progress line drawn on stderr when it is a terminal."""

    def __init__(self, total: int, position: int) -> None:
        self.total = total
        self.position = position
        self.message = ""
        self._active = _stderr_is_tty()

    def render(self) -> str:
        if self.total:
            filled = min(self.position * _BAR_WIDTH // self.total, _BAR_WIDTH)
        else:
            filled = _BAR_WIDTH
        done = "#" * filled
        if filled < _BAR_WIDTH:
            rest = ">" + "-" * (_BAR_WIDTH - filled - 1)
        else:
            rest = ""
        bar = ui.green(done) + ui.red(rest)
        return f"Progress: [{bar}] {self.position}/{self.total} {self.message}"

    def update(self, position: int, message: str) -> None:
        self.position = position
        self.message = message
        if self._active:
            sys.stderr.write(f"\r\x1b[2K{self.render()}")
            sys.stderr.flush()

    def finish(self) -> None:
        if self._active:
            sys.stderr.write("\n")
            sys.stderr.flush()


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool = False,
    success_hints: bool = False,
) -> None:
    """Check each exercise in turn; raise VerificationFailed at the first failure."""
    num_done, total = progress
    percentage = num_done / total * 100.0 if total else math.nan
    step = 100.0 / total if total else math.nan
    bar = _ProgressBar(total, num_done)
    bar.update(num_done, f"({percentage:.1f} %)")
    try:
        for exercise in exercises:
            if not _check(exercise, verbose, success_hints):
                raise VerificationFailed(exercise)
            percentage += step
            bar.update(bar.position + 1, f"({percentage:.1f} %)")
    finally:
        bar.finish()


def _check(exercise: Exercise, verbose: bool, success_hints: bool) -> bool:
    try:
        if exercise.mode in (Mode.TEST, Mode.BUILD_SCRIPT):
            return compile_and_test(exercise, RunMode.INTERACTIVE, verbose, success_hints)
        if exercise.mode is Mode.COMPILE:
            return _compile_and_run_interactively(exercise, success_hints)
        return _compile_only(exercise, success_hints)
    except ExerciseFailed:
        return False


def test(exercise: Exercise, verbose: bool = False) -> None:
    """Compile and run the exercise's test harness; raise ExerciseFailed on failure."""
    compile_and_test(exercise, RunMode.NON_INTERACTIVE, verbose, False)


def _compile(exercise: Exercise, spinner: _Spinner) -> CompiledExercise:
    try:
        return exercise.compile()
    except ExerciseFailed as failed:
        spinner.clear()
        ui.warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(failed.output.stderr)
        raise


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    spinner = _Spinner(f"Compiling {exercise}...")
    _compile(exercise, spinner).close()
    spinner.clear()
    return prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    spinner = _Spinner(f"Compiling {exercise}...")
    with _compile(exercise, spinner) as compiled:
        spinner.set(f"Running {exercise}...")
        try:
            output = compiled.run()
        except ExerciseFailed as failed:
            spinner.clear()
            ui.warn(f"Ran {exercise} with errors")
            print(failed.output.stdout)
            print(failed.output.stderr)
            raise
        spinner.clear()
        return prompt_for_completion(exercise, output.stdout, success_hints)


def compile_and_test(
    exercise: Exercise,
    run_mode: RunMode,
    verbose: bool = False,
    success_hints: bool = False,
) -> bool:
    """Compile and run a test harness, printing its output when verbose.

    Returns whether the exercise counts as complete; raises ExerciseFailed
    when compiling or testing fails.
    """
    spinner = _Spinner(f"Testing {exercise}...")
    with _compile(exercise, spinner) as compiled:
        try:
            output = compiled.run()
        except ExerciseFailed as failed:
            spinner.clear()
            ui.warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
            print(failed.output.stdout)
            raise
        spinner.clear()
        if verbose:
            print(output.stdout)
        if run_mode is RunMode.INTERACTIVE:
            return prompt_for_completion(exercise, None, success_hints)
        return True


_SUCCESS_LINES = {
    Mode.COMPILE: "Successfully ran {}!",
    Mode.TEST: "Successfully tested {}!",
    Mode.CLIPPY: "Successfully compiled {}!",
    Mode.BUILD_SCRIPT: "Successfully compiled {}!",
}


def _success_message(mode: Mode, no_emoji: bool) -> str:
    if mode is Mode.COMPILE:
        return "The code is compiling!"
    if mode is Mode.TEST:
        return "The code is compiling, and the tests pass!"
    if mode is Mode.CLIPPY:
        if no_emoji:
            return "The code is compiling, and Clippy is happy!"
        return "The code is compiling, and 📎 Clippy 📎 is happy!"
    return "Build script works!"


def prompt_for_completion(
    exercise: Exercise,
    prompt_output: str | None,
    success_hints: bool,
) -> bool:
    """Return True when the exercise is done; otherwise show where the marker is."""
    state = exercise.state()
    if state.is_done():
        return True

    ui.success(_SUCCESS_LINES[exercise.mode].format(exercise))

    no_emoji = ui.no_emoji()
    success_msg = _success_message(exercise.mode, no_emoji)
    print()
    if no_emoji:
        print(f"~*~ {success_msg} ~*~")
    else:
        print(f"🎉 🎉  {success_msg} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        print(separator())
        print(prompt_output)
        print(separator())
        print()
    if success_hints:
        print("Hints:")
        print(separator())
        print(exercise.hint)
        print(separator())
        print()

    print("You can keep working on this exercise,")
    print(f"or jump into the next one by removing the {ui.bold('`I AM NOT DONE`')} comment:")
    print()
    for context_line in state.context or ():
        line = ui.bold(context_line.line) if context_line.important else context_line.line
        number = ui.bold(ui.blue(f"{context_line.number:>2}"))
        print(f"{number} {ui.blue('|')}  {line}")

    return False


def separator() -> str:
    """The bold rule printed around outputs and hints."""
    return ui.bold("=" * 20)