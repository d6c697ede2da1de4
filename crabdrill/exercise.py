"""Exercises: loading the list, compiling, running and checking their state."""

from __future__ import annotations

import enum
import os
import re
import subprocess
import threading
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from crabdrill import ui

RUSTC_COLOR_ARGS = ["--color", "always"]
RUSTC_EDITION_ARGS = ["--edition", "2021"]
I_AM_DONE_REGEX = re.compile(r"(?m)^\s*///?\s*I\s+AM\s+NOT\s+DONE")
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = "./exercises/clippy/Cargo.toml"
BUILD_SCRIPT_CARGO_TOML_PATH = "./exercises/tests/Cargo.toml"


def temp_file() -> str:
    """Return a temporary file name unique to this process and thread."""
    thread_id = f"ThreadId{threading.get_ident()}"
    return f"./temp_{os.getpid()}_{thread_id}"


def clean() -> None:
    """Remove the temporary binary, ignoring any error."""
    try:
        os.remove(temp_file())
    except OSError:
        pass


class Mode(enum.Enum):
    """How an exercise is checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """A source line shown around the pending marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class State:
    """Done when context is None, pending otherwise."""

    context: tuple[ContextLine, ...] | None = None

    def __post_init__(self) -> None:
        if self.context is not None:
            object.__setattr__(self, "context", tuple(self.context))

    def is_done(self) -> bool:
        return self.context is None


@dataclass(frozen=True)
class ExerciseOutput:
    """Captured output of a compiler or a compiled binary."""

    stdout: str
    stderr: str


class ExerciseFailed(Exception):
    """Compiling or running an exercise failed."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__(output.stderr or output.stdout)
        self.output = output


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


def _output_of(result: subprocess.CompletedProcess) -> ExerciseOutput:
    return ExerciseOutput(stdout=_decode(result.stdout), stderr=_decode(result.stderr))


def _execute(args: list[str], failure: str) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(args, capture_output=True)
    except OSError as exc:
        raise RuntimeError(failure) from exc


def _lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class CompiledExercise:
    """A successfully compiled exercise; closing it removes the binary."""

    def __init__(self, exercise: Exercise) -> None:
        self.exercise = exercise
        self._closed = False

    def run(self) -> ExerciseOutput:
        """Run the compiled binary; raise ExerciseFailed if it fails."""
        return self.exercise._run()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            clean()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _cargo_toml(name: str) -> str:
    return (
        "[package]\n"
        f'name = "{name}"\n'
        'version = "0.0.1"\n'
        'edition = "2021"\n'
        "[[bin]]\n"
        f'name = "{name}"\n'
        f'path = "{name}.rs"'
    )


@dataclass(frozen=True)
class Exercise:
    """One exercise as described in info.toml."""

    name: str
    path: Path
    mode: Mode
    hint: str = field(default="")

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        object.__setattr__(self, "mode", Mode(self.mode))

    def _write_cargo_toml(self, target: str) -> None:
        message = (
            "Failed to write Clippy Cargo.toml file."
            if ui.no_emoji()
            else "Failed to write 📎 Clippy 📎 Cargo.toml file."
        )
        try:
            Path(target).write_text(_cargo_toml(self.name), encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(message) from exc

    def compile(self) -> CompiledExercise:
        """Compile the exercise; raise ExerciseFailed with the compiler output."""
        source = str(self.path)
        failure = "Failed to run 'compile' command."
        if self.mode is Mode.COMPILE:
            result = _execute(
                ["rustc", source, "-o", temp_file(), *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                failure,
            )
        elif self.mode is Mode.TEST:
            result = _execute(
                ["rustc", "--test", source, "-o", temp_file(),
                 *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                failure,
            )
        elif self.mode is Mode.CLIPPY:
            self._write_cargo_toml(CLIPPY_CARGO_TOML_PATH)
            # Build a binary too so clippy exercises can be run afterwards.
            _execute(
                ["rustc", source, "-o", temp_file(), *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                "Failed to compile!",
            )
            # A clean build is needed for clippy to report every lint.
            _execute(
                ["cargo", "clean", "--manifest-path", CLIPPY_CARGO_TOML_PATH, *RUSTC_COLOR_ARGS],
                "Failed to run 'cargo clean'",
            )
            result = _execute(
                ["cargo", "clippy", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                 *RUSTC_COLOR_ARGS, "--", "-D", "warnings", "-D", "clippy::float_cmp"],
                failure,
            )
        else:
            self._write_cargo_toml(BUILD_SCRIPT_CARGO_TOML_PATH)
            result = _execute(
                ["cargo", "test", "--manifest-path", BUILD_SCRIPT_CARGO_TOML_PATH],
                failure,
            )

        if result.returncode == 0:
            return CompiledExercise(self)
        clean()
        raise ExerciseFailed(_output_of(result))

    def _run(self) -> ExerciseOutput:
        if self.mode is Mode.BUILD_SCRIPT:
            return ExerciseOutput(stdout="", stderr="")
        arg = "--show-output" if self.mode is Mode.TEST else ""
        result = _execute([temp_file(), arg], "Failed to run 'run' command")
        output = _output_of(result)
        if result.returncode != 0:
            raise ExerciseFailed(output)
        return output

    def state(self) -> State:
        """Report whether the exercise still carries the pending marker."""
        source = self.path.read_text(encoding="utf-8")
        if not I_AM_DONE_REGEX.search(source):
            return State()

        lines = _lines(source)
        matched = next(
            (index for index, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)),
            None,
        )
        if matched is None:
            raise RuntimeError("This should not happen at all")

        first = max(matched - CONTEXT, 0)
        last = matched + CONTEXT
        context = [
            ContextLine(line=line, number=index + 1, important=index == matched)
            for index, line in enumerate(lines[first:last + 1], start=first)
        ]
        return State(context=context)

    def looks_done(self) -> bool:
        """True when the pending marker has been removed from the file."""
        return self.state().is_done()

    def __str__(self) -> str:
        return str(self.path)


_REQUIRED_FIELDS = ("name", "path", "mode", "hint")


def parse_exercises(text: str) -> list[Exercise]:
    """Parse the exercise list from info.toml text."""
    data = tomllib.loads(text)
    entries = data.get("exercises")
    if not isinstance(entries, list):
        raise ValueError("missing field `exercises`")
    exercises = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValueError("each exercise must be a table")
        for key in _REQUIRED_FIELDS:
            if key not in entry:
                raise ValueError(f"missing field `{key}`")
            if not isinstance(entry[key], str):
                raise ValueError(f"field `{key}` must be a string")
        try:
            mode = Mode(entry["mode"])
        except ValueError as exc:
            raise ValueError(f"unknown mode `{entry['mode']}`") from exc
        exercises.append(
            Exercise(name=entry["name"], path=Path(entry["path"]), mode=mode, hint=entry["hint"])
        )
    return exercises


def load_exercises(path: str | os.PathLike = "info.toml") -> list[Exercise]:
    """Read and parse an info.toml file."""
    return parse_exercises(Path(path).read_text(encoding="utf-8"))