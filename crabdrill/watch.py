"""Watch mode: re-verify exercises whenever a file under ./exercises changes."""

from __future__ import annotations

import enum
import itertools
import os
import queue
import subprocess
import sys
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TextIO

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from crabdrill.exercise import Exercise
from crabdrill.verify import VerificationFailed, verify

EXERCISES_DIR = "./exercises"
_POLL_SECONDS = 1.0
_DEBOUNCE_SECONDS = 0.5

_HELP = "\n".join(
    [
        "Commands available to you in watch mode:",
        "  hint   - prints the current exercise's hint",
        "  clear  - clears the screen",
        "  quit   - quits watch mode",
        "  !<cmd> - executes a command, like `!rustc --explain E0381`",
        "  help   - displays this help message",
        "",
        "Watch mode automatically re-evaluates the current exercise",
        "when you edit a file's contents.",
    ]
)


class WatchStatus(enum.Enum):
    """How watch mode ended."""

    FINISHED = enum.auto()
    UNFINISHED = enum.auto()


class WatchShell:
    """The small command interpreter that runs alongside watch mode."""

    def __init__(self, hint: str | None = None) -> None:
        self.hint = hint
        self.quit_requested = threading.Event()

    def handle(self, line: str) -> None:
        """Carry out one command line."""
        command = line.strip()
        if command == "hint":
            if self.hint is not None:
                print(self.hint)
        elif command == "clear":
            print("\x1b[2J\x1b[1;1H")
        elif command == "quit":
            self.quit_requested.set()
            print("Bye!")
        elif command == "help":
            print(_HELP)
        elif command.startswith("!"):
            cmd = command[1:]
            parts = cmd.split()
            if not parts:
                print("no command provided")
            else:
                try:
                    subprocess.run(parts)
                except OSError as exc:
                    print(f"failed to execute command `{cmd}`: {exc}")
        else:
            print(f"unknown command: {command}")

    def serve(self, stream: TextIO | None = None) -> None:
        """Read and handle commands until end of input or quit."""
        if stream is None:
            stream = sys.stdin
        while not self.quit_requested.is_set():
            try:
                line = stream.readline()
            except (OSError, ValueError) as exc:
                print(f"error reading command: {exc}")
                return
            if not line:
                return
            self.handle(line)


def _ends_with(filepath: Path, suffix: Path) -> bool:
    parts = suffix.parts
    return bool(parts) and filepath.parts[-len(parts):] == parts


def pending_after_change(
    exercises: Iterable[Exercise], changed_path: str | os.PathLike
) -> Iterator[Exercise]:
    """Yield the changed exercise first, then every other unfinished one."""
    exercises = list(exercises)
    filepath = Path(changed_path)
    changed = next((e for e in exercises if _ends_with(filepath, e.path)), None)
    others = (
        e for e in exercises if not _ends_with(filepath, e.path) and not e.looks_done()
    )
    head = [changed] if changed is not None else []
    return itertools.chain(head, others)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, changes: queue.Queue) -> None:
        super().__init__()
        self._changes = changes

    def _push(self, event) -> None:
        if not event.is_directory:
            self._changes.put(os.fsdecode(event.src_path))

    def on_created(self, event) -> None:
        self._push(event)

    def on_modified(self, event) -> None:
        self._push(event)


def _clear_screen() -> None:
    print("\x1bc")


def _collect(changes: queue.Queue, first: str) -> list[str]:
    """Gather a burst of change events into distinct paths, in order."""
    paths = {first: None}
    while True:
        try:
            paths[changes.get(timeout=_DEBOUNCE_SECONDS)] = None
        except queue.Empty:
            return list(paths)


def _is_rust_file(path: str) -> bool:
    candidate = Path(path)
    return candidate.suffix == ".rs" and candidate.exists()


def watch(
    exercises: Iterable[Exercise], verbose: bool = False, success_hints: bool = False
) -> WatchStatus:
    """Verify the exercises, then re-verify on every edit until done or quit."""
    exercises = list(exercises)
    changes: queue.Queue = queue.Queue()
    observer = Observer()
    observer.schedule(_ChangeHandler(changes), EXERCISES_DIR, recursive=True)
    observer.start()
    try:
        _clear_screen()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
        except VerificationFailed as failed:
            shell = WatchShell(failed.exercise.hint)
        else:
            return WatchStatus.FINISHED

        print(
            "Welcome to watch mode! You can type 'help' to get an overview "
            "of the commands you can use here."
        )
        threading.Thread(target=shell.serve, args=(sys.stdin,), daemon=True).start()

        while True:
            try:
                first = changes.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                pass
            else:
                for changed in _collect(changes, first):
                    if not _is_rust_file(changed):
                        continue
                    filepath = Path(changed).resolve()
                    num_done = sum(1 for e in exercises if e.looks_done())
                    _clear_screen()
                    try:
                        verify(
                            pending_after_change(exercises, filepath),
                            (num_done, len(exercises)),
                            verbose,
                            success_hints,
                        )
                    except VerificationFailed as failed:
                        shell.hint = failed.exercise.hint
                    else:
                        return WatchStatus.FINISHED
            if shell.quit_requested.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()