"""Command-line entry point: parse arguments and dispatch to the subcommands."""

from __future__ import annotations

import argparse
import subprocess
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TextIO

from crabdrill import ui
from crabdrill.checklist import cicv_verify
from crabdrill.exercise import Exercise, ExerciseFailed, load_exercises
from crabdrill.project import RustAnalyzerProject
from crabdrill.run import reset, run
from crabdrill.verify import VerificationFailed, verify
from crabdrill.watch import WatchStatus, watch

VERSION = "5.5.1"
INFO_FILE = "info.toml"

WELCOME = """       welcome to...
   ___ ___  __ _| |__   __| |_ __(_) | |
  / __/ __|/ _` | '_ \\ / _` | '__| | | |
 | (__| | | (_| | |_) | (_| | |  | | | |
  \\___|_|  \\__,_|_.__/ \\__,_|_|  |_|_|_|"""

DEFAULT_OUT = """Thanks for installing crabdrill!

Is this your first time? Don't worry, these exercises were made for beginners!
You are going to learn a lot of things about Rust, but before you get
started, here are a couple of notes about how crabdrill operates:

1. The central concept is that you solve exercises. These exercises usually
   have some sort of syntax error in them, which will cause them to fail
   compilation or testing. Sometimes there's a logic error instead of a syntax
   error. No matter what error, it's your job to find it and fix it!
   You'll know when you fixed it because then, the exercise will compile and
   crabdrill will be able to move on to the next exercise.
2. If you run crabdrill in watch mode (which we recommend), it'll automatically
   start with the first exercise. Don't get confused by an error message popping
   up as soon as you start! This is part of the exercise that you're supposed
   to solve, so open the exercise file in an editor and start your detective
   work!
3. If you're stuck on an exercise, there is a helpful hint you can view by typing
   'hint' (in watch mode), or running `crabdrill hint exercise_name`.
4. If an exercise doesn't make sense to you, feel free to open an issue on the
   project's issue tracker. Every issue is read, and sometimes other learners
   answer too, so you can help each other out!
5. If you want to use `rust-analyzer` with exercises, which provides features like
   autocompletion, run the command `crabdrill lsp`.

Got all that? Great! To get started, run `crabdrill watch` in order to get the first
exercise. Make sure to have your editor open!"""

FINISH_LINE = """+----------------------------------------------------+
|          You made it to the finish line!           |
+----------------------------------------------------+

We hope you enjoyed learning about the various aspects of Rust!
If you noticed any issues, please don't hesitate to report them.
You can also contribute your own exercises to help the greater community!"""


class _NoExercise(LookupError):
    """No exercise matches the requested name."""


class _Parser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str):
        prefix = "the following arguments are required:"
        if message.startswith(prefix):
            missing = message[len(prefix):].strip()
            message = f"Required positional arguments not provided:\n    {missing}"
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the parser for the command line."""
    parser = _Parser(
        prog="crabdrill",
        description="A collection of small exercises to get you used to "
        "writing and reading Rust code",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--nocapture", action="store_true", help="show outputs from the test exercises"
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="show the executable version"
    )
    commands = parser.add_subparsers(dest="command", metavar="<command>")

    commands.add_parser(
        "verify", help="Verifies all exercises according to the recommended order",
        allow_abbrev=False,
    )
    watch_parser = commands.add_parser(
        "watch", help="Reruns `verify` when files were edited", allow_abbrev=False
    )
    watch_parser.add_argument(
        "--success-hints", action="store_true", help="show hints on success"
    )
    for name, text in (
        ("run", "Runs/Tests a single exercise"),
        ("reset", 'Resets a single exercise using "git stash -- <filename>"'),
        ("hint", "Returns a hint for the given exercise"),
    ):
        sub = commands.add_parser(name, help=text, allow_abbrev=False)
        sub.add_argument("name", help="the name of the exercise")

    list_parser = commands.add_parser(
        "list", help="Lists the exercises available", allow_abbrev=False
    )
    list_parser.add_argument(
        "-p", "--paths", action="store_true", help="show only the paths of the exercises"
    )
    list_parser.add_argument(
        "-n", "--names", action="store_true", help="show only the names of the exercises"
    )
    list_parser.add_argument(
        "-f", "--filter", default=None,
        help="provide a string to match exercise names; comma separated patterns "
        "are acceptable",
    )
    list_parser.add_argument(
        "-u", "--unsolved", action="store_true", help="display only exercises not yet solved"
    )
    list_parser.add_argument(
        "-s", "--solved", action="store_true",
        help="display only exercises that have been solved",
    )
    commands.add_parser(
        "lsp", help="Enable rust-analyzer for exercises", allow_abbrev=False
    )
    commands.add_parser("cicvverify", help="cicvverify", allow_abbrev=False)
    return parser


def find_exercise(name: str, exercises: Iterable[Exercise]) -> Exercise:
    """Find an exercise by name, or the first unfinished one for "next"."""
    exercises = list(exercises)
    if name == "next":
        found = next((e for e in exercises if not e.looks_done()), None)
        if found is None:
            raise _NoExercise(
                "🎉 Congratulations! You have done all the exercises!\n"
                "🔚 There are no more exercises to do next!"
            )
        return found
    found = next((e for e in exercises if e.name == name), None)
    if found is None:
        raise _NoExercise(f"No exercise found for '{name}'!")
    return found


def list_exercises(
    exercises: Iterable[Exercise],
    paths: bool = False,
    names: bool = False,
    filter_text: str | None = None,
    unsolved: bool = False,
    solved: bool = False,
    out: TextIO | None = None,
) -> int:
    """Write the exercise table and progress line; return the number done."""
    if out is None:
        out = sys.stdout
    exercises = list(exercises)
    if not paths and not names:
        out.write(f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}\n")

    filters = [f for f in (filter_text or "").lower().split(",") if f.strip()]
    done_count = 0
    for exercise in exercises:
        fname = str(exercise.path)
        matches = any(f in exercise.name or f in fname for f in filters)
        done = exercise.looks_done()
        if done:
            done_count += 1
        status = "Done" if done else "Pending"
        wanted = (done and solved) or (not done and unsolved) or (not solved and not unsolved)
        if wanted and (matches or filter_text is None):
            if paths:
                line = f"{fname}\n"
            elif names:
                line = f"{exercise.name}\n"
            else:
                line = f"{exercise.name:<17}\t{fname:<46}\t{status:<7}\n"
            out.write(line)

    total = len(exercises)
    percentage = f"{done_count / total * 100.0:.1f}" if total else "NaN"
    out.write(
        f"Progress: You completed {done_count} / {total} exercises ({percentage} %).\n"
    )
    return done_count


def rustc_exists() -> bool:
    """Return True when `rustc --version` runs successfully."""
    try:
        result = subprocess.run(["rustc", "--version"], stdout=subprocess.DEVNULL)
    except OSError:
        return False
    return result.returncode == 0


def _lsp() -> None:
    project = RustAnalyzerProject()
    try:
        project.get_sysroot_src()
    except OSError as exc:
        raise RuntimeError(
            "Couldn't find toolchain path, do you have `rustc` installed?"
        ) from exc
    project.exercises_to_json()

    if not project.crates:
        print("Failed find any exercises, make sure you're in the exercises folder")
        return
    try:
        project.write_to_disk()
    except OSError:
        print("Failed to write rust-project.json to disk for rust-analyzer")
    else:
        print("Successfully generated rust-project.json")
        print(
            "rust-analyzer will now parse exercises, restart your language server or editor"
        )


def _watch(exercises: list[Exercise], verbose: bool, success_hints: bool) -> int:
    try:
        status = watch(exercises, verbose, success_hints)
    except OSError as exc:
        print(f"Error: Could not watch your progress. Error message was {exc!r}.")
        print(
            "Most likely you've run out of disk space or your 'inotify limit' "
            "has been reached."
        )
        return 1
    if status is WatchStatus.FINISHED:
        emoji = "★" if ui.no_emoji() else "🎉"
        print(f"{emoji} All exercises completed! {emoji}")
        print(f"\n{FINISH_LINE}\n")
    else:
        print("We hope you're enjoying learning about Rust!")
        print(
            "If you want to continue working on the exercises at a later point, "
            "you can simply run `crabdrill watch` again"
        )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the exit status."""
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"v{VERSION}")
        return 0

    if args.command is None:
        print(f"\n{WELCOME}\n")

    if not Path(INFO_FILE).exists():
        print(f"{sys.argv[0]} must be run from the directory that holds {INFO_FILE}")
        print(f"Try `cd` into the directory that holds {INFO_FILE}!")
        return 1

    if not rustc_exists():
        print("We cannot find `rustc`.")
        print("Try running `rustc --version` to diagnose your problem.")
        print("For instructions on how to install Rust, check the README.")
        return 1

    exercises = load_exercises(INFO_FILE)
    verbose = args.nocapture

    if args.command is None:
        print(f"{DEFAULT_OUT}\n")
        return 0

    try:
        if args.command == "list":
            try:
                list_exercises(
                    exercises, args.paths, args.names, args.filter,
                    args.unsolved, args.solved, sys.stdout,
                )
                sys.stdout.flush()
            except BrokenPipeError:
                return 0
            except OSError:
                return 1
            return 0

        if args.command == "run":
            try:
                run(find_exercise(args.name, exercises), verbose)
            except ExerciseFailed:
                return 1
        elif args.command == "reset":
            try:
                reset(find_exercise(args.name, exercises))
            except OSError:
                return 1
        elif args.command == "hint":
            print(find_exercise(args.name, exercises).hint)
        elif args.command == "verify":
            try:
                verify(exercises, (0, len(exercises)), verbose, False)
            except VerificationFailed:
                return 1
        elif args.command == "cicvverify":
            cicv_verify(exercises)
        elif args.command == "lsp":
            _lsp()
        elif args.command == "watch":
            return _watch(exercises, verbose, args.success_hints)
    except _NoExercise as missing:
        print(missing)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())