# crabdrill

A runner for a collection of small Rust exercises. Each exercise is a source
file that does not compile yet, or whose tests fail. Fix it, let the runner
check it, and move on to the next one.

## Installation

```
pip install crabdrill
```

The runner calls `rustc`, and `cargo` for clippy and build-script exercises, so
these must be on your `PATH`. Every command except `--version` first checks
that `rustc --version` runs and exits with status 1 if it does not.

## The exercise list

Run the commands from the directory that holds `info.toml`. Without that file
the runner prints a message and exits with status 1. The file lists the
exercises in their set order:

```toml
[[exercises]]
name = "intro1"
path = "exercises/intro/intro1.rs"
mode = "compile"
hint = "Remove the marker comment to move on."
```

Every entry needs `name`, `path`, `mode` and `hint`. The mode is one of:

- `compile`: compiled with `rustc`, then the binary is run
- `test`: compiled as a test harness with `rustc --test` and run with `--show-output`
- `clippy`: a `Cargo.toml` is written to `exercises/clippy/`, then `cargo clippy`
  must pass with warnings denied
- `buildscript`: a `Cargo.toml` is written to `exercises/tests/`, then
  `cargo test` must pass

An exercise counts as pending while its file still has a line like
`// I AM NOT DONE`. Once it compiles and passes, remove that line to mark it
done.

## Commands

```
crabdrill                   # print a welcome and a short introduction
crabdrill watch             # verify, then re-verify on every edit
crabdrill verify            # verify all exercises in order
crabdrill run <name>        # compile and run or test one exercise
crabdrill run next          # run the first exercise not yet done
crabdrill hint <name>       # print an exercise's hint
crabdrill reset <name>      # run "git stash -- <path>" for one exercise
crabdrill list              # list exercises with their status
crabdrill lsp               # write rust-project.json for rust-analyzer
crabdrill cicvverify        # run every exercise and write a JSON report
crabdrill --version         # print the version
```

`crabdrill --nocapture <command>` shows the output of test exercises.

`verify` stops at the first exercise that fails to compile or pass, or that
still carries the pending marker, and then exits with status 1. For a pending
exercise that passed it shows the lines around the marker.

### watch

Watch mode verifies the exercises and stops at the first that is not done. It
then watches the `./exercises` directory; whenever a `.rs` file is created or
changed it verifies that exercise first, then the other pending ones.
`crabdrill watch --success-hints` also prints the hint of an exercise that
passed but is still pending. While it runs you can type:

- `hint` prints the hint for the current exercise
- `clear` clears the screen
- `quit` leaves watch mode
- `!<cmd>` runs a command, for example `!rustc --explain E0381`
- `help` shows this list

### list

- `-p`, `--paths` prints only the paths
- `-n`, `--names` prints only the names
- `-f`, `--filter a,b` keeps exercises whose name or path contains any of the
  comma-separated patterns
- `-u`, `--unsolved` shows only exercises not yet done
- `-s`, `--solved` shows only exercises that are done

A progress line with the number of exercises done ends the list.

### lsp

Adds a crate for every `.rs` file under `./exercises` and writes
`./rust-project.json`. The standard library path is taken from the
`RUST_SRC_PATH` environment variable, or else found with
`rustc --print sysroot`.

### cicvverify

Runs every exercise at once in worker threads and writes the per-exercise
results, with the number of successes and failures and the total time in
seconds, to `.github/result/check_result.json`. That directory must already
exist.

## Environment

- `NO_EMOJI` prints plain characters in place of emoji.
- Colours are used when standard output is a terminal; `CLICOLOR=0` turns them
  off and a `CLICOLOR_FORCE` other than `0` turns them on.

## Using it from Python

```python
from crabdrill.exercise import load_exercises
from crabdrill.verify import VerificationFailed, verify

exercises = load_exercises("info.toml")
try:
    verify(exercises, (0, len(exercises)))
except VerificationFailed as failed:
    print("stopped at", failed.exercise.name)
```

`Exercise.state()` reports whether an exercise is done and, if not, the lines
around its marker; `Exercise.compile()` returns a `CompiledExercise` to run, and
raises `ExerciseFailed` with the compiler output when compiling fails.

## What it does not do

The package holds only the runner. It ships no exercises and no `info.toml`;
you supply the exercise files and the list yourself.