import os
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from crabdrill.exercise import (
    CompiledExercise,
    ContextLine,
    Exercise,
    ExerciseFailed,
    ExerciseOutput,
    Mode,
    State,
    clean,
    load_exercises,
    parse_exercises,
    temp_file,
)

PENDING = "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
FINISHED = "// fake_exercise\n\nfn main() {\n\n}\n"


def _completed(code=0, stdout=b"", stderr=b""):
    return subprocess.CompletedProcess([], code, stdout, stderr)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_clean(workdir):
    Path(temp_file()).touch()
    exercise = Exercise("example", workdir / "pending_exercise.rs", Mode.COMPILE, "")
    with mock.patch("subprocess.run", return_value=_completed()):
        compiled = exercise.compile()
    compiled.close()
    assert not Path(temp_file()).exists()


def test_context_manager_cleans(workdir):
    Path(temp_file()).touch()
    exercise = Exercise("example", workdir / "x.rs", Mode.COMPILE, "")
    with mock.patch("subprocess.run", return_value=_completed()):
        with exercise.compile() as compiled:
            assert isinstance(compiled, CompiledExercise)
            assert Path(temp_file()).exists()
    assert not Path(temp_file()).exists()


def test_pending_state(tmp_path):
    path = tmp_path / "pending_exercise.rs"
    path.write_text(PENDING)
    exercise = Exercise("pending_exercise", path, Mode.COMPILE, "")
    expected = [
        ContextLine("// fake_exercise", 1, False),
        ContextLine("", 2, False),
        ContextLine("// I AM NOT DONE", 3, True),
        ContextLine("", 4, False),
        ContextLine("fn main() {", 5, False),
    ]
    assert exercise.state() == State(context=expected)
    assert exercise.looks_done() is False


def test_finished_exercise(tmp_path):
    path = tmp_path / "finished_exercise.rs"
    path.write_text(FINISHED)
    exercise = Exercise("finished_exercise", path, Mode.COMPILE, "")
    assert exercise.state() == State()
    assert exercise.state().is_done()
    assert exercise.looks_done() is True


def test_context_clipped_at_start(tmp_path):
    path = tmp_path / "e.rs"
    path.write_text("// I AM NOT DONE\nfn main() {\n}\nlast\n")
    context = Exercise("e", path, Mode.COMPILE, "").state().context
    assert [line.number for line in context] == [1, 2, 3]
    assert [line.important for line in context] == [True, False, False]


def test_windows_line_endings(tmp_path):
    path = tmp_path / "e.rs"
    path.write_bytes(b"a\r\n// I AM NOT DONE\r\nb\r\n")
    context = Exercise("e", path, Mode.COMPILE, "").state().context
    assert [line.line for line in context] == ["a", "// I AM NOT DONE", "b"]


@pytest.mark.parametrize(
    "marker, done",
    [
        ("// I AM NOT DONE", False),
        ("/// I  AM   NOT DONE", False),
        ("   //I AM NOT DONE", False),
        ("I AM NOT DONE", True),
        ("let x = 1; // I AM NOT DONE", True),
    ],
)
def test_marker_forms(tmp_path, marker, done):
    path = tmp_path / "e.rs"
    path.write_text(f"fn main() {{}}\n{marker}\n")
    assert Exercise("e", path, Mode.COMPILE, "").looks_done() is done


def test_exercise_with_output(workdir):
    exercise = Exercise("exercise_with_output", workdir / "testSuccess.rs", Mode.TEST, "")
    output = b"running 1 test\nTHIS TEST TOO SHALL PASS\n"
    with mock.patch("subprocess.run", return_value=_completed(stdout=output)) as run:
        with exercise.compile() as compiled:
            out = compiled.run()
    assert "THIS TEST TOO SHALL PASS" in out.stdout
    compile_args = run.call_args_list[0].args[0]
    assert compile_args == [
        "rustc", "--test", str(workdir / "testSuccess.rs"), "-o", temp_file(),
        "--color", "always", "--edition", "2021",
    ]
    assert run.call_args_list[1].args[0] == [temp_file(), "--show-output"]


def test_compile_failure_raises_with_stderr(workdir):
    Path(temp_file()).touch()
    exercise = Exercise("compFailure", workdir / "compFailure.rs", Mode.COMPILE, "")
    with mock.patch("subprocess.run", return_value=_completed(1, b"", b"error: expected")):
        with pytest.raises(ExerciseFailed) as info:
            exercise.compile()
    assert info.value.output == ExerciseOutput(stdout="", stderr="error: expected")
    assert not Path(temp_file()).exists()


def test_run_failure_raises(workdir):
    exercise = Exercise("e", workdir / "e.rs", Mode.COMPILE, "")
    results = [_completed(), _completed(101, b"partial", b"panicked")]
    with mock.patch("subprocess.run", side_effect=results):
        with exercise.compile() as compiled:
            with pytest.raises(ExerciseFailed) as info:
                compiled.run()
    assert info.value.output.stdout == "partial"
    assert info.value.output.stderr == "panicked"


def test_build_script_writes_manifest_and_runs_nothing(workdir):
    (workdir / "exercises" / "tests").mkdir(parents=True)
    exercise = Exercise("build", workdir / "build.rs", Mode.BUILD_SCRIPT, "")
    with mock.patch("subprocess.run", return_value=_completed()) as run:
        with exercise.compile() as compiled:
            out = compiled.run()
    assert out == ExerciseOutput(stdout="", stderr="")
    assert run.call_count == 1
    manifest = (workdir / "exercises" / "tests" / "Cargo.toml").read_text()
    assert manifest.splitlines()[1] == 'name = "build"'
    assert manifest.endswith('path = "build.rs"')


def test_clippy_runs_three_commands(workdir):
    (workdir / "exercises" / "clippy").mkdir(parents=True)
    exercise = Exercise("clippy1", workdir / "clippy1.rs", Mode.CLIPPY, "")
    with mock.patch("subprocess.run", return_value=_completed()) as run:
        exercise.compile().close()
    commands = [call.args[0][:2] for call in run.call_args_list]
    assert commands == [["rustc", str(workdir / "clippy1.rs")], ["cargo", "clean"], ["cargo", "clippy"]]
    assert (workdir / "exercises" / "clippy" / "Cargo.toml").exists()


def test_missing_compiler_raises_runtime_error(workdir):
    exercise = Exercise("e", workdir / "e.rs", Mode.COMPILE, "")
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
        with pytest.raises(RuntimeError):
            exercise.compile()


def test_clean_without_file_is_silent(workdir):
    clean()
    assert not Path(temp_file()).exists()


def test_temp_file_contains_pid():
    name = temp_file()
    assert name.startswith(f"./temp_{os.getpid()}_")
    assert name == temp_file()


def test_str_is_path():
    assert str(Exercise("x", Path("exercises/x.rs"), Mode.TEST, "")) == str(Path("exercises/x.rs"))


INFO = """
[[exercises]]
name = "intro1"
path = "exercises/intro/intro1.rs"
mode = "compile"
hint = "No hints."

[[exercises]]
name = "build_script"
path = "exercises/tests/build.rs"
mode = "buildscript"
hint = "Hello!"
"""


def test_parse_exercises():
    exercises = parse_exercises(INFO)
    assert [e.name for e in exercises] == ["intro1", "build_script"]
    assert [e.mode for e in exercises] == [Mode.COMPILE, Mode.BUILD_SCRIPT]
    assert exercises[0].path == Path("exercises/intro/intro1.rs")
    assert exercises[1].hint == "Hello!"


def test_load_exercises_round_trip(tmp_path):
    info = tmp_path / "info.toml"
    info.write_text(INFO)
    assert load_exercises(info) == parse_exercises(INFO)


def test_parse_rejects_unknown_mode():
    with pytest.raises(ValueError):
        parse_exercises('[[exercises]]\nname="a"\npath="a.rs"\nmode="fly"\nhint=""\n')


def test_parse_rejects_missing_hint():
    with pytest.raises(ValueError):
        parse_exercises('[[exercises]]\nname="a"\npath="a.rs"\nmode="test"\n')


def test_parse_rejects_missing_list():
    with pytest.raises(ValueError):
        parse_exercises('title = "nothing"\n')