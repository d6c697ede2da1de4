import pytest

from crabdrill import ui


@pytest.fixture
def plain(monkeypatch):
    monkeypatch.delenv("CLICOLOR_FORCE", raising=False)
    monkeypatch.setenv("CLICOLOR", "0")


@pytest.fixture
def coloured(monkeypatch):
    monkeypatch.setenv("CLICOLOR_FORCE", "1")


def test_no_emoji_follows_environment(monkeypatch):
    monkeypatch.setenv("NO_EMOJI", "1")
    assert ui.no_emoji() is True
    monkeypatch.delenv("NO_EMOJI")
    assert ui.no_emoji() is False


@pytest.mark.parametrize("style", [ui.bold, ui.red, ui.green, ui.blue])
def test_plain_terminal_leaves_text_alone(plain, style):
    assert style("hello") == "hello"


@pytest.mark.parametrize("style", [ui.bold, ui.red, ui.green, ui.blue])
def test_forced_colour_wraps_text(coloured, style):
    styled = style("hello")
    assert styled.startswith("\x1b[")
    assert styled.endswith("\x1b[0m")
    assert "hello" in styled


def test_bold_escape_sequence(coloured):
    assert ui.bold("hi") == "\x1b[1mhi\x1b[0m"


def test_distinct_colours(coloured):
    assert len({ui.red("x"), ui.green("x"), ui.blue("x"), ui.bold("x")}) == 4


def test_non_string_is_converted(plain):
    assert ui.blue(12) == "12"


def test_warn_without_emoji(plain, monkeypatch, capsys):
    monkeypatch.setenv("NO_EMOJI", "1")
    ui.warn("Ran thing with errors")
    assert capsys.readouterr().out == "! Ran thing with errors\n"


def test_success_without_emoji(plain, monkeypatch, capsys):
    monkeypatch.setenv("NO_EMOJI", "1")
    ui.success("Successfully ran thing")
    assert capsys.readouterr().out == "✓ Successfully ran thing\n"


def test_warn_with_emoji(plain, monkeypatch, capsys):
    monkeypatch.delenv("NO_EMOJI", raising=False)
    ui.warn("careful")
    out = capsys.readouterr().out
    assert out.startswith("⚠️")
    assert out.rstrip("\n").endswith("careful")


def test_success_with_emoji(plain, monkeypatch, capsys):
    monkeypatch.delenv("NO_EMOJI", raising=False)
    ui.success("done")
    out = capsys.readouterr().out
    assert out.startswith("✅")
    assert out.rstrip("\n").endswith("done")