from pathlib import Path

import pytest

from accterm.core.completion import complete
from accterm.shell.interpreters import Interpreter


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("", encoding="utf-8")
    (tmp_path / "setup.py").write_text("", encoding="utf-8")
    (tmp_path / "README.md").write_text("", encoding="utf-8")
    return tmp_path


def test_completes_file_arguments(workspace: Path) -> None:
    result = complete("cat se", cwd=str(workspace), interpreter=Interpreter.POSIX)
    assert result.word == "se"
    assert result.candidates == ["setup.py"]
    assert result.unique == "setup.py"


def test_directories_get_interpreter_separator(workspace: Path) -> None:
    assert complete("cd s", cwd=str(workspace), interpreter=Interpreter.POSIX).candidates == ["setup.py", "src/"]
    assert complete("cd sr", cwd=str(workspace), interpreter=Interpreter.LEGACY).candidates == ["src\\"]


def test_completes_inside_subdirectory(workspace: Path) -> None:
    result = complete("python src/m", cwd=str(workspace), interpreter=Interpreter.POSIX)
    assert result.word == "src/m"
    assert result.candidates == ["src/main.py"]


def test_matching_is_case_insensitive(workspace: Path) -> None:
    assert complete("less read", cwd=str(workspace), interpreter=Interpreter.POSIX).candidates == ["README.md"]


def test_command_position_offers_builtins(workspace: Path) -> None:
    result = complete("he", cwd=str(workspace), interpreter=Interpreter.POSIX)
    assert result.candidates == ["help"]


def test_trailing_space_lists_directory(workspace: Path) -> None:
    result = complete("ls ", cwd=str(workspace), interpreter=Interpreter.POSIX)
    assert result.word == ""
    assert result.candidates == ["README.md", "setup.py", "src/"]
    assert result.unique is None


def test_missing_directory_yields_nothing(workspace: Path) -> None:
    assert complete("cat nope/x", cwd=str(workspace), interpreter=Interpreter.POSIX).candidates == []
