"""Tests for the rdraw command line (rdraw/app.py)."""
import pytest

from rdraw.app import build_parser, describe_tree, main
from rdraw.core.serialization import save_document


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RDR_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("RDR_LOG_LEVEL", "warning")
    return tmp_path


def test_describe_tree(group_with_squares):
    g, a, b = group_with_squares
    lines = describe_tree(g)
    assert lines[0] == "g [Group] bounds=(-5, 0, 25, 20) transform=(1 0 0 1 0 0)"
    assert lines[1].startswith("  a [Path] bounds=(15, 10, 10, 10)")
    assert lines[2].startswith("  b [Path] bounds=(0, 0, 5, 5)")


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_inspect(cli_env, group_with_squares, capsys):
    g, _, _ = group_with_squares
    doc = save_document(g, cli_env / "doc.rdr")
    assert main(["inspect", str(doc)]) == 0
    out = capsys.readouterr().out
    assert out.splitlines()[0].startswith("g [Group]")
    assert "  b [Path]" in out


def test_export(cli_env, group_with_squares):
    g, _, _ = group_with_squares
    doc = save_document(g, cli_env / "doc.rdr")
    assert main(["export", str(doc), str(cli_env / "out" / "drawing")]) == 0
    assert (cli_env / "out" / "drawing.svg").is_file()


def test_missing_document_returns_error(cli_env):
    assert main(["inspect", str(cli_env / "missing.rdr")]) == 1
