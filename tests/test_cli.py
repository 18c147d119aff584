import builtins
import json
import sys
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from kaleido import kaleido_cli
from kaleido.kaleido_cli import PRECEDENCE_ENV, load_precedence, run_kaleido

SOURCE = "def add(x y) x+y\nextern sin(a)\nadd(1, 2)"


@pytest.fixture  # type: ignore[misc]
def ops_file(tmp_path: Path) -> Path:
    path = tmp_path / "ops.json"
    path.write_text(json.dumps({"/": 40}))
    return path


def test_run_string_prints_status_lines(capsys: pytest.CaptureFixture[str]) -> None:
    run_kaleido(SOURCE, is_string=True)
    assert capsys.readouterr().out.splitlines() == [
        "Parsed a function definition.",
        "Parsed an extern.",
        "Parsed a top-level expression.",
    ]


def test_run_file_input(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "prog.kal"
    path.write_text(SOURCE)
    run_kaleido(str(path))
    assert "Parsed an extern." in capsys.readouterr().out


def test_run_rejects_non_kal_file() -> None:
    with pytest.raises(ValueError, match="Only .kal files are supported"):
        run_kaleido("prog.txt")


def test_run_json_output(capsys: pytest.CaptureFixture[str]) -> None:
    run_kaleido(SOURCE, is_string=True, emit_json=True)
    payload = json.loads(capsys.readouterr().out)
    assert [item["kind"] for item in payload] == ["function", "prototype", "function"]
    assert payload[0]["children"][0]["params"] == ["x", "y"]
    assert payload[2]["value"] == ""
    assert payload[2]["children"][1]["kind"] == "call"


def test_run_json_skips_failures(capsys: pytest.CaptureFixture[str]) -> None:
    run_kaleido("(1 ; 2", is_string=True, emit_json=True)
    captured = capsys.readouterr()
    assert len(json.loads(captured.out)) == 1
    assert "[error] >>> Expected ')'" in captured.err


def test_run_tokens(capsys: pytest.CaptureFixture[str]) -> None:
    run_kaleido("x+1", is_string=True, dump_tokens=True)
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "1:1\tIDENT\tx",
        "1:2\tCHAR\t+",
        "1:3\tNUMBER\t1.0",
        "1:4\tEOF\tEOF",
    ]


def test_run_pretty_banner(capsys: pytest.CaptureFixture[str]) -> None:
    run_kaleido("1+2", is_string=True, emit_json=True, pretty=True)
    out = capsys.readouterr().out
    assert "AST" in out
    assert "=" * 20 in out


def test_run_writes_output_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    out_path = tmp_path / "out.json"
    run_kaleido("1+2", is_string=True, out=str(out_path), pretty=True)
    payload = json.loads(out_path.read_text())
    assert payload[0]["children"][1]["value"] == "+"
    assert f"(wrote to {out_path})" in capsys.readouterr().out


def test_run_with_precedence_file(ops_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    run_kaleido("8/2", is_string=True, emit_json=True, precedence_path=str(ops_file))
    payload = json.loads(capsys.readouterr().out)
    assert len(payload) == 1
    assert payload[0]["children"][1]["value"] == "/"


def test_run_without_precedence_file_splits_on_unknown_operator(
    capsys: pytest.CaptureFixture[str],
) -> None:
    run_kaleido("8/2", is_string=True, emit_json=True)
    captured = capsys.readouterr()
    assert len(json.loads(captured.out)) == 2
    assert "Unknown token" in captured.err


def test_load_precedence_from_env(ops_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(PRECEDENCE_ENV, str(ops_file))
    assert load_precedence().precedence_of("/") == 40


def test_load_precedence_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(PRECEDENCE_ENV, raising=False)
    assert load_precedence().summary() == {"<": 10, "+": 20, "-": 30, "*": 40}


def test_main_string_json(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr(sys, "argv", ["kaleido", "-s", "1+2", "--json"])
    kaleido_cli.main()
    assert json.loads(capsys.readouterr().out)[0]["kind"] == "function"


def test_main_calls_repl_on_no_args(monkeypatch: pytest.MonkeyPatch) -> None:
    called: list[bool] = []
    monkeypatch.setattr(sys, "argv", ["kaleido"])
    monkeypatch.delenv(PRECEDENCE_ENV, raising=False)
    monkeypatch.setattr(
        "kaleido.kaleido_repl.start_repl", lambda **kwargs: called.append(kwargs["verbose"])
    )
    kaleido_cli.main()
    assert called == [False]


def test_main_no_args_repl_reads_precedence_env(
    monkeypatch: pytest.MonkeyPatch, ops_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(sys, "argv", ["kaleido"])
    monkeypatch.setenv(PRECEDENCE_ENV, str(ops_file))
    lines = iter(["8/2;"])

    def fake_input(prompt: str) -> str:
        for line in lines:
            return line
        raise EOFError

    monkeypatch.setattr(builtins, "input", fake_input)
    kaleido_cli.main()
    captured = capsys.readouterr()
    assert captured.out.count("Parsed a top-level expression.") == 1
    assert "Unknown token" not in captured.err


def test_main_no_args_bad_precedence_env_exits(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    path = tmp_path / "ops.json"
    path.write_text(json.dumps({"(": 5}))
    monkeypatch.setattr(sys, "argv", ["kaleido"])
    monkeypatch.setenv(PRECEDENCE_ENV, str(path))
    with pytest.raises(SystemExit) as e:
        kaleido_cli.main()
    assert e.value.code == 2
    assert "[error] >>>" in capsys.readouterr().err


def test_main_repl_flag_passes_options(
    monkeypatch: pytest.MonkeyPatch, ops_file: Path
) -> None:
    seen: dict[str, object] = {}

    def fake_repl(verbose: bool = False, precedence: object = None) -> None:
        seen["verbose"] = verbose
        seen["precedence"] = precedence

    monkeypatch.setattr(
        sys, "argv", ["kaleido", "--repl", "--verbose", "--precedence", str(ops_file)]
    )
    monkeypatch.setattr("kaleido.kaleido_repl.start_repl", fake_repl)
    kaleido_cli.main()
    assert seen["verbose"] is True
    assert seen["precedence"].precedence_of("/") == 40  # type: ignore[attr-defined]


def test_main_bad_precedence_file_exits(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    path = tmp_path / "ops.json"
    path.write_text(json.dumps({"+": 99}))
    monkeypatch.setattr(sys, "argv", ["kaleido", "-s", "1", "--precedence", str(path)])
    with pytest.raises(SystemExit) as e:
        kaleido_cli.main()
    assert e.value.code == 2
    err = capsys.readouterr().err
    assert "conflict" in err
    assert "'+' → conflict between 20 and 99" in err


def test_main_rejects_wrong_suffix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "argv", ["kaleido", "notes.txt"])
    with pytest.raises(SystemExit):
        kaleido_cli.main()


@settings(suppress_health_check=[HealthCheck.function_scoped_fixture], max_examples=50)  # type: ignore[misc]
@given(source=st.text(max_size=60))  # type: ignore[misc]
def test_run_random_input_does_not_crash(
    source: str, capsys: pytest.CaptureFixture[str]
) -> None:
    run_kaleido(source, is_string=True, emit_json=True)
    assert isinstance(json.loads(capsys.readouterr().out), list)
