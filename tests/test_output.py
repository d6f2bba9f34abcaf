"""Tests for output rendering."""

from __future__ import annotations

import json
import logging

import pytest

from dsc.models import Format
from dsc.output import OutputManager, configure_logging, to_csv, to_sexpr


class TestToSexpr:
    def test_scalars(self) -> None:
        assert to_sexpr(None) == "nil"
        assert to_sexpr(False) == "nil"
        assert to_sexpr(True) == "t"
        assert to_sexpr(42) == "42"
        assert to_sexpr('say "hi"') == '"say \\"hi\\""'

    def test_plist(self) -> None:
        assert to_sexpr({"success": True, "message": "ok"}) == '(:success t :message "ok")'

    def test_nested(self) -> None:
        data = {"items": [{"id": "a"}, {"id": "b"}], "count": 2}
        assert to_sexpr(data) == '(:items ((:id "a") (:id "b")) :count 2)'


class TestToCsv:
    def test_rows_with_columns(self) -> None:
        rows = [{"id": "1", "name": "a,b", "extra": "x"}, {"id": "2", "name": "c"}]
        assert to_csv(rows, ["id", "name"]) == 'id,name\n1,"a,b"\n2,c\n'

    def test_bools_and_nested(self) -> None:
        out = to_csv([{"ok": True, "tags": ["a", "b"]}])
        assert out.splitlines() == ["ok,tags", 'yes,"[""a"",""b""]"']

    def test_scalar(self) -> None:
        assert to_csv("hello") == "hello\n"


class TestOutputManager:
    def test_json_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        OutputManager(format=Format.JSON).render({"a": 1})
        captured = capsys.readouterr()
        assert json.loads(captured.out) == {"a": 1}
        assert captured.err == ""

    def test_lisp_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        OutputManager(format=Format.LISP).render([1, 2])
        assert capsys.readouterr().out.strip() == "(1 2)"

    def test_tabular_contains_values(self, capsys: pytest.CaptureFixture[str]) -> None:
        OutputManager(format=Format.TABULAR, no_color=True).render(
            [{"id": "abc", "name": "Invoice"}]
        )
        out = capsys.readouterr().out
        assert "abc" in out and "Invoice" in out

    def test_messages_go_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        output = OutputManager(no_color=True)
        output.info("hello")
        output.warning("careful")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "hello" in captured.err
        assert "Warning: careful" in captured.err

    def test_quiet_keeps_errors(self, capsys: pytest.CaptureFixture[str]) -> None:
        output = OutputManager(no_color=True, quiet=True)
        output.info("hidden")
        output.error("shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "Error: shown" in err

    def test_debug_needs_verbose(self, capsys: pytest.CaptureFixture[str]) -> None:
        OutputManager(no_color=True).debug("quiet")
        OutputManager(no_color=True, verbose=1).debug("loud")
        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "[debug] loud" in err


class TestConfigureLogging:
    @pytest.mark.parametrize(
        "verbose,level",
        [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (3, logging.DEBUG)],
    )
    def test_levels(self, verbose: int, level: int) -> None:
        configure_logging(verbose)
        assert logging.getLogger().level == level

    def test_httpx_only_at_highest_verbosity(self) -> None:
        configure_logging(2)
        assert logging.getLogger("httpx").level == logging.WARNING
        configure_logging(3)
        assert logging.getLogger("httpx").level == logging.DEBUG
