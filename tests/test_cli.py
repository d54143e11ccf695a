"""End-to-end tests for the command-line entry point."""

from __future__ import annotations

import json

import pytest

from src.cli import main


@pytest.fixture(autouse=True)
def _isolated_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("NL_FORMULA_PREFER_CELL_REFERENCES", raising=False)


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, object]:
    code = main(list(argv))
    return code, json.loads(capsys.readouterr().out)


def test_convert(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(
        capsys,
        "convert",
        "tính margin từ giá bán và giá vốn",
        "--context",
        '{"retailPrice": 150, "costPrice": 60}',
    )

    assert code == 0
    assert payload["success"] is True
    assert payload["formula"] == "=(150-60)/150*100"
    assert payload["intent"]["type"] == "CALCULATE_MARGIN"


def test_convert_failure_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "convert", "asdkjfh 293u4")

    assert code == 1
    assert payload["success"] is False


def test_convert_with_cell_references(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(
        capsys,
        "convert",
        "tính margin từ giá bán và giá vốn",
        "--context",
        '{"retailPrice": 150}',
        "--cell-references",
    )

    assert code == 0
    assert payload["formula"] == "=(retailPrice-costPrice)/retailPrice*100"


def test_suggest(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "suggest", "tính tổng số lượng")

    assert code == 0
    assert payload[0]["formula"] == "=SUM(quantity:quantity)"


def test_templates(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "templates")

    assert code == 0
    assert len(payload) == 11


def test_eval(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(
        capsys,
        "eval",
        "=(retailPrice-costPrice)/retailPrice*100",
        "--context",
        '{"retailPrice": 100, "costPrice": 40}',
    )

    assert code == 0
    assert payload["value"] == 60


def test_eval_error(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "eval", "=1/0")

    assert code == 1
    assert payload["error"] == "#DIV/0!"


def test_row(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "row", '{"quantity": 10, "price": 50, "total": "=quantity*price"}')

    assert code == 0
    assert payload == {"quantity": 10, "price": 50, "total": 500.0}


def test_invalid_json_argument() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["eval", "=1", "--context", "[1, 2]"])

    assert exc_info.value.code == 2


def test_row_failure_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "row", '{"x": "=1/0", "y": 2}')

    assert code == 1
    assert payload == {"x": None, "y": 2}


def test_eval_round_to_huge_negative_digits(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "eval", "=ROUND(1,-2000000)")

    assert code == 0
    assert payload["value"] == 0.0
