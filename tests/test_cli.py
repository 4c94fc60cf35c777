import io
import json
import sys
from pathlib import Path

import pytest

import leaks_config
import leakscope


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(leaks_config, "load_dotenv", lambda: False)
    for name in (
        "LEAKSCOPE_FORMAT",
        "LEAKSCOPE_FILTER",
        "LEAKSCOPE_DEVICE",
        "LEAKSCOPE_TEST_NAME",
        "LEAKSCOPE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_build_argument_parser_defaults_come_from_config() -> None:
    config = leaks_config.load_config({"LEAKSCOPE_FILTER": "cycles", "LEAKSCOPE_DEVICE": "ABC"})
    args = leakscope.build_argument_parser(config).parse_args(["Client"])

    assert args.process == "Client"
    assert args.filter == "cycles"
    assert args.device == "ABC"
    assert args.format == "raw"
    assert args.input == "-"
    assert args.summary is False


def test_json_output_with_cycle_filter(sample_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = leakscope.main(["Client", "-i", str(sample_path), "--format", "json", "--filter", "cycles"])

    assert exit_code == leakscope.LEAKS_FOUND
    parsed = json.loads(capsys.readouterr().out)
    assert [leak["leakType"] for leak in parsed["leaks"]] == ["ROOT_CYCLE", "ROOT_CYCLE"]
    assert parsed["params"]["processName"] == "Client"
    assert parsed["params"]["deviceId"] == "booted"


def test_json_pretty_with_pid_exclusions_and_test_name(sample_path: Path,
                                                      capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = leakscope.main([
        "-p", "35988",
        "-i", str(sample_path),
        "-f", "JSON_PRETTY",
        "-e", "KnownLeak",
        "-e", "OtherLeak",
        "-t", "testToolbarDeinit",
    ])

    assert exit_code == leakscope.LEAKS_FOUND
    out = capsys.readouterr().out
    parsed = json.loads(out)
    assert "\n  " in out
    assert parsed["params"] == {
        "pid": 35988,
        "processName": None,
        "deviceId": "booted",
        "excludeSymbols": ["KnownLeak", "OtherLeak"],
    }
    assert len(parsed["leaks"]) == 4
    assert {leak["testName"] for leak in parsed["leaks"]} == {"testToolbarDeinit"}


def test_raw_unfiltered_output_is_echoed(sample_path: Path, sample_output: str,
                                         capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = leakscope.main(["Client", "-i", str(sample_path)])

    assert exit_code == leakscope.LEAKS_FOUND
    assert capsys.readouterr().out == sample_output


def test_raw_filtered_output_keeps_only_matching_records(sample_path: Path,
                                                         capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = leakscope.main(["Client", "-i", str(sample_path), "--filter", "leaks"])

    out = capsys.readouterr().out
    assert exit_code == leakscope.LEAKS_FOUND
    assert "Process: Client [35988]" in out
    assert "ROOT LEAK" in out
    assert "ROOT CYCLE" not in out


def test_summary_view(sample_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = leakscope.main(["Client", "-i", str(sample_path), "--summary"])

    out = capsys.readouterr().out
    assert exit_code == leakscope.LEAKS_FOUND
    assert "Root leaks" in out
    assert "Root cycles" in out


def test_details_view(sample_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = leakscope.main(["Client", "-i", str(sample_path), "--details", "--filter", "cycles"])

    out = capsys.readouterr().out
    assert exit_code == leakscope.LEAKS_FOUND
    assert "Leak 2 / 2" in out
    assert "TabSessionStore" in out


def _set_stdin(monkeypatch: pytest.MonkeyPatch, data: bytes) -> None:
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data), encoding="utf-8"))


def test_raw_echo_keeps_tabs_and_line_endings(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    text = (
        "32 (3.66K) ROOT LEAK: <Foo 0x1> [8]\r\n"
        "1\tMyApp\t0x1000abcd SomeFunction + 42\n"
        "\x1b[0m\x0cTail\n"
    )
    input_file = tmp_path / "tabs.txt"
    input_file.write_bytes(text.encode("utf-8"))

    exit_code = leakscope.main(["Client", "-i", str(input_file)])

    assert exit_code == leakscope.LEAKS_FOUND
    assert capsys.readouterr().out == text


def test_raw_filtered_output_keeps_tabs(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    input_file = tmp_path / "tabs.txt"
    input_file.write_text(
        "32 (3.66K) ROOT LEAK: <Foo 0x1> [8]\n"
        "1\tMyApp\t0x1000abcd SomeFunction + 42\n",
        encoding="utf-8",
    )

    exit_code = leakscope.main(["Client", "-i", str(input_file), "--filter", "leaks"])

    assert exit_code == leakscope.LEAKS_FOUND
    assert "1\tMyApp\t0x1000abcd SomeFunction + 42\n" in capsys.readouterr().out


def test_reads_from_stdin(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    _set_stdin(monkeypatch, b"32 (3.66K) ROOT LEAK: <Foo 0x1> [8]\n")

    exit_code = leakscope.main(["Client", "-f", "json"])

    assert exit_code == leakscope.LEAKS_FOUND
    assert json.loads(capsys.readouterr().out)["leaks"][0]["rootTypeName"] == "Foo"


def test_invalid_utf8_on_stdin_is_replaced(monkeypatch: pytest.MonkeyPatch,
                                          capsys: pytest.CaptureFixture[str]) -> None:
    _set_stdin(monkeypatch, b"32 (3.66K) ROOT LEAK: <Caf\xe9 0x1> [8]\n")

    exit_code = leakscope.main(["Client", "-f", "json"])

    assert exit_code == leakscope.LEAKS_FOUND
    assert json.loads(capsys.readouterr().out)["leaks"][0]["rootTypeName"] == "Caf\ufffd"


def test_invalid_utf8_in_file_is_replaced(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    input_file = tmp_path / "latin1.txt"
    input_file.write_bytes(b"32 (3.66K) ROOT LEAK: <Caf\xe9 0x1> [8]\n")

    exit_code = leakscope.main(["Client", "-i", str(input_file), "-f", "json"])

    assert exit_code == leakscope.LEAKS_FOUND
    assert json.loads(capsys.readouterr().out)["leaks"][0]["rootTypeName"] == "Caf\ufffd"


def test_exclude_help_says_symbols_are_not_applied(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        leakscope.main(["--help"])

    help_text = " ".join(capsys.readouterr().out.split())
    assert "not applied as a filter" in help_text


def test_no_leaks_returns_success(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    input_file = tmp_path / "clean.txt"
    input_file.write_text("Process 35988: 0 leaks for 0 total leaked bytes.\n", encoding="utf-8")

    exit_code = leakscope.main(["Client", "-i", str(input_file), "-f", "json"])

    assert exit_code == leakscope.SUCCESS
    assert json.loads(capsys.readouterr().out)["leaks"] == []


def test_filter_can_empty_the_report(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    input_file = tmp_path / "leak_only.txt"
    input_file.write_text("32 (3.66K) ROOT LEAK: <Foo 0x1> [8]\n", encoding="utf-8")

    exit_code = leakscope.main(["Client", "-i", str(input_file), "--filter", "cycles", "-f", "json"])

    assert exit_code == leakscope.SUCCESS


@pytest.mark.parametrize(
    ("argv", "message"),
    [
        (["-i", "unused.txt"], "Either a process name or --pid"),
        (["Client", "-p", "1", "-i", "unused.txt"], "Cannot specify both"),
        (["Client", "-i", "does/not/exist.txt"], "does not exist"),
    ],
)
def test_invalid_input_returns_error(argv: list[str], message: str,
                                     capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = leakscope.main(argv)

    assert exit_code == leakscope.ERROR
    assert message in capsys.readouterr().err


def test_directory_input_returns_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = leakscope.main(["Client", "-i", str(tmp_path)])

    assert exit_code == leakscope.ERROR
    assert "is not a file" in capsys.readouterr().err


def test_invalid_environment_returns_error(monkeypatch: pytest.MonkeyPatch,
                                           capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("LEAKSCOPE_FORMAT", "xml")

    exit_code = leakscope.main(["Client"])

    assert exit_code == leakscope.ERROR
    assert "LEAKSCOPE_FORMAT" in capsys.readouterr().err


def test_unknown_format_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as exc_info:
        leakscope.main(["Client", "--format", "xml"])

    assert exc_info.value.code == 2


def test_summary_and_details_are_mutually_exclusive() -> None:
    with pytest.raises(SystemExit) as exc_info:
        leakscope.main(["Client", "--summary", "--details"])

    assert exc_info.value.code == 2
