import json
import logging

import pytest
from unittest.mock import patch

from webanalyzer import cli
from webanalyzer.cli import configure_logging
from webanalyzer.core import AnalysisResult
from webanalyzer.errors import FetchError

RESULT = AnalysisResult(
    html_version="HTML5",
    title="T",
    headings={"h1": 1, "h2": 0, "h3": 0, "h4": 0, "h5": 0, "h6": 0},
    internal_links=2,
    external_links=1,
    has_login_form=False,
    accessible_external_links=1,
    broken_external_links=0,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FETCH_TIMEOUT", "PROBE_TIMEOUT", "MAX_PROBE_WORKERS", "USER_AGENT"):
        monkeypatch.delenv(f"WEB_ANALYZER_{name}", raising=False)
    monkeypatch.setattr(cli, "configure_logging", lambda verbose: None)


@patch("webanalyzer.cli.analyze", return_value=RESULT)
def test_main_prints_json(mock_analyze, capsys):
    exit_code = cli.main(["https://site.test"])

    assert exit_code == cli.EXIT_OK
    assert json.loads(capsys.readouterr().out) == RESULT.to_dict()
    request, options = mock_analyze.call_args.args
    assert request.url == "https://site.test"
    assert options.enable_liveness_probe is True


@patch("webanalyzer.cli.analyze", return_value=RESULT)
def test_main_passes_flags(mock_analyze):
    cli.main(["https://site.test", "--no-probe", "--timeout", "3", "--workers", "2", "--out", "-"])

    _, options = mock_analyze.call_args.args
    config = mock_analyze.call_args.kwargs["config"]
    assert options.enable_liveness_probe is False
    assert config.fetch_timeout == 3.0
    assert config.max_probe_workers == 2


@patch("webanalyzer.cli.analyze", return_value=RESULT)
def test_main_writes_output_file(mock_analyze, tmp_path):
    out = tmp_path / "reports" / "site.json"

    exit_code = cli.main(["https://site.test", "--out", str(out), "--pretty"])

    assert exit_code == cli.EXIT_OK
    assert json.loads(out.read_text(encoding="utf-8"))["title"] == "T"


@patch("webanalyzer.cli.analyze")
def test_main_rejects_invalid_url(mock_analyze, capsys):
    exit_code = cli.main(["ht://example.com"])

    assert exit_code == cli.EXIT_INVALID_INPUT
    assert "Invalid URL" in capsys.readouterr().err
    mock_analyze.assert_not_called()


@patch("webanalyzer.cli.analyze")
def test_main_rejects_bad_worker_count(mock_analyze):
    assert cli.main(["https://site.test", "--workers", "0"]) == cli.EXIT_INVALID_INPUT
    mock_analyze.assert_not_called()


@patch("webanalyzer.cli.analyze", side_effect=FetchError("https://site.test", FetchError.NON_SUCCESS_STATUS, 404))
def test_main_fetch_error(mock_analyze, capsys):
    exit_code = cli.main(["https://site.test"])

    assert exit_code == cli.EXIT_FAILED
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "HTTP 404" in captured.err


@patch("webanalyzer.cli.analyze", return_value=RESULT)
def test_main_verbose_summary(mock_analyze, capsys):
    cli.main(["https://site.test", "--verbose"])
    err = capsys.readouterr().err
    assert "PAGE SUMMARY" in err
    assert "Login form:" in err


def test_configure_logging_levels():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(verbose=True)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert logging.getLogger("urllib3").level == logging.WARNING

        configure_logging(verbose=False)
        assert root.level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
