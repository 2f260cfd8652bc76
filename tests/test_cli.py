from click.testing import CliRunner

from chanbot.app.cli import _log_level, app
from chanbot.shared.exceptions import ConfigurationError


def test_check_prints_summary(write_config) -> None:
    loader = write_config()

    result = CliRunner().invoke(app, ["-c", loader.config_path, "check"])

    assert result.exit_code == 0, result.output
    assert "default channel: #chan" in result.output
    assert "+o ACL rules: 2" in result.output
    assert "url commands: w" in result.output


def test_check_reports_bad_config(write_config) -> None:
    loader = write_config(url_dup_timezone={"#chan": "Nowhere/Special"})

    result = CliRunner().invoke(app, ["-c", loader.config_path, "check"])

    assert result.exit_code != 0
    assert isinstance(result.exception, ConfigurationError)


def test_log_level_flags() -> None:
    assert _log_level(False, False, False) is None
    assert _log_level(True, False, False) == "INFO"
    assert _log_level(True, True, False) == "DEBUG"
    assert _log_level(False, False, True) == "TRACE"
