"""Tests for the command line interface."""

import json

import pytest

from stepflow.config import reset_config
from stepflow.main import create_argument_parser, load_configuration, load_steps, main


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


def write_workflow(tmp_path, steps, wrap=True):
    path = tmp_path / "workflow.json"
    path.write_text(json.dumps({"steps": steps} if wrap else steps))
    return str(path)


def test_load_steps_accepts_both_layouts(tmp_path):
    steps = [{"instanceId": "a", "moduleId": "quotation"}]

    assert load_steps(write_workflow(tmp_path, steps))[0].module_id == "quotation"
    assert load_steps(write_workflow(tmp_path, steps, wrap=False))[0].instance_id == "a"


def test_command_line_overrides(tmp_path):
    parser = create_argument_parser()
    args = parser.parse_args([
        "--env", "testing", "--port", "9001", "--log-level", "DEBUG",
        "--step-timeout", "4", "--simulate-missing-executors", "config", "show",
    ])

    config = load_configuration(args)

    assert config.port == 9001
    assert config.log_level.value == "DEBUG"
    assert config.step_timeout == 4.0
    assert config.simulate_missing_executors is True


def test_validate_command_reports_errors(tmp_path, capsys):
    path = write_workflow(tmp_path, [{"instanceId": "q", "moduleId": "quotation"}])

    with pytest.raises(SystemExit) as exc_info:
        main(["--env", "testing", "validate", path])

    report = json.loads(capsys.readouterr().out)
    assert exc_info.value.code == 2
    assert report["isValid"] is False


def test_auto_fix_command(tmp_path, capsys):
    path = write_workflow(tmp_path, [{"instanceId": "q", "moduleId": "quotation"}])

    with pytest.raises(SystemExit) as exc_info:
        main(["--env", "testing", "auto-fix", path])

    report = json.loads(capsys.readouterr().out)
    assert exc_info.value.code == 0
    assert report["autoFixed"] is True


def test_execute_command(tmp_path, capsys):
    path = write_workflow(tmp_path, [
        {"instanceId": "scrape", "moduleId": "ecommerce-scraper"},
        {"instanceId": "approve", "moduleId": "human-decision", "dependsOn": ["scrape"]},
    ])

    with pytest.raises(SystemExit) as exc_info:
        main(["--env", "testing", "execute", path])

    report = json.loads(capsys.readouterr().out)
    assert exc_info.value.code == 0
    assert report["results"]["scrape"]["output"] == "Simulated output from E-commerce Scraper"
    assert report["results"]["approve"]["status"] == "pending_approval"


def test_missing_file_is_an_error(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--env", "testing", "analyze", str(tmp_path / "missing.json")])

    assert exc_info.value.code == 1
    assert capsys.readouterr().out.startswith("Error:")
