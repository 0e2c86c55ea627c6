"""
测试 config.py：环境变量、别名与 config.json 来源。
"""

import json
import sys

import pytest
from loguru import logger

from src.server.config import Config, configure_logging

_ENV_KEYS = [
    "BUCKET_NAME",
    "BUCKET_PREFIX",
    "DEVICE_ACTIVATOR_QUEUE_URL",
    "DEIVCE_ACTIVATOR_QUEUE_URL",
    "DEVICE_ACTIVATOR_ROLE_ARN",
    "DEIVCE_ACTIVATOR_ROLE_ARN",
    "AWS_REGION",
    "FETCH_ALL_VERIFIER_HTTP_FUNCTION_ARN",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CONFIG_FILE", raising=False)
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    cfg = Config()
    assert cfg.bucket_name == ""
    assert cfg.bucket_prefix == ""
    assert cfg.ca_key_size == 2048


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("BUCKET_NAME", "bucket_name")
    monkeypatch.setenv("BUCKET_PREFIX", "/bucket_prefix/")
    monkeypatch.setenv("DEVICE_ACTIVATOR_QUEUE_URL", "activator_queue_url")
    monkeypatch.setenv("DEVICE_ACTIVATOR_ROLE_ARN", "activator_role_arn")
    monkeypatch.setenv("AWS_REGION", "ap-northeast-1")

    cfg = Config()
    assert cfg.bucket_name == "bucket_name"
    assert cfg.bucket_prefix == "bucket_prefix"
    assert cfg.device_activator_queue_url == "activator_queue_url"
    assert cfg.device_activator_role_arn == "activator_role_arn"
    assert cfg.aws_region == "ap-northeast-1"


def test_legacy_variable_names(monkeypatch):
    monkeypatch.setenv("DEIVCE_ACTIVATOR_QUEUE_URL", "legacy_queue")
    monkeypatch.setenv("DEIVCE_ACTIVATOR_ROLE_ARN", "legacy_role")

    cfg = Config()
    assert cfg.device_activator_queue_url == "legacy_queue"
    assert cfg.device_activator_role_arn == "legacy_role"


def test_function_arn_is_url_decoded(monkeypatch):
    monkeypatch.setenv(
        "FETCH_ALL_VERIFIER_HTTP_FUNCTION_ARN",
        "arn%3Aaws%3Alambda%3Aap-northeast-1%3A000000000000%3Afunction%3Aget-all",
    )
    assert Config().fetch_all_verifier_http_function_arn == (
        "arn:aws:lambda:ap-northeast-1:000000000000:function:get-all"
    )


def test_config_json_source(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"bucket_name": "from_json", "ca_validity_days": 30}), encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(path))

    cfg = Config()
    assert cfg.bucket_name == "from_json"
    assert cfg.ca_validity_days == 30


def test_environment_overrides_config_json(tmp_path, monkeypatch):
    (tmp_path / "config.json").write_text(json.dumps({"bucket_name": "from_json"}), encoding="utf-8")
    monkeypatch.setenv("BUCKET_NAME", "from_env")
    assert Config().bucket_name == "from_env"


def test_malformed_config_json_is_ignored(tmp_path):
    (tmp_path / "config.json").write_text("{not json", encoding="utf-8")
    assert Config().bucket_name == ""


def test_log_level_from_config_json(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"log_level": "debug"}), encoding="utf-8")
    assert Config().log_level == "DEBUG"


def test_log_level_from_environment(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    assert Config().log_level == "WARNING"


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_configure_logging_applies_level(restore_logger, capsys):
    configure_logging(Config(log_level="warning"))
    logger.info("info-should-be-hidden")
    logger.warning("warning-should-show")

    err = capsys.readouterr().err
    assert "warning-should-show" in err
    assert "info-should-be-hidden" not in err
