"""Configuration loading and structured logging tests."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path

from wardrobe_app.config import AppConfig
from wardrobe_app.logging_config import (
    JsonFormatter,
    correlation_context,
    log_event,
    operation_context,
    redact_for_log,
)


def test_from_env_reads_environment_variables(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("APP_CONFIG_PATH", raising=False)
    monkeypatch.delenv("STORAGE_PATH", raising=False)
    monkeypatch.delenv("REMOTE_DB_PATH", raising=False)
    monkeypatch.setenv("STORAGE_BACKEND", "SQLite")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("REMOTE_BACKEND", "supabase")
    monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co")
    monkeypatch.setenv("SUPABASE_API_KEY", "secret")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "not-a-number")

    config = AppConfig.from_env()

    assert config.storage_backend == "sqlite"
    assert config.remote_backend == "supabase"
    assert config.remote_url == "https://demo.supabase.co"
    assert config.remote_api_key == "secret"
    assert config.http_timeout_seconds == 10.0
    assert config.resolve_storage_path() == tmp_path / "local_store.db"
    assert config.resolve_remote_db_path() == tmp_path / "remote.db"


def test_from_env_merges_yaml_file(monkeypatch, tmp_path: Path) -> None:
    config_file = tmp_path / "staging.yaml"
    config_file.write_text('# staging\nkey_namespace: "closet"\nimage_check_timeout_seconds: 2.5\nremote_backend: none\n')
    monkeypatch.setenv("APP_CONFIG_PATH", str(config_file))
    monkeypatch.setenv("REMOTE_BACKEND", "sqlite")
    monkeypatch.delenv("KEY_NAMESPACE", raising=False)

    config = AppConfig.from_env()

    assert config.key_namespace == "closet"
    assert config.image_check_timeout_seconds == 2.5
    assert config.remote_backend == "sqlite"


def test_redact_for_log_masks_personal_fields() -> None:
    scrubbed = redact_for_log(
        {"user_id": "u-1", "notes": "date night", "contact": "me@example.com", "nested": [{"link": "x"}], "count": 3}
    )

    assert scrubbed == {
        "user_id": "[redacted]",
        "notes": "[redacted]",
        "contact": "[redacted-email]",
        "nested": [{"link": "[redacted]"}],
        "count": 3,
    }
    assert redact_for_log("https://cdn.test/photo.jpg") == "[redacted-url]"


def test_json_formatter_emits_structured_payload() -> None:
    record = logging.LogRecord("memory.cloud_sync", logging.INFO, __file__, 1, "sync_failed", None, None)
    record.event = "sync_failed"
    record.operation = "upload"
    record.image_uri = "file:///private/photo.jpg"

    with correlation_context("corr-1"):
        payload = json.loads(JsonFormatter().format(record))

    assert payload["event"] == "sync_failed"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "memory.cloud_sync"
    assert payload["correlation_id"] == "corr-1"
    assert payload["operation"] == "upload"
    assert payload["image_uri"] == "[redacted]"


def test_log_event_tags_operation_and_renames_reserved_fields() -> None:
    stream = io.StringIO()
    logger = logging.getLogger("tests.log_event")
    logger.propagate = False
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        with operation_context("upload_to_cloud", correlation_id="corr-2"):
            log_event(logger, logging.INFO, "sync_started", module="cloud", user_id="u-1", uploaded=3)
    finally:
        logger.removeHandler(handler)

    payload = json.loads(stream.getvalue())
    assert payload["event"] == "sync_started"
    assert payload["operation"] == "upload_to_cloud"
    assert payload["correlation_id"] == "corr-2"
    assert payload["field_module"] == "cloud"
    assert payload["user_id"] == "[redacted]"
    assert payload["uploaded"] == 3


def test_records_are_reduced_to_type_and_id(make_item) -> None:
    assert redact_for_log(make_item("a")) == {"type": "ClothingItem", "id": "a"}
