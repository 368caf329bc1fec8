"""Cancellation tokens, structured logging, executors and settings."""

from __future__ import annotations

import json
import logging

import pytest

from ClassicToStoryMaps.cancellation import CancellationToken, coerce_token
from ClassicToStoryMaps.concurrency import create_executor
from ClassicToStoryMaps.errors import ConversionCancelled
from ClassicToStoryMaps.logging import JSONFormatter, StructuredLogger
from ClassicToStoryMaps.settings import ConverterSettings, LogFormat, Settings, ThemeChoice


def test_token_predicate_latches():
    flags = [False, True]
    token = CancellationToken(predicate=lambda: flags.pop(0))
    assert not token.is_cancelled()
    assert token.is_cancelled()
    assert token.is_cancelled()
    with pytest.raises(ConversionCancelled) as excinfo:
        token.raise_if_cancelled(stage="enrich")
    assert excinfo.value.stage == "enrich"


def test_coerce_token():
    token = CancellationToken()
    assert coerce_token(token) is token
    assert not coerce_token(None).is_cancelled()
    assert coerce_token(lambda: True).is_cancelled()
    with pytest.raises(TypeError):
        coerce_token("yes")


def test_inline_executor_for_single_worker():
    assert create_executor(1) == (None, False)
    executor, needs_shutdown = create_executor(3, thread_name_prefix="test")
    try:
        assert needs_shutdown
        assert executor.submit(lambda: 41 + 1).result() == 42
    finally:
        executor.shutdown(wait=True)


def test_json_formatter_merges_bound_fields():
    records = []

    class _Capture(logging.Handler):
        def emit(self, record):
            records.append(self.format(record))

    logger = logging.getLogger("tests.runtime_support")
    handler = _Capture()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    try:
        adapter = StructuredLogger(logger, {"conversion_id": "abc"}).child(template="Map Tour")
        adapter.info("converted", extra={"extra_fields": {"nodes": 12}})
    finally:
        logger.removeHandler(handler)

    payload = json.loads(records[0])
    assert payload["message"] == "converted"
    assert payload["level"] == "INFO"
    assert payload["conversion_id"] == "abc"
    assert payload["template"] == "Map Tour"
    assert payload["nodes"] == 12


def test_converter_settings_from_env(monkeypatch):
    monkeypatch.setenv("CLASSIC2SM_THEME", "obsidian")
    monkeypatch.setenv("CLASSIC2SM_TRANSFER_WORKERS", "4")
    monkeypatch.setenv("CLASSIC2SM_LOG_FORMAT", "console")
    settings = Settings.from_env()
    assert settings.converter.theme is ThemeChoice.OBSIDIAN
    assert settings.converter.transfer_workers == 4
    assert settings.converter.log_format is LogFormat.CONSOLE


def test_invalid_minimum_version_rejected():
    with pytest.raises(ValueError):
        ConverterSettings(min_webmap_version="two")


def test_redacted_dump_hides_token(monkeypatch):
    monkeypatch.setenv("CLASSIC2SM_ARCGIS_TOKEN", "super-secret")
    dumped = Settings.from_env().model_dump_redacted(mode="json")
    assert dumped["arcgis"]["token"] == "***REDACTED***"
    assert dumped["arcgis"]["portal_url"] == "https://www.arcgis.com"
