#!/usr/bin/env python3
"""Tests for TraceModel, progress sinks and loader settings."""

import pytest
import json
import logging

from tracecore import LoaderSettings, LoggingProgress, NullProgress, TraceModel
from tracecore.progress import format_bytes


class TestTraceModel:
    """Test suite for the in-memory trace model."""

    def test_collect_and_complete(self):
        model = TraceModel()
        model.begin_collecting(True)
        model.receive([{"ph": "X", "ts": 10}, {"ph": "I", "ts": 40}])
        model.receive([{"ph": "X", "ts": 25}])
        model.stream_complete()

        assert model.complete
        assert not model.collecting
        assert model.batch_count == 2
        assert len(model.events) == 3

    def test_rejects_non_object_events(self):
        model = TraceModel()
        model.begin_collecting(True)

        with pytest.raises(ValueError, match="must be an object"):
            model.receive([{"ph": "X"}, 42])
        assert model.events == []

    def test_reset_discards_everything(self):
        model = TraceModel()
        model.begin_collecting(True)
        model.receive([{"a": 1}])
        model.mark_loaded_from_file()
        model.reset()

        assert model.events == []
        assert model.batch_count == 0
        assert not model.loaded_from_file
        assert not model.complete

    def test_fresh_start_drops_previous_load(self):
        model = TraceModel()
        model.begin_collecting(True)
        model.receive([{"a": 1}])
        model.stream_complete()

        model.begin_collecting(True)
        model.receive([{"b": 2}])

        assert model.events == [{"b": 2}]

    def test_summary(self):
        model = TraceModel()
        model.receive([{"ph": "X", "ts": 10}, {"ph": "X", "ts": 40}, {"name": "meta"}])

        summary = model.summary()

        assert summary["events"] == 3
        assert summary["phases"] == {"X": 2, "?": 1}
        assert summary["first_ts"] == 10
        assert summary["last_ts"] == 40
        assert summary["duration"] == 30

    def test_summary_without_timestamps(self):
        summary = TraceModel().summary()
        assert summary["first_ts"] is None
        assert summary["duration"] == 0

    @pytest.mark.parametrize("batch_size", [1, 2, 5])
    def test_iter_fragments_concatenate_to_array_body(self, batch_size):
        events = [{"i": i} for i in range(5)]
        model = TraceModel()
        model.receive(events)

        fragments = list(model.iter_fragments(batch_size))

        assert json.loads("[" + "".join(fragments) + "]") == events
        assert not fragments[0].startswith(",")
        assert all(f.startswith(",") for f in fragments[1:])


class TestProgress:

    def test_null_progress_records_state(self):
        progress = NullProgress()
        progress.set_title("Loading")
        progress.set_total_work(10)
        progress.set_worked(3, "Loaded 3 B")
        progress.set_worked(4)

        assert (progress.title, progress.total_work, progress.worked) == ("Loading", 10, 4)
        assert progress.label == "Loaded 3 B"
        assert not progress.is_canceled()
        progress.cancel()
        assert progress.is_canceled()

    def test_logging_progress_logs_steps(self, caplog):
        progress = LoggingProgress(logging.getLogger("test.progress"), step_percent=50)
        with caplog.at_level(logging.INFO, logger="test.progress"):
            progress.set_title("Loading")
            progress.set_total_work(100)
            for worked in range(0, 101, 10):
                progress.set_worked(worked)
            progress.done()
            progress.done()

        info = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
        assert info == ["Loading", "Loading 0%", "Loading 50%", "Loading 100%", "Loading done"]

    @pytest.mark.parametrize("count,expected", [
        (0, "0 B"),
        (1023, "1023 B"),
        (1536, "1.5 KB"),
        (150000, "146 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
        (500 * 1024 * 1024, "500 MB"),
    ])
    def test_format_bytes(self, count, expected):
        assert format_bytes(count) == expected


class TestLoaderSettings:

    def test_defaults(self, clean_environment):
        settings = LoaderSettings.from_env()

        assert settings.chunk_size == 5000000
        assert settings.wrapper_key == "traceEvents"
        assert settings.legacy_marker == "Chrome"
        assert settings.max_key_search == 16 * 1024 * 1024
        assert settings.http_timeout == 30.0

    def test_environment_overrides(self, clean_environment, monkeypatch):
        monkeypatch.setenv("TRACE_CHUNK_SIZE", "4096")
        monkeypatch.setenv("TRACE_WRAPPER_KEY", "events")
        monkeypatch.setenv("TRACE_MAX_KEY_SEARCH", "0")
        monkeypatch.setenv("TRACE_HTTP_TIMEOUT", "2.5")

        settings = LoaderSettings.from_env()

        assert settings.chunk_size == 4096
        assert settings.wrapper_key == "events"
        assert settings.max_key_search == 0
        assert settings.http_timeout == 2.5

    def test_explicit_mapping(self):
        settings = LoaderSettings.from_env({"TRACE_LEGACY_MARKER": "Old"})
        assert settings.legacy_marker == "Old"

    @pytest.mark.parametrize("name,value", [
        ("TRACE_CHUNK_SIZE", "big"),
        ("TRACE_CHUNK_SIZE", "0"),
        ("TRACE_MAX_KEY_SEARCH", "-1"),
        ("TRACE_HTTP_TIMEOUT", "soon"),
    ])
    def test_invalid_values(self, name, value):
        with pytest.raises(ValueError, match=name):
            LoaderSettings.from_env({name: value})
