#!/usr/bin/env python3
"""Shared pytest fixtures for the trace-lite test suite."""

import pytest
import pathlib
import sys
from typing import Any, Dict, List
from unittest.mock import MagicMock

# Add parent directory to path for imports
sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))

from tests.fixtures.generate_test_data import (
    generate_trace_events,
    generate_bare_trace,
    generate_wrapped_trace,
    write_trace_file,
)
from tests.fixtures.recording_model import RecordingModel
from tracecore import ConsoleDiagnostics, NullProgress, TraceLoader


# ============================================================================
# Loader Fixtures
# ============================================================================

@pytest.fixture
def model() -> RecordingModel:
    return RecordingModel()


@pytest.fixture
def progress() -> NullProgress:
    return NullProgress()


@pytest.fixture
def diagnostics() -> ConsoleDiagnostics:
    return ConsoleDiagnostics()


@pytest.fixture
def canceled_callback() -> MagicMock:
    return MagicMock()


@pytest.fixture
def loader(model, progress, diagnostics, canceled_callback) -> TraceLoader:
    """A TraceLoader wired to recording collaborators."""
    return TraceLoader(model, progress, canceled_callback, diagnostics=diagnostics)


@pytest.fixture
def make_loader(progress, diagnostics, canceled_callback):
    """Factory for loaders with custom options; returns (loader, model)."""
    def _make(**kwargs):
        recording = RecordingModel(kwargs.pop("reject_after", -1))
        return TraceLoader(recording, progress, canceled_callback, diagnostics=diagnostics, **kwargs), recording
    return _make


# ============================================================================
# Test Data Fixtures
# ============================================================================

@pytest.fixture
def sample_events() -> List[Dict[str, Any]]:
    return generate_trace_events(200)


@pytest.fixture
def bare_trace(sample_events) -> str:
    return generate_bare_trace(sample_events)


@pytest.fixture
def wrapped_trace(sample_events) -> str:
    return generate_wrapped_trace(sample_events, metadata={"metadata": {"source": "test", "note": "[{}]"}})


@pytest.fixture
def trace_file(tmp_path) -> pathlib.Path:
    """A small bare-array trace file."""
    return write_trace_file(tmp_path / "trace.json", 100)


@pytest.fixture
def wrapped_trace_file(tmp_path) -> pathlib.Path:
    """A small {"traceEvents": [...]} trace file."""
    return write_trace_file(tmp_path / "wrapped.json", 100, wrapped=True)


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def clean_environment(monkeypatch):
    """Ensure a clean environment for tests."""
    env_vars_to_remove = ['TRACE_CHUNK_SIZE', 'TRACE_WRAPPER_KEY', 'TRACE_LEGACY_MARKER',
                          'TRACE_MAX_KEY_SEARCH', 'TRACE_HTTP_TIMEOUT', 'DEBUG']
    for var in env_vars_to_remove:
        monkeypatch.delenv(var, raising=False)

    yield


# ============================================================================
# Performance Testing Fixtures
# ============================================================================

@pytest.fixture
def memory_profiler():
    """Setup memory profiling for tests."""
    try:
        from memory_profiler import memory_usage
    except ImportError:
        pytest.skip("memory_profiler not installed")

    def profile_memory(func, *args, **kwargs):
        """Profile memory usage (MiB) of a function."""
        mem_usage = memory_usage((func, args, kwargs), interval=0.05)
        return {
            "min": min(mem_usage),
            "max": max(mem_usage),
            "avg": sum(mem_usage) / len(mem_usage)
        }

    return profile_memory


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
    config.addinivalue_line("markers", "benchmark: marks benchmark tests")
