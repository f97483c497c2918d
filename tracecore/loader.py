"""Streaming trace loader.

Decodes a trace document, either a bare JSON array of events or an object
holding that array under ``traceEvents``, from text fragments of any size and
hands the events to a trace model in batches.
"""
import codecs
import enum
import json
import logging
import pathlib
from typing import Callable, Iterable, Optional, Union

import httpx

from .config import (DEFAULT_LEGACY_MARKER, DEFAULT_MAX_KEY_SEARCH,
                     DEFAULT_WRAPPER_KEY, LoaderSettings)
from .delegates import FileLoadDelegate
from .errors import (LegacyFormatUnsupported, MalformedData, ReaderError,
                     TraceLoadError, TransportError, UnrecognizedDocumentShape)
from .progress import ConsoleDiagnostics, NullProgress, format_bytes
from .reader import ChunkedFileReader
from .tokenizer import BalancedJSONTokenizer

logger = logging.getLogger(__name__)


class DecoderState(enum.Enum):
    INITIAL = "Initial"
    LOOKING_FOR_EVENTS = "LookingForEvents"
    READING_EVENTS = "ReadingEvents"


class TraceLoader:
    """Push-based decoder: call write() per fragment in order, then close()."""

    TOTAL_PROGRESS = 100000  # real size is unknown, so progress wraps around

    def __init__(self, model, progress, canceled_callback: Optional[Callable[[], None]] = None,
                 diagnostics=None, wrapper_key: str = DEFAULT_WRAPPER_KEY,
                 legacy_marker: str = DEFAULT_LEGACY_MARKER,
                 max_key_search: int = DEFAULT_MAX_KEY_SEARCH,
                 loaded_from_file: bool = False):
        self._model = model
        self._progress = progress
        self._canceled_callback = canceled_callback
        self._diagnostics = diagnostics or ConsoleDiagnostics()
        self._wrapper_key = wrapper_key
        self._marker = f'"{wrapper_key}":'
        self._legacy_marker = legacy_marker
        self._max_key_search = max_key_search
        self._loaded_from_file = loaded_from_file

        self._progress.set_title("Loading")
        self._progress.set_total_work(self.TOTAL_PROGRESS)

        self.state = DecoderState.INITIAL
        self._buffer = ""
        self._searched = 0
        self._first_chunk = True
        self._canceled = False
        self.loaded_bytes = 0
        self.batches = 0
        self.events = 0
        self.error: Optional[TraceLoadError] = None
        self._tokenizer = BalancedJSONTokenizer(self._write_balanced_json)

    @property
    def canceled(self) -> bool:
        """True once the session was terminated by an error or a cancel request."""
        return self._canceled

    def write(self, chunk: str) -> None:
        self.loaded_bytes += len(chunk)
        if self._canceled:
            return
        if self._progress.is_canceled():
            self._report_error_and_cancel_loading()
            return
        self._progress.set_worked(self.loaded_bytes % self.TOTAL_PROGRESS,
                                  f"Loaded {format_bytes(self.loaded_bytes)}")
        if not chunk:
            return

        if self.state is DecoderState.INITIAL:
            if chunk[0] == "{":
                self.state = DecoderState.LOOKING_FOR_EVENTS
            elif chunk[0] == "[":
                self.state = DecoderState.READING_EVENTS
            else:
                self._fail(UnrecognizedDocumentShape("Malformed timeline data: Unknown JSON format"))
                return

        if self.state is DecoderState.LOOKING_FOR_EVENTS:
            start = max(0, len(self._buffer) - len(self._marker))
            self._buffer += chunk
            pos = self._buffer.find(self._marker, start)
            if pos == -1:
                self._searched += len(chunk)
                if self._max_key_search and self._searched > self._max_key_search:
                    self._fail(MalformedData(
                        f'Malformed timeline data: "{self._wrapper_key}" not found '
                        f"in the first {format_bytes(self._max_key_search)}"))
                    return
                self._buffer = self._buffer[-len(self._marker):]
                return
            chunk = self._buffer[pos + len(self._marker):]
            self._buffer = ""
            self.state = DecoderState.READING_EVENTS
            logger.debug("Found %s after %d characters", self._marker, self._searched + pos)

        try:
            self._tokenizer.write(chunk)
        except ValueError as e:
            self._fail(MalformedData(f"Malformed timeline data: {e}"))

    def _write_balanced_json(self, data: str) -> None:
        json_text = data + "]"

        if self._first_chunk:
            self._model.begin_collecting(True)
        else:
            comma_index = json_text.find(",")
            if comma_index != -1:
                json_text = json_text[comma_index + 1:]
            json_text = "[" + json_text

        try:
            items = json.loads(json_text)
        except json.JSONDecodeError as e:
            self._fail(MalformedData(f"Malformed timeline data: {e}"))
            return

        if self._first_chunk:
            self._first_chunk = False
            if items and self._looks_like_app_version(items[0]):
                self._fail(LegacyFormatUnsupported("Legacy Timeline format is not supported."))
                return

        try:
            self._model.receive(items)
        except Exception as e:
            self._fail(MalformedData(f"Malformed timeline data: {e}"))
            return
        self.batches += 1
        self.events += len(items)

    def _looks_like_app_version(self, item) -> bool:
        return isinstance(item, str) and self._legacy_marker in item

    def abort(self, error: Optional[TraceLoadError] = None) -> None:
        """Terminate the session from outside, e.g. on a transport failure."""
        if error is None:
            self._report_error_and_cancel_loading()
        else:
            self._fail(error)

    def _fail(self, error: TraceLoadError) -> None:
        if self._canceled:
            return
        self.error = error
        self._report_error_and_cancel_loading(str(error))

    def _report_error_and_cancel_loading(self, message: Optional[str] = None) -> None:
        if self._canceled:
            return
        self._canceled = True
        if message:
            self._diagnostics.error(message)
        self._model.stream_complete()
        self._model.reset()
        if self._canceled_callback:
            self._canceled_callback()
        self._progress.done()

    def close(self) -> None:
        if self._canceled:
            logger.debug("close() after the load was terminated; ignoring")
            return
        if self.state is DecoderState.INITIAL:
            self._fail(UnrecognizedDocumentShape("Malformed timeline data: Empty document"))
            return
        if self.state is DecoderState.LOOKING_FOR_EVENTS:
            self._fail(MalformedData(f'Malformed timeline data: "{self._wrapper_key}" not found'))
            return
        if not self._tokenizer.closed:
            logger.warning("Trace ended before the event array was closed; %d events loaded", self.events)

        if self._loaded_from_file:
            self._model.mark_loaded_from_file()
        self._model.stream_complete()
        self._progress.done()


def _loader_kwargs(settings: Optional[LoaderSettings]) -> dict:
    settings = settings or LoaderSettings()
    return {
        "wrapper_key": settings.wrapper_key,
        "legacy_marker": settings.legacy_marker,
        "max_key_search": settings.max_key_search,
    }


def load_from_file(model, path: Union[str, pathlib.Path], progress, diagnostics=None,
                   settings: Optional[LoaderSettings] = None):
    """Load a trace file. Returns (loader, delegate) once the read has finished."""
    settings = settings or LoaderSettings()
    diagnostics = diagnostics or ConsoleDiagnostics()
    delegate = FileLoadDelegate(model, progress, diagnostics)
    reader = ChunkedFileReader(path, settings.chunk_size, delegate)
    # the delegate reports real file progress, so the loader's own goes nowhere
    loader = TraceLoader(model, NullProgress(), reader.cancel, diagnostics=diagnostics,
                         loaded_from_file=True, **_loader_kwargs(settings))
    reader.start(loader)
    if loader.canceled:
        # the reader stops silently when the loader gives up; done() is idempotent
        progress.done()
    return loader, delegate


def load_from_stream(model, fragments: Iterable[str], progress, diagnostics=None,
                     settings: Optional[LoaderSettings] = None) -> TraceLoader:
    """Load a trace from an iterable of text fragments."""
    loader = TraceLoader(model, progress, diagnostics=diagnostics, **_loader_kwargs(settings))
    for fragment in fragments:
        loader.write(fragment)
        if loader.canceled:
            close = getattr(fragments, "close", None)
            if close is not None:
                close()
            return loader
    loader.close()
    return loader


def load_from_url(model, url: str, progress, diagnostics=None,
                  settings: Optional[LoaderSettings] = None,
                  client: Optional[httpx.Client] = None) -> TraceLoader:
    """Stream a trace over HTTP(S).

    The body is decoded as UTF-8 (BOM dropped) whatever charset the server
    declares, matching ChunkedFileReader.
    """
    settings = settings or LoaderSettings()
    loader = TraceLoader(model, progress, diagnostics=diagnostics, **_loader_kwargs(settings))
    decoder = codecs.getincrementaldecoder("utf-8-sig")()
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=settings.http_timeout, follow_redirects=True)
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            for data in response.iter_bytes():
                text = decoder.decode(data)
                if text:
                    loader.write(text)
                if loader.canceled:
                    break
            else:
                tail = decoder.decode(b"", final=True)
                if tail:
                    loader.write(tail)
                loader.close()
    except UnicodeDecodeError as e:
        loader.abort(MalformedData(f'"{url}" is not valid UTF-8: {e}'))
    except httpx.HTTPError as e:
        logger.debug(f"GET {url} failed: {e}")
        loader.abort(TransportError(f'Failed to load "{url}": {e}', ReaderError.OTHER, url))
    finally:
        if owns_client:
            client.close()
    return loader
