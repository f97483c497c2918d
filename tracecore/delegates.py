"""Reader delegates: progress relay for loads and array wrapping for saves."""
import logging
from typing import Iterable, Optional

from .errors import ReaderError, TransportError
from .progress import ConsoleDiagnostics

logger = logging.getLogger(__name__)


class FileLoadDelegate:
    """Relays a chunked file reader's lifecycle to progress and the trace model."""

    def __init__(self, model, progress, diagnostics=None):
        self._model = model
        self._progress = progress
        self._diagnostics = diagnostics or ConsoleDiagnostics()
        self.error: Optional[TransportError] = None

    def on_transfer_started(self) -> None:
        self._progress.set_title("Loading…")

    def on_chunk_transferred(self, reader) -> None:
        if self._progress.is_canceled():
            logger.info("Loading of %s canceled", reader.file_name())
            reader.cancel()
            self._progress.done()
            self._model.reset()
            return

        total_size = reader.file_size()
        if total_size:
            self._progress.set_total_work(total_size)
            self._progress.set_worked(reader.loaded_size())

    def on_transfer_finished(self) -> None:
        self._progress.done()

    def on_error(self, reader, code: ReaderError) -> None:
        self._progress.done()
        self._model.reset()
        name = reader.file_name()
        if code is ReaderError.NOT_FOUND:
            message = f'File "{name}" not found.'
        elif code is ReaderError.NOT_READABLE:
            message = f'File "{name}" is not readable'
        elif code is ReaderError.ABORTED:
            message = None
        else:
            message = f'An error occurred while reading the file "{name}"'
        self.error = TransportError(message or f'Reading "{name}" was aborted', code, name)
        if message:
            self._diagnostics.error(message)


class TraceArrayWriter:
    """Wraps pre-serialized event fragments in a JSON array on the way out."""

    def __init__(self, stream):
        self._stream = stream

    def on_transfer_started(self) -> None:
        self._stream.write("[")

    def on_transfer_finished(self) -> None:
        self._stream.write("]")

    def on_chunk_transferred(self, reader) -> None:
        pass

    def on_error(self, reader, code: ReaderError) -> None:
        pass


def save_trace(stream, fragments: Iterable[str]) -> None:
    """Write fragments (already comma-separated) to stream as one JSON array."""
    writer = TraceArrayWriter(stream)
    writer.on_transfer_started()
    for fragment in fragments:
        stream.write(fragment)
    writer.on_transfer_finished()
