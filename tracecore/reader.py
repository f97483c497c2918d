"""Chunked local file reader feeding text fragments to an output stream."""
import codecs
import logging
import os
import pathlib
from typing import Union

from .errors import ReaderError

logger = logging.getLogger(__name__)


def error_code_for(exc: BaseException) -> ReaderError:
    if isinstance(exc, FileNotFoundError):
        return ReaderError.NOT_FOUND
    if isinstance(exc, (PermissionError, IsADirectoryError)):
        return ReaderError.NOT_READABLE
    return ReaderError.OTHER


class ChunkedFileReader:
    """Reads a file in fixed-size byte chunks and writes decoded text to an output.

    The output receives ``write(text)`` per chunk and ``close()`` at end of file;
    the delegate is told about progress, completion and errors.
    """

    def __init__(self, path: Union[str, pathlib.Path], chunk_size: int, delegate):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._path = pathlib.Path(path)
        self._chunk_size = chunk_size
        self._delegate = delegate
        self._file_size = 0
        self._loaded_size = 0
        self._canceled = False

    def file_name(self) -> str:
        return self._path.name

    def file_size(self) -> int:
        return self._file_size

    def loaded_size(self) -> int:
        return self._loaded_size

    def cancel(self) -> None:
        self._canceled = True

    def start(self, output) -> None:
        self._delegate.on_transfer_started()
        # utf-8-sig drops a leading byte order mark
        decoder = codecs.getincrementaldecoder("utf-8-sig")()
        try:
            self._file_size = os.path.getsize(self._path)
            with open(self._path, "rb") as f:
                while not self._canceled:
                    data = f.read(self._chunk_size)
                    if not data:
                        tail = decoder.decode(b"", final=True)
                        if tail:
                            output.write(tail)
                        break
                    self._loaded_size += len(data)
                    text = decoder.decode(data)
                    if text:
                        output.write(text)
                    self._delegate.on_chunk_transferred(self)
        except OSError as e:
            logger.debug(f"read of {self._path} failed: {e}")
            self._delegate.on_error(self, error_code_for(e))
            return
        except UnicodeDecodeError as e:
            logger.debug(f"{self._path} is not valid UTF-8: {e}")
            self._delegate.on_error(self, ReaderError.OTHER)
            return
        except KeyboardInterrupt:
            self._delegate.on_error(self, ReaderError.ABORTED)
            raise

        if self._canceled:
            logger.debug("read of %s stopped after %d bytes", self._path, self._loaded_size)
            return
        output.close()
        self._delegate.on_transfer_finished()
