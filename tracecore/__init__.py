"""Streaming loader for JSON performance traces."""
from .config import LoaderSettings
from .delegates import FileLoadDelegate, TraceArrayWriter, save_trace
from .errors import (LegacyFormatUnsupported, MalformedData, ReaderError,
                     TraceLoadError, TransportError, UnrecognizedDocumentShape)
from .loader import (DecoderState, TraceLoader, load_from_file,
                     load_from_stream, load_from_url)
from .model import TraceModel
from .progress import ConsoleDiagnostics, LoggingProgress, NullProgress
from .reader import ChunkedFileReader
from .tokenizer import BalancedJSONTokenizer

__all__ = [
    "BalancedJSONTokenizer",
    "ChunkedFileReader",
    "ConsoleDiagnostics",
    "DecoderState",
    "FileLoadDelegate",
    "LegacyFormatUnsupported",
    "LoaderSettings",
    "LoggingProgress",
    "MalformedData",
    "NullProgress",
    "ReaderError",
    "TraceArrayWriter",
    "TraceLoadError",
    "TraceLoader",
    "TraceModel",
    "TransportError",
    "UnrecognizedDocumentShape",
    "load_from_file",
    "load_from_stream",
    "load_from_url",
    "save_trace",
]
