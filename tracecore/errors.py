"""Error kinds reported while loading a trace."""
import enum


class ReaderError(enum.Enum):
    """Platform error categories reported by a chunked reader."""
    NOT_FOUND = "not_found"
    NOT_READABLE = "not_readable"
    ABORTED = "aborted"
    OTHER = "other"


class TraceLoadError(Exception):
    """Base class for everything that terminates a load session."""


class UnrecognizedDocumentShape(TraceLoadError):
    """The document starts with neither '{' nor '['."""


class MalformedData(TraceLoadError):
    """A batch failed to parse or was rejected by the consumer."""


class LegacyFormatUnsupported(TraceLoadError):
    """The first record is an old-style version marker."""


class TransportError(TraceLoadError):
    def __init__(self, message: str, category: ReaderError = ReaderError.OTHER, resource: str = ""):
        super().__init__(message)
        self.category = category
        self.resource = resource
