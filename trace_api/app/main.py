#!/usr/bin/env python3
from fastapi import FastAPI, UploadFile, File, HTTPException
from fastapi.responses import JSONResponse, Response, StreamingResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
import codecs, logging, os
from typing import Iterator, List

from tracecore import (ConsoleDiagnostics, LoaderSettings, LoggingProgress,
                       MalformedData, TraceArrayWriter, TraceLoader, TraceModel)

app = FastAPI(title="Trace-Lite")
logger = logging.getLogger(__name__)

request_counter = Counter("trace_requests_total", "Total trace uploads")
events_counter = Counter("trace_events_total", "Trace events decoded")
error_counter = Counter("trace_load_errors_total", "Failed trace loads", ["kind"])
process_duration = Histogram("trace_process_seconds", "Time spent decoding uploads")


class _PendingStream:
    """Write target whose output is drained by a streaming response."""

    def __init__(self):
        self._parts: List[str] = []

    def write(self, text: str) -> None:
        self._parts.append(text)

    def drain(self) -> Iterator[str]:
        parts, self._parts = self._parts, []
        return iter(parts)


def _settings() -> LoaderSettings:
    try:
        return LoaderSettings.from_env()
    except ValueError as e:
        logger.error(f"Invalid loader configuration: {e}")
        error_counter.labels(kind="Configuration").inc()
        raise HTTPException(status_code=500, detail=f"Invalid loader configuration: {e}")


async def _decode_upload(file: UploadFile, settings: LoaderSettings):
    """Feed an upload through a TraceLoader chunk by chunk."""
    model = TraceModel()
    diagnostics = ConsoleDiagnostics(logger)
    loader = TraceLoader(model, LoggingProgress(logger), diagnostics=diagnostics,
                         wrapper_key=settings.wrapper_key,
                         legacy_marker=settings.legacy_marker,
                         max_key_search=settings.max_key_search)
    decoder = codecs.getincrementaldecoder("utf-8-sig")()
    total = 0
    with process_duration.time():
        while not loader.canceled:
            chunk = await file.read(settings.chunk_size)
            total += len(chunk)
            try:
                text = decoder.decode(chunk, final=not chunk)
            except UnicodeDecodeError as e:
                loader.abort(MalformedData(f"Upload is not valid UTF-8: {e}"))
                break
            if text:
                loader.write(text)
            if not chunk:
                loader.close()
                break

    if loader.canceled:
        kind = type(loader.error).__name__ if loader.error else "Canceled"
        error_counter.labels(kind=kind).inc()
        detail = diagnostics.messages[-1] if diagnostics.messages else "Trace load canceled"
        raise HTTPException(status_code=422, detail=detail)
    events_counter.inc(len(model.events))
    return model, loader, total


@app.get("/health", tags=["ops"])
def health():
    return {"status": "healthy"}


@app.get("/metrics", tags=["ops"])
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post("/traces/load", tags=["traces"])
async def load_trace(file: UploadFile = File(...)):
    request_counter.inc()
    model, loader, total = await _decode_upload(file, _settings())
    return JSONResponse({"filename": file.filename, "bytes": total,
                         "events": loader.events, "batches": loader.batches})


@app.post("/traces/normalize", tags=["traces"])
async def normalize_trace(file: UploadFile = File(...)):
    """Return the uploaded trace's events as a bare JSON array."""
    request_counter.inc()
    model, _, _ = await _decode_upload(file, _settings())

    def render():
        out = _PendingStream()
        writer = TraceArrayWriter(out)
        writer.on_transfer_started()
        for fragment in model.iter_fragments():
            out.write(fragment)
            yield from out.drain()
        writer.on_transfer_finished()
        yield from out.drain()

    return StreamingResponse(render(), media_type="application/json")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
