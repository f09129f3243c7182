import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "x-request-id"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s%(fields_suffix)s"

# Third-party loggers that are too chatty at our debug level
_QUIET_LOGGERS = {"PIL": logging.INFO, "uvicorn.access": logging.WARNING}

request_logger = logging.getLogger("qrpay.request")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        rid = request_id_ctx.get()
        record.request_id = rid or "-"
        return True


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = getattr(record, "fields", None)
    return fields if isinstance(fields, dict) else {}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        base: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "request_id": getattr(record, "request_id", "-"),
        }
        # Structured fields passed via `extra={"fields": {...}}`; they never
        # replace the base keys
        for key, value in _record_fields(record).items():
            base.setdefault(key, value)
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human readable variant for local runs; fields trail as key=value."""

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        fields = _record_fields(record)
        record.fields_suffix = (
            " " + " ".join(f"{k}={v}" for k, v in fields.items()) if fields else ""
        )
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return super().format(record)


def init_logging(debug: bool = False, json_output: bool = True) -> None:
    """Install the qrpay stdout handler on the root logger.

    Only a handler installed by a previous call is replaced, so calling this
    again (one app per test) does not pile up handlers or drop foreign ones.
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, "qrpay_handler", False):
            root.removeHandler(h)
    level = logging.DEBUG if debug else logging.INFO
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.qrpay_handler = True  # type: ignore[attr-defined]
    handler.setLevel(level)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(JsonFormatter() if json_output else TextFormatter())
    root.addHandler(handler)
    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


async def request_context_middleware(request, call_next):  # type: ignore
    """Bind a request id for the duration of the request and log one access line."""
    rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    token = request_id_ctx.set(rid)
    started = time.perf_counter()
    fields: Dict[str, Any] = {"method": request.method, "path": request.url.path}
    try:
        response = await call_next(request)
    except Exception:
        fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        request_logger.exception("request failed", extra={"fields": fields})
        raise
    else:
        response.headers[REQUEST_ID_HEADER] = rid
        fields["status"] = response.status_code
        fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        request_logger.info("request completed", extra={"fields": fields})
        return response
    finally:
        request_id_ctx.reset(token)
