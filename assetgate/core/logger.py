import atexit
import logging
import os
import queue
import sys
import threading
import time
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import httpx
from loguru import logger

from assetgate.core.config import Environment, settings

if TYPE_CHECKING:
    from loguru import Message, Record

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "app.log"

LOG_LEVELS = {
    50: "CRITICAL",
    40: "ERROR",
    30: "WARNING",
    20: "INFO",
    10: "DEBUG",
    0: "NOTSET",
}

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>PID:{extra[process_id]}</magenta> | "
    "<yellow>ReqID:{extra[request_id]}</yellow> | "
    "<cyan>{name}:{function}:{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss!UTC} | "
    "{level: <8} | "
    "PID:{extra[process_id]} | "
    "ReqID:{extra[request_id]} | "
    "{name}:{function}:{line} | "
    "{message}"
)


def mask_email(email: str | None) -> str:
    """
    Shorten an email address for log lines: ``jane.doe@example.com`` -> ``j***@example.com``.
    """
    if not email:
        return "<none>"

    local, _, domain = email.partition("@")
    if not domain:
        return "***"

    return f"{local[:1]}***@{domain}"


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Keep only the last ``visible`` characters of a license key or token."""
    if not value:
        return "<none>"

    return f"***{value[-visible:]}" if len(value) > visible else "***"


class OpenObserveHandler:
    """
    Ships log records to OpenObserve from a background thread.

    Records are queued without blocking the event loop, batched by size or interval
    and posted with retries. Pending records are flushed on shutdown.
    """

    def __init__(
        self,
        url: str,
        token: str,
        org: str = "default",
        stream: str = "default",
        batch_size: int = 10,
        flush_interval: float = 5.0,
        max_retries: int = 3,
    ):
        self.endpoint = f"{url.rstrip('/')}/api/{org}/{stream}/_json"
        self.token = token
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.max_retries = max_retries

        self.log_queue: queue.Queue = queue.Queue(maxsize=1000)
        self.shutdown_event = threading.Event()
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

        self.worker_thread = threading.Thread(
            target=self._worker_loop, daemon=True, name="OpenObserveWorker"
        )
        self.worker_thread.start()
        atexit.register(self.shutdown)

    def _get_client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=10.0,
                    limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                )

        return self._client

    def _worker_loop(self):
        batch: list[dict[str, Any]] = []
        last_flush = time.monotonic()

        while not self.shutdown_event.is_set():
            try:
                batch.append(self.log_queue.get(timeout=1.0))
            except queue.Empty:
                pass

            now = time.monotonic()
            if len(batch) >= self.batch_size or (
                batch and now - last_flush >= self.flush_interval
            ):
                self._flush_batch(batch)
                batch = []
                last_flush = now

        while not self.log_queue.empty():
            batch.append(self.log_queue.get_nowait())

        self._flush_batch(batch)

    def _flush_batch(self, batch: list[dict[str, Any]]):
        """Post one batch, retrying with exponential backoff."""
        if not batch:
            return

        headers = {"Authorization": f"Basic {self.token}"}

        for attempt in range(self.max_retries):
            try:
                response = self._get_client().post(self.endpoint, json=batch, headers=headers)
                response.raise_for_status()
                return
            except httpx.HTTPError as e:
                if attempt == self.max_retries - 1:
                    print(
                        f"Dropped {len(batch)} log records for OpenObserve: {e}",
                        file=sys.stderr,
                    )
                else:
                    time.sleep(2**attempt)

    def send_log(self, log_data: dict[str, Any]):
        try:
            self.log_queue.put_nowait(log_data)
        except queue.Full:
            print("OpenObserve queue full, dropping log", file=sys.stderr)

    def shutdown(self):
        if self.shutdown_event.is_set():
            return

        self.shutdown_event.set()
        if self.worker_thread.is_alive():
            self.worker_thread.join(timeout=10.0)

        if self._client is not None:
            self._client.close()


_openobserve_handler: Optional[OpenObserveHandler] = None


def correlation_filter(record: "Record") -> bool:
    """
    Attach the request and process ids to each record.

    Records about the OpenObserve HTTP calls themselves are dropped.

    Args:
        record (Record): Log record from Loguru.

    Returns:
        bool: True to include the log, False to filter it out.
    """
    if settings.openobserve_url and settings.openobserve_url in record["message"]:
        return False

    record["extra"]["request_id"] = request_id_var.get() or str(uuid.uuid4())[:8]
    record["extra"]["process_id"] = os.getpid()

    return True


class InterceptHandler(logging.Handler):
    """
    Redirects standard logging records (uvicorn, celery, sqlalchemy) to Loguru.
    """

    def emit(self, record: logging.LogRecord):
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _openobserve_sink(message: "Message"):
    if _openobserve_handler is None:
        return

    record = message.record
    payload = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "process_id": record["extra"].get("process_id"),
        "request_id": record["extra"].get("request_id"),
        "module": record["name"],
        "function": record["function"],
        "line": record["line"],
        "environment": settings.current_environment.value,
        "service": settings.app_name,
    }

    if record["exception"]:
        payload["exception"] = str(record["exception"])

    _openobserve_handler.send_log(payload)


def setup_logger():
    """
    Configure Loguru for the API process and the Celery workers.

    Console output is colored, the file sink rotates at 10 MB and keeps three months of
    gzip archives, and OpenObserve shipping is enabled with ``LOG_TO_OPENOBSERVE``.
    Every sink is enqueued so several workers can share the same file.
    """
    global _openobserve_handler

    logger.remove()
    log_level = LOG_LEVELS.get(settings.log_level, "INFO")

    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level="DEBUG" if settings.current_environment == Environment.DEV else log_level,
        colorize=True,
        enqueue=True,
        filter=correlation_filter,
    )

    LOG_DIR.mkdir(exist_ok=True)
    logger.add(
        LOG_FILE,
        format=FILE_FORMAT,
        level=log_level,
        rotation="10 MB",
        retention="3 months",
        compression="gz",
        enqueue=True,
        filter=correlation_filter,
        backtrace=True,
        diagnose=settings.current_environment != Environment.PRD,
    )

    if settings.log_to_openobserve and settings.openobserve_url:
        _openobserve_handler = OpenObserveHandler(
            url=settings.openobserve_url,
            token=settings.openobserve_access_key,
            org=settings.openobserve_org_id,
            stream=settings.openobserve_stream_name,
            batch_size=settings.openobserve_batch_size,
            flush_interval=settings.openobserve_flush_interval,
        )
        logger.add(
            _openobserve_sink,
            level=log_level,
            enqueue=True,
            filter=correlation_filter,
        )
        logger.info(
            f"OpenObserve logging enabled | Stream: {settings.openobserve_stream_name} | "
            f"Batch: {settings.openobserve_batch_size}"
        )

    logger.info(
        f"Logger initialized | Environment: {settings.current_environment.value} | "
        f"Level: {log_level}"
    )


def configure_uvicorn_logging():
    """
    Route uvicorn's standard logging through Loguru. Call after ``setup_logger()``.
    """
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in list(logging.root.manager.loggerDict.keys()):
        if name.startswith("uvicorn"):
            logging.getLogger(name).handlers = [InterceptHandler()]
            logging.getLogger(name).propagate = False

    logger.debug("Uvicorn logging configured to use Loguru")


def shutdown_logger():
    """
    Flush pending records and stop the OpenObserve worker.
    """
    global _openobserve_handler

    logger.info("Shutting down logger...")

    if _openobserve_handler is not None:
        _openobserve_handler.shutdown()
        _openobserve_handler = None

    logger.complete()
