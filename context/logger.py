# ─── Hierarchical Call Stack Tracking ─────────────────────────────────────────
import contextvars
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

from loguru import logger as _loguru

import context._globals as _globals

# A context variable holding the current call‐stack as a tuple of step names
_call_stack = contextvars.ContextVar("_call_stack", default=())


@contextmanager
def log_func(name: str):
    """
    Context manager to push/pop a step name onto the call stack.
    """
    token = _call_stack.set(_call_stack.get() + (name,))
    try:
        yield
    finally:
        _call_stack.reset(token)


def _enrich_record(record):
    """
    Loguru patch function: injects extra['func'] = dot-joined call stack.
    """
    stack = _call_stack.get()
    record["extra"]["func"] = ".".join(stack) if stack else "djazure"


# Every record gets extra['func'], configured or not
_loguru.configure(patcher=_enrich_record)


# ─── Logger Utility ───────────────────────────────────────────────────────────

class Logger:
    """
    Logger utility using loguru with UUID‐tagged session identity.
    Adds a patch to include hierarchical step names in every record.
    """

    _configured = False
    _uuid = None
    _log_path = None
    _handler_ids = SimpleNamespace(file=None, console=None)

    FORMAT = (
        "<green>{time:HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[func]}</cyan> | "
        "{message}"
    )

    @staticmethod
    def init_logger(
            log_dir: Path = None,
            label: str = None,
            pretty_console: bool = True,
            level: str = "INFO",
    ):
        """
        Initialize the loguru logger with console output and a per-run log file.
        Logs include a hierarchical step name from the call stack.
        """
        if Logger._configured:
            return _loguru

        log_dir = Path(log_dir or _globals.GLOBAL_LOG_DIR)

        Logger._uuid = str(uuid.uuid4())
        Logger._configured = True

        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")
        suffix = f"__{label}" if label else f"__{Logger._uuid[:8]}"
        log_file = log_dir / f"{timestamp}{suffix}.log"
        Logger._log_path = log_file

        # Remove default handlers
        _loguru.remove()

        if pretty_console:
            Logger._handler_ids.console = _loguru.add(
                sys.stderr, level=level, colorize=True, format=Logger.FORMAT
            )

        Logger._handler_ids.file = _loguru.add(
            str(log_file), level="DEBUG", format=Logger.FORMAT, encoding="utf-8"
        )
        _loguru.debug("[Logger Init] UUID={} → {}", Logger._uuid, log_file)
        return _loguru

    @staticmethod
    def log_path():
        return Logger._log_path

    @staticmethod
    def reset():
        _loguru.remove()
        _loguru.add(sys.stderr, format=Logger.FORMAT)
        Logger._configured = False
        Logger._uuid = None
        Logger._log_path = None
        Logger._handler_ids = SimpleNamespace(file=None, console=None)
