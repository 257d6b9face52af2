"""
Console + per-render log file output.

log() prints a line and, when the current thread has a render log attached,
mirrors it there. Each render runs on one thread (the CLI's main thread or a
FastAPI threadpool worker), so concurrent renders never share a log file.

Usage:
    from services.osmsvg.utils.logging import log, log_span, set_log_file, close_log_file

    set_log_file(open("render.log", "w", encoding="utf-8"))
    try:
        with log_span("[STITCH] coastlines"):
            ...
        log("[EXPORT] 4213 elements")
    finally:
        close_log_file()
"""

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO


_render_log = threading.local()


def get_log_file() -> Optional[TextIO]:
    """Log file attached to the current thread, if any."""
    return getattr(_render_log, "file", None)


def set_log_file(log_file: Optional[TextIO]) -> None:
    """Attach (or with None, detach) the current thread's log file."""
    _render_log.file = log_file


def close_log_file() -> None:
    """Detach and close the current thread's log file. Idempotent."""
    log_file = get_log_file()
    if log_file is None:
        return
    set_log_file(None)
    try:
        log_file.close()
    except OSError:
        pass


def log(message: str) -> None:
    """
    Print a message and mirror it into the thread's log file.

    Example:
        >>> log("[LOAD] 1200 ways classified")
        [LOAD] 1200 ways classified
    """
    print(message)
    log_file = get_log_file()
    if log_file is None:
        return
    try:
        log_file.write(f"{message}\n")
        log_file.flush()
    except (OSError, ValueError):
        # Closed or unwritable log file must not break the render
        pass


@contextmanager
def log_span(label: str, enabled: bool = True) -> Iterator[None]:
    """
    Log the wall-clock duration of a pipeline phase.

    Args:
        label: Phase label, e.g. "[STITCH] coastlines"
        enabled: When False nothing is logged (the block still runs)

    Example:
        >>> with log_span("[EXPORT] nyc.svg"):
        ...     renderer.export("nyc.svg", layer_order)
        [EXPORT] nyc.svg: 12.4ms
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        if enabled:
            log(f"{label}: {(time.perf_counter() - start) * 1000.0:.1f}ms")
