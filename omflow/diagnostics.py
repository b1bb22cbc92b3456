"""
Verbose diagnostics toggles for the frontend and backend collaborators.

Collaborators log their stage-by-stage progress at DEBUG on the
``omflow.frontend`` and ``omflow.backend`` loggers. Enabling diagnostics
lowers the respective logger to DEBUG and attaches a stream handler so the
output is visible without any further logging setup.

Loggers are process-wide while diagnostics flags belong to a session, so
the handler and the saved level are shared: the first session to enable a
logger attaches them and the last one to disable it restores the logger.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

FRONTEND_LOGGER = "omflow.frontend"
BACKEND_LOGGER = "omflow.backend"

_FORMAT = "%(levelname)s [%(name)s] %(message)s"

_lock = threading.Lock()
# logger name -> (handler, level before the first enable, number of holders)
_active: dict[str, tuple[logging.Handler, int, int]] = {}


def _acquire(name: str) -> None:
    with _lock:
        entry = _active.get(name)
        if entry is not None:
            handler, saved_level, holders = entry
            _active[name] = (handler, saved_level, holders + 1)
            return
        logger = logging.getLogger(name)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler.setLevel(logging.DEBUG)
        _active[name] = (handler, logger.level, 1)
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)


def _release(name: str) -> None:
    with _lock:
        entry = _active.get(name)
        if entry is None:
            return
        handler, saved_level, holders = entry
        if holders > 1:
            _active[name] = (handler, saved_level, holders - 1)
            return
        del _active[name]
        logger = logging.getLogger(name)
        logger.removeHandler(handler)
        logger.setLevel(saved_level)


@dataclass
class DiagnosticsState:
    frontend: bool = False
    backend: bool = False


@dataclass
class Diagnostics:
    """Owns the diagnostics flags of one session."""

    state: DiagnosticsState = field(default_factory=DiagnosticsState)

    def enable_frontend(self) -> None:
        if not self.state.frontend:
            _acquire(FRONTEND_LOGGER)
        self.state.frontend = True

    def enable_backend(self) -> None:
        if not self.state.backend:
            _acquire(BACKEND_LOGGER)
        self.state.backend = True

    def disable_frontend(self) -> None:
        if self.state.frontend:
            _release(FRONTEND_LOGGER)
        self.state.frontend = False

    def disable_backend(self) -> None:
        if self.state.backend:
            _release(BACKEND_LOGGER)
        self.state.backend = False
