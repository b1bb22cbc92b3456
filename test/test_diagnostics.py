"""
Tests for the frontend/backend diagnostics toggles.
"""

import logging

from omflow.diagnostics import BACKEND_LOGGER, FRONTEND_LOGGER, Diagnostics


def test_enable_is_idempotent():
    diagnostics = Diagnostics()
    logger = logging.getLogger(FRONTEND_LOGGER)
    handlers_before = list(logger.handlers)
    try:
        diagnostics.enable_frontend()
        diagnostics.enable_frontend()
        added = [h for h in logger.handlers if h not in handlers_before]
        assert len(added) == 1
        assert logger.level == logging.DEBUG
        assert diagnostics.state.frontend
        assert not diagnostics.state.backend
    finally:
        diagnostics.disable_frontend()
    assert logger.handlers == handlers_before


def test_disable_restores_level():
    diagnostics = Diagnostics()
    logger = logging.getLogger(BACKEND_LOGGER)
    logger.setLevel(logging.WARNING)
    try:
        diagnostics.enable_backend()
        assert logger.level == logging.DEBUG
        diagnostics.disable_backend()
        assert logger.level == logging.WARNING
        assert not diagnostics.state.backend
    finally:
        logger.setLevel(logging.NOTSET)


def test_disable_without_enable():
    diagnostics = Diagnostics()
    diagnostics.disable_frontend()
    diagnostics.disable_backend()
    assert not diagnostics.state.frontend
    assert not diagnostics.state.backend


def test_collaborator_debug_output_is_emitted(capsys):
    diagnostics = Diagnostics()
    diagnostics.enable_backend()
    try:
        logging.getLogger("omflow.backend.casadi").debug("Compiled Decay")
    finally:
        diagnostics.disable_backend()
    assert "DEBUG [omflow.backend.casadi] Compiled Decay" in capsys.readouterr().err


def test_shared_logger_stays_enabled_until_last_session_disables():
    first, second = Diagnostics(), Diagnostics()
    logger = logging.getLogger(FRONTEND_LOGGER)
    logger.setLevel(logging.WARNING)
    handlers_before = list(logger.handlers)
    try:
        first.enable_frontend()
        second.enable_frontend()
        assert len([h for h in logger.handlers if h not in handlers_before]) == 1

        first.disable_frontend()
        assert logger.level == logging.DEBUG
        assert len([h for h in logger.handlers if h not in handlers_before]) == 1
        assert second.state.frontend

        second.disable_frontend()
        assert logger.level == logging.WARNING
        assert logger.handlers == handlers_before
    finally:
        first.disable_frontend()
        second.disable_frontend()
        logger.setLevel(logging.NOTSET)


def test_repeated_disable_does_not_release_another_session():
    first, second = Diagnostics(), Diagnostics()
    logger = logging.getLogger(BACKEND_LOGGER)
    try:
        first.enable_backend()
        second.enable_backend()
        first.disable_backend()
        first.disable_backend()
        assert logger.level == logging.DEBUG
    finally:
        second.disable_backend()
    assert logger.level == logging.NOTSET
