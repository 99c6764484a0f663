from __future__ import annotations

import logging

import pytest

from anitrack_backend.utils.logging import LOG_FORMAT, setup_logging


@pytest.fixture()
def restore_root_logger():  # noqa: ANN201
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_replaces_handlers_and_sets_level(restore_root_logger: logging.Logger) -> None:
    setup_logging("debug")
    setup_logging("DEBUG")

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1
    assert restore_root_logger.handlers[0].formatter._fmt == LOG_FORMAT
    assert logging.getLogger("urllib3").level == logging.WARNING


def test_setup_logging_falls_back_to_info(restore_root_logger: logging.Logger) -> None:
    setup_logging("chatty")
    assert restore_root_logger.level == logging.INFO
