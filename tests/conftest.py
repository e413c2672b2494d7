# tests/conftest.py
import logging

import pytest


@pytest.fixture(autouse=True)
def package_logger():
    # the nvim plugin swaps handlers and turns propagation off; undo it per test
    logger = logging.getLogger("spotify_nvim")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate
