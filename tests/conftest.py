from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from savekeep_engine.logging_setup import LOGGER_NAME


@pytest.fixture(autouse=True)
def _reset_engine_logger() -> Iterator[None]:
    # CLI tests install handlers bound to captured streams; drop them afterwards.
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
