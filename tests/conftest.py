"""
Shared pytest fixtures for convergent tests.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_convergent_logging():
    """Reset the package logger before and after each test.

    Tests start with only the library's NullHandler and an inherited
    level, so logging configured in one test cannot leak into another.
    """
    logger = logging.getLogger("convergent")

    def _reset():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            if not isinstance(handler, logging.NullHandler):
                handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)

    _reset()
    yield
    _reset()
