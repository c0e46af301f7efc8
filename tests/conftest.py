"""Pytest configuration and shared fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def debug_logging(caplog: pytest.LogCaptureFixture) -> None:
    """Capture maria2 debug logs so dropped payloads show up in failures."""
    caplog.set_level(logging.DEBUG, logger="maria2")
