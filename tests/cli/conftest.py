import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_root_logger():  # noqa: D401
    """main() reconfigures the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
