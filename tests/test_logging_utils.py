import logging

import pytest

from longexpo.logging_utils import RUN_LOG_NAME, setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
        if h not in saved_handlers:
            h.close()
    for h in saved_handlers:
        root.addHandler(h)
    root.setLevel(saved_level)


def test_repeated_setup_does_not_duplicate_handlers(tmp_path, root_logger):
    setup_logging(tmp_path, "debug")
    setup_logging(tmp_path, "debug")
    kinds = sorted(type(h).__name__ for h in root_logger.handlers)
    assert kinds == ["FileHandler", "StreamHandler"]
    assert root_logger.level == logging.DEBUG

    logging.getLogger("longexpo.test").info("hello run log")
    for h in root_logger.handlers:
        h.flush()
    assert "hello run log" in (tmp_path / RUN_LOG_NAME).read_text()


def test_unknown_level_falls_back_to_info(root_logger):
    setup_logging(None, "chatty")
    assert root_logger.level == logging.INFO
    assert len(root_logger.handlers) == 1
