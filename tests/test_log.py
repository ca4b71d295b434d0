import logging

from dropmap.log import LogConfig, setup_logging


def test_setup_logging_plain_handler_and_quiet_httpx():
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        setup_logging(LogConfig(level="info", no_color=True))
        assert root.level == logging.INFO
        assert [type(h) for h in root.handlers] == [logging.StreamHandler]
        assert logging.getLogger("httpx").level == logging.WARNING

        setup_logging(LogConfig(level="DEBUG", no_color=True))
        assert logging.getLogger("httpx").level == logging.DEBUG
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
        logging.getLogger("httpx").setLevel(logging.NOTSET)
