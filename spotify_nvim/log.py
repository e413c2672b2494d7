# spotify_nvim/log.py
"""Route the package's log records to the editor's message area."""

import logging
import threading

PREFIX = "[spotify-nvim]: "
LOGGER_NAME = "spotify_nvim"


class NvimHandler(logging.Handler):
    """
    INFO and below go through nvim.out_write, WARNING and up through err_write.
    Records from worker threads are scheduled onto the editor loop with
    nvim.async_call, since the nvim API may only be used from its own thread.
    """

    def __init__(self, nvim, level=logging.INFO):
        super().__init__(level)
        self.nvim = nvim
        self._loop_thread = threading.current_thread()
        self.setFormatter(logging.Formatter(PREFIX + "%(message)s"))

    def emit(self, record):
        try:
            line = self.format(record) + "\n"
            write = self.nvim.err_write if record.levelno >= logging.WARNING else self.nvim.out_write
            if threading.current_thread() is self._loop_thread:
                write(line)
            else:
                self.nvim.async_call(write, line)
        except Exception:
            self.handleError(record)


def configure_logging(nvim, level=logging.INFO) -> logging.Logger:
    """Attach a single NvimHandler to the package logger (safe to call again)."""
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, NvimHandler):
            logger.removeHandler(h)
    logger.addHandler(NvimHandler(nvim, level))
    logger.setLevel(level)
    # never print to stdio: it is the RPC channel
    logger.propagate = False

    for name in ("urllib3", "requests"):
        logging.getLogger(name).setLevel(logging.WARNING)
    return logger
