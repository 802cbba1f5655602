import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s: %(message)s"


def setup_logger(name: str = "llm_gateway", level: str = "INFO") -> logging.Logger:
    """Configure the package logger; every ``llm_gateway.*`` module logs through it.

    Under uvicorn we borrow its error-log handlers so gateway lines interleave
    with the server's own; otherwise a stdout handler is attached once.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if logger.handlers:
        return logger  # configured already

    uvicorn_handlers = logging.getLogger("uvicorn.error").handlers
    if uvicorn_handlers:
        for h in uvicorn_handlers:
            logger.addHandler(h)
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
