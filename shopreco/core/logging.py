# shopreco/core/logging.py
import logging
import sys
import colorlog

LOG_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s [%(name)s]%(reset)s %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Third-party loggers that flood DEBUG output with connection/request noise
NOISY_LOGGERS = ("pymongo", "motor", "httpx", "httpcore", "openai")


def configure_logging(level=logging.INFO, *, colored: bool = True):
    """
    Route every logger through one colorlog handler on stdout.
    `colored=False` keeps the same layout without ANSI codes (container logs).
    """
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            LOG_FORMAT,
            datefmt="%H:%M:%S",
            log_colors=LOG_COLORS,
            no_color=not colored,
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
