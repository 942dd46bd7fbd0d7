import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once, at application start-up."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # uvicorn's access log is noisy at INFO; keep our own loggers readable
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
