import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# External libraries that are too chatty below WARNING
NOISY_LOGGERS = (
    "pymongo",
    "telethon",
    "telethon.telegram_client",
    "telethon.network",
    "telethon.crypto",
    "httpcore",
    "httpx",
    "telegram.ext",
)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging and suppress DEBUG logs from external libraries"""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
