import logging
import sys
from loguru import logger
from newspulse.config import settings

# stdlib loggers that log every request; bot polling alone hits getUpdates every few seconds
_NOISY_LIBRARIES = ("httpx", "httpcore", "telegram.ext", "hpack")

def setup_logging():
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    # Rotating file log for post-mortem on failed fetch cycles
    log_file = settings.DATA_DIR / "app.log"
    logger.add(log_file, rotation="10 MB", retention=5, level="DEBUG", encoding="utf-8")

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

setup_logging()
