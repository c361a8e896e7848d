import os
import sys
from pathlib import Path

from loguru import logger

log_dir = Path(os.getenv("REDMINE_EXPORT_LOG_DIR", "logs"))
log_file = log_dir / "{time}.log"

logger.remove()
logger.add(sys.stderr, level="INFO")
logger.add(
    log_file,
    rotation="256 MB",  # roll over at 256MB
    retention="10 days",  # old logs are deleted after 10 days
    compression="zip",
    encoding="utf-8",
    level="DEBUG",
    delay=True,
)
