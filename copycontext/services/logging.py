# copycontext/services/logging.py
import sys
from typing import Optional

from loguru import logger

from ..config.loader import get_config
from ..config.paths import get_user_log_dir

LEVELS = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR") # Most to least detailed
FILE_LEVEL_FLOOR = "DEBUG"

def effective_level(configured: str, verbose: bool = False) -> str:
    """`--verbose` lowers the configured level by one step, bottoming out at TRACE."""
    level = configured.upper() if configured else "INFO"
    if level not in LEVELS:
        level = "INFO"
    if verbose:
        level = LEVELS[max(LEVELS.index(level) - 1, 0)]
    return level

def _more_detailed(a: str, b: str) -> str:
    return a if LEVELS.index(a) <= LEVELS.index(b) else b

def setup_logging(level: Optional[str] = None, verbose: bool = False) -> str:
    """
    Routes loguru output for the CLI: a console sink on stderr at the configured
    level (stdout carries the snapshot) and a daily log file that always keeps
    at least DEBUG detail. Returns the console level in effect.
    """
    if level is None:
        level = get_config().log_level
    console_level = effective_level(level, verbose)
    file_level = _more_detailed(console_level, FILE_LEVEL_FLOOR)
    log_file = get_user_log_dir() / "copycontext_{time:YYYY-MM-DD}.log"

    logger.remove()
    logger.add(
        sys.stderr,
        level=console_level,
        format="<level>{level: <8}</level> | <cyan>{name}:{line}</cyan> - <level>{message}</level>",
        colorize=True,
    )
    try:
        logger.add(
            str(log_file),
            level=file_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} - {message}",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            enqueue=True,
            encoding="utf-8",
        )
    except (OSError, ValueError) as e:
        logger.warning(f"File logging disabled, could not open {log_file}: {e}")
    logger.debug(f"Logging ready: console {console_level}, file {file_level} ({log_file.parent})")
    return console_level
