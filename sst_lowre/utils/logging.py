import sys
from loguru import logger


def setup_logging(level="INFO", show_time=True, log_file=None):
    """Configure loguru for the closure and its drivers.

    Parameters
    ----------
    level : str
        Logging level (DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL).
        Per-step stage transitions are logged at DEBUG.
    show_time : bool
        Whether to show timestamps in the output.
    log_file : str or Path, optional
        Additional plain-text sink, e.g. a run log next to the results.
    """
    logger.remove()

    location = "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
    log_format = f"<level>{{level: <8}}</level> | {location} - <level>{{message}}</level>"
    if show_time:
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | " + log_format

    logger.add(sys.stderr, format=log_format, level=level, colorize=True)
    if log_file is not None:
        logger.add(str(log_file), format=log_format, level=level, colorize=False)

    return logger


# Default setup
setup_logging()
