"""
Logging configuration for CANEFARM

Sets up Python logging with a timestamped log file per initialization.
"""

import logging
import sys
import tempfile
from pathlib import Path
from datetime import datetime

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _resolve_log_dir(log_dir):
    """Create the log directory, falling back to the temp directory"""
    try:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path
    except (OSError, PermissionError) as e:
        print(f"[CANEFARM] Warning: Failed to create {log_dir}: {e}", file=sys.stderr)
        path = Path(tempfile.gettempdir()) / 'canefarm_logs'
        path.mkdir(parents=True, exist_ok=True)
        print(f"[CANEFARM] Using temp log directory: {path}", file=sys.stderr)
        return path


def setup_logging(config=None):
    """
    Configure logging for CANEFARM

    Args:
        config: Dictionary with logging configuration
                - level: Logging level (DEBUG, INFO, WARNING, ERROR)
                - log_dir: Directory for log files
                - console: Whether to also log to stderr

    Returns:
        Logger instance
    """
    if config is None:
        config = {}

    level_str = str(config.get('level', 'INFO')).upper()
    level = getattr(logging, level_str, logging.INFO)

    logger = logging.getLogger('canefarm')
    logger.setLevel(level)

    # Re-initialization replaces handlers instead of stacking them
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    log_dir = _resolve_log_dir(config.get('log_dir', 'canefarm_logs'))
    timestamp = datetime.now().strftime('%Y_%m_%d_%H_%M_%S')
    log_file = log_dir / f'canefarm_log_{timestamp}.log'

    use_console = bool(config.get('console', False))
    try:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except (OSError, PermissionError) as e:
        print(f"[CANEFARM] Warning: Failed to create file handler at {log_file}: {e}", file=sys.stderr)
        print("[CANEFARM] Falling back to stderr logging", file=sys.stderr)
        log_file = None
        use_console = True

    if use_console:
        stderr_handler = logging.StreamHandler()
        stderr_handler.setLevel(level)
        stderr_handler.setFormatter(formatter)
        logger.addHandler(stderr_handler)

    logger.info('Logging initialized at level %s', level_str)
    logger.info('Log file: %s', log_file)

    return logger
