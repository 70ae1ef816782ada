"""Local diagnostic logging for pogr_logging itself."""

import logging
import logging.handlers
from pathlib import Path

from pogr_logging.settings import LoggingSettings, PogrSettings

PACKAGE_LOGGER = "pogr_logging"


def _file_handler(cfg: LoggingSettings, level: int) -> logging.Handler:
    log_path = Path(cfg.file)  # type: ignore[arg-type]
    log_path.parent.mkdir(parents=True, exist_ok=True)
    h = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=cfg.max_bytes, backupCount=cfg.backup_count, encoding="utf-8"
    )
    h.setLevel(level)
    return h


def _console_handler(level: int) -> logging.Handler:
    h = logging.StreamHandler()
    h.setLevel(level)
    return h


def setup_logging(settings: PogrSettings) -> logging.Logger:
    """Configure the pogr_logging logger: optional file and console output.

    The logger does not propagate, so diagnostics about delivery never reach a
    PogrHandler installed on the root logger.
    """
    cfg = settings.logging
    level = getattr(logging, cfg.level.upper(), logging.WARNING)
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    pkg = logging.getLogger(PACKAGE_LOGGER)
    pkg.setLevel(level)
    pkg.propagate = False
    for h in pkg.handlers[:]:
        pkg.removeHandler(h)
        h.close()
    if cfg.file:
        file_handler = _file_handler(cfg, level)
        file_handler.setFormatter(formatter)
        pkg.addHandler(file_handler)
    if cfg.log_to_console:
        console_handler = _console_handler(level)
        console_handler.setFormatter(formatter)
        pkg.addHandler(console_handler)
    if not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return pkg
