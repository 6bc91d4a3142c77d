import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler
from flowstate.common.setup import PATHS
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handlers are tagged with "<logger>:<role>" so repeated get_logger() calls never stack duplicates.
def _has_handler(logger, handler_name):
    return any(h.get_name() == handler_name for h in logger.handlers)

def _attach(logger, handler, handler_name, level, fmt):
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.set_name(handler_name)
    logger.addHandler(handler)

def get_logger(
        name = "flowstate",
        level = logging.INFO,
        log_dir: Path | None = None,
        max_bytes = 5 * 1024 * 1024,
        backup_count = 5,
        persistent = True,
        console = False,
        historical_debugs: int = 10
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(level)

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)

    fmt = logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT)

    # Rotating log that survives across runs
    if persistent and not _has_handler(logger, f"{name}:persistent"):
        _attach(logger, RotatingFileHandler(
            filename=log_dir / f"{name}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ), f"{name}:persistent", level, fmt)

    # latest.log only ever holds the current run
    if not _has_handler(logger, f"{name}:latest"):
        _attach(logger, logging.FileHandler(
            filename=log_dir / "latest.log",
            mode="w",
            encoding="utf-8",
        ), f"{name}:latest", level, fmt)

    # One full-debug file per run, keeping only the newest `historical_debugs` of them
    if historical_debugs > 0 and not _has_handler(logger, f"{name}:historical_debug"):
        debug_dir = log_dir / "debug"
        debug_dir.mkdir(parents=True,exist_ok=True)
        run_path = debug_dir / f"{name}_{datetime.now():%Y-%m-%d_%H-%M-%S}_{os.getpid()}.log"
        _attach(logger, logging.FileHandler(filename=run_path, encoding="utf-8"),
                f"{name}:historical_debug", logging.DEBUG, fmt)

        runs = sorted(debug_dir.glob(f"{name}_*.log"),key=lambda p: p.stat().st_mtime,reverse=True)
        for run in runs[historical_debugs:]:
            try: run.unlink()
            except OSError: pass

    if console and not _has_handler(logger, f"{name}:console"):
        _attach(logger, logging.StreamHandler(), f"{name}:console", level, fmt)

    return logger

log = get_logger(level=logging.DEBUG,console=False,historical_debugs=10)
log.info("=== FLOWSTATE STARTED ===")
