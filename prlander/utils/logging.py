import logging
import os
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, Optional

import bittensor as bt

if TYPE_CHECKING:
    from prlander.classes import LandingStage

EVENTS_LEVEL_NUM = 38
DEFAULT_LOG_BACKUP_COUNT = 10
DEFAULT_EVENTS_RETENTION_SIZE = 2 * 1024 * 1024  # 2 MB per file


def setup_events_logger(full_path, events_retention_size=DEFAULT_EVENTS_RETENTION_SIZE):
    logging.addLevelName(EVENTS_LEVEL_NUM, 'EVENT')

    logger = logging.getLogger('event')
    logger.setLevel(EVENTS_LEVEL_NUM)

    def event(self, message, *args, **kws):
        if self.isEnabledFor(EVENTS_LEVEL_NUM):
            self._log(EVENTS_LEVEL_NUM, message, args, **kws)

    logging.Logger.event = event

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    events_file = os.path.join(full_path, 'events.log')
    if not any(getattr(h, 'baseFilename', None) == os.path.abspath(events_file) for h in logger.handlers):
        file_handler = RotatingFileHandler(
            events_file,
            maxBytes=events_retention_size,
            backupCount=DEFAULT_LOG_BACKUP_COUNT,
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(EVENTS_LEVEL_NUM)
        logger.addHandler(file_handler)

    return logger


class LandingObserver:
    """Receives progress of a landing run. All hooks default to no-ops."""

    def on_stage(self, stage: 'LandingStage', detail: str) -> None:
        pass

    def on_head_sha(self, sha: str) -> None:
        pass

    def on_waiting_for_status(self, sha: str, context: str) -> None:
        pass

    def on_failure(self, error: BaseException) -> None:
        pass

    def on_teardown_failed(self, error: BaseException) -> None:
        pass


class LoggingObserver(LandingObserver):
    """Reports progress through bt.logging."""

    def on_stage(self, stage: 'LandingStage', detail: str) -> None:
        bt.logging.info(f"  ├─ {stage.value}: {detail}")

    def on_head_sha(self, sha: str) -> None:
        bt.logging.info(f"HEAD sha is {sha}")

    def on_waiting_for_status(self, sha: str, context: str) -> None:
        bt.logging.info(f"Waiting for '{context}' on {sha} to succeed")

    def on_failure(self, error: BaseException) -> None:
        bt.logging.error(f"Landing failed: {type(error).__name__}: {error}")

    def on_teardown_failed(self, error: BaseException) -> None:
        bt.logging.warning(f"Could not remove workspace: {error}")


class EventsObserver(LoggingObserver):
    """LoggingObserver that also appends an audit line per event to events.log."""

    def __init__(self, full_path: str, events_retention_size: int = DEFAULT_EVENTS_RETENTION_SIZE, label: Optional[str] = None):
        self.events_logger = setup_events_logger(full_path, events_retention_size)
        self.label = label

    def _event(self, message: str) -> None:
        prefix = f"{self.label} | " if self.label else ""
        self.events_logger.event(f"{prefix}{message}")

    def on_stage(self, stage: 'LandingStage', detail: str) -> None:
        super().on_stage(stage, detail)
        self._event(f"{stage.value} | {detail}")

    def on_failure(self, error: BaseException) -> None:
        super().on_failure(error)
        self._event(f"failed | {type(error).__name__}: {error}")

    def on_teardown_failed(self, error: BaseException) -> None:
        super().on_teardown_failed(error)
        self._event(f"teardown_failed | {error}")
