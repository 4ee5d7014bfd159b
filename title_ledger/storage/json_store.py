import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from loguru import logger
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from title_ledger.config.settings import settings
from title_ledger.errors import PersistenceError
from title_ledger.models.ledger import Ledger

from .base_store import BaseStore


class JsonFileStore(BaseStore):
    """Stores the ledger as a single JSON document on disk."""

    def __init__(
        self,
        path: Union[str, Path],
        attempts: Optional[int] = None,
        max_wait: Optional[float] = None,
    ):
        self.path = Path(path)
        self.attempts = attempts if attempts is not None else settings.save_attempts
        self.max_wait = (
            max_wait if max_wait is not None else settings.save_retry_max_wait
        )

    def load(self) -> Optional[Ledger]:
        if not self.path.exists():
            logger.info(f"No ledger found at {self.path}.")
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except OSError as e:
            logger.error(f"Failed to read ledger from {self.path}: {e}")
            raise PersistenceError(f"Could not read {self.path}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Ledger file {self.path} is not valid JSON: {e}")
            raise PersistenceError(f"Corrupt ledger file {self.path}") from e

        if not isinstance(document, dict):
            raise PersistenceError(f"Ledger file {self.path} does not hold an object")

        ledger = self.parse_document(document, str(self.path))
        logger.debug(
            f"Loaded ledger from {self.path}: {len(ledger.teams)} teams, "
            f"{len(ledger.matches)} matches."
        )
        return ledger

    def save(self, ledger: Ledger) -> None:
        document = ledger.to_document()
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self.attempts),
                wait=wait_exponential(multiplier=0.1, max=self.max_wait),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            f"Retrying save to {self.path} "
                            f"(attempt {attempt.retry_state.attempt_number}/{self.attempts})"
                        )
                    self._write(document)
        except OSError as e:
            logger.error(f"Failed to save ledger to {self.path}: {e}")
            raise PersistenceError(f"Could not write {self.path}") from e

        logger.debug(f"Saved ledger to {self.path}.")

    def _write(self, document: dict) -> None:
        """Writes to a temporary sibling file, then swaps it into place."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
