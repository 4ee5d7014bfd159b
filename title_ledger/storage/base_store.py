from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from title_ledger.errors import PersistenceError
from title_ledger.models.ledger import Ledger


class BaseStore(ABC):
    """Abstract storage collaborator holding the whole ledger as one document."""

    @abstractmethod
    def load(self) -> Optional[Ledger]:
        """Load the stored ledger.

        Returns:
            The ledger, or None when nothing has been stored yet.

        Raises:
            PersistenceError: if the stored document cannot be read or parsed.
        """
        pass

    @abstractmethod
    def save(self, ledger: Ledger) -> None:
        """Replace the stored document with ``ledger``.

        Raises:
            PersistenceError: if the document could not be written.
        """
        pass

    @staticmethod
    def parse_document(document: Dict[str, Any], source: str) -> Ledger:
        try:
            return Ledger.model_validate(document)
        except PydanticValidationError as e:
            logger.error(f"Stored ledger in {source} is not valid: {e}")
            raise PersistenceError(f"Invalid ledger document in {source}") from e


class MemoryStore(BaseStore):
    """Keeps the last saved document in memory."""

    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self.document = document
        self.save_count = 0
        self.fail_next_save = False

    def load(self) -> Optional[Ledger]:
        if self.document is None:
            return None
        return self.parse_document(self.document, "memory")

    def save(self, ledger: Ledger) -> None:
        if self.fail_next_save:
            self.fail_next_save = False
            raise PersistenceError("Simulated save failure")
        self.document = ledger.to_document()
        self.save_count += 1
