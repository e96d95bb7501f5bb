"""
Base store interface.

This module defines the abstract base class for the key-addressable
announcement store the monitor diffs against.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the store returns anything other than the expected outcome."""

    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        details = ", ".join(
            part for part in (
                f"code={self.code}" if self.code else "",
                f"status={self.status}" if self.status is not None else "",
            ) if part
        )
        return f"{base} ({details})" if details else base


class BaseStore(ABC):
    """
    Abstract base class for store implementations.

    The store is assumed to enforce ``id`` uniqueness.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    @abstractmethod
    def find_by_id(self, item_id: str) -> Optional[Dict[str, Any]]:
        """
        Look up a record by id.

        Returns:
            The stored row, or None when no row has that id

        Raises:
            StoreError: for any failure other than "not found"
        """

    @abstractmethod
    def insert(self, record: Dict[str, Any]) -> None:
        """
        Insert one record.

        Raises:
            StoreError: if the insert was rejected
        """

    @abstractmethod
    def mark_sent(self, ids: List[str]) -> None:
        """
        Set ``is_sent = true`` for all given ids in one bulk update.

        Raises:
            StoreError: if the update was rejected
        """
