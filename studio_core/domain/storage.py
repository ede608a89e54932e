"""Storage collaborator contract consumed by the ledger and the billing engine"""

import uuid
from contextlib import AbstractContextManager
from typing import Any, Dict, List, Optional, Protocol

# Entity types
STUDENTS = "students"
CLASSES = "classes"
ATTENDANCE = "attendance"
MAKEUP_CREDITS = "makeup_credits"
PAYMENTS = "payments"


class RecordStorage(Protocol):
    """
    Record store keyed by entity type.

    Filters map a field name, optionally suffixed with an operator
    (``due_date__gte``), to a value. Supported operators: eq, ne, gt, gte,
    lt, lte, isnull. ``order_by`` is a field name, prefixed with ``-`` for
    descending order.

    Every call raises StorageError when the underlying store rejects it.
    """

    def insert(self, entity: str, fields: Dict[str, Any]) -> Any:
        ...

    def insert_many(self, entity: str, rows: List[Dict[str, Any]]) -> List[Any]:
        ...

    def update(self, entity: str, record_id: uuid.UUID, fields: Dict[str, Any]) -> None:
        ...

    def delete(self, entity: str, record_id: uuid.UUID) -> None:
        ...

    def delete_where(self, entity: str, filters: Dict[str, Any]) -> int:
        ...

    def select_all(
        self,
        entity: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[Any]:
        ...

    def atomic(self) -> AbstractContextManager:
        """Group calls into one all-or-nothing unit"""
        ...
