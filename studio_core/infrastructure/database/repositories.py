"""Data access layer: the record store behind the ledger and billing engine"""

import logging
import operator
import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_core.domain import storage
from studio_core.domain.exceptions import StorageError, ValidationError
from studio_core.domain.models import (
    AttendanceRecord,
    AttendanceStatus,
    ClassGroup,
    MakeupCredit,
    PausePeriod,
    Payment,
    PaymentStatus,
    PlanType,
    Student,
)
from studio_core.infrastructure.database.models import (
    AttendanceRow,
    Base,
    ClassGroupRow,
    MakeupCreditRow,
    PaymentRow,
    StudentRow,
)

logger = logging.getLogger(__name__)

_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}


def _student_to_domain(row: StudentRow) -> Student:
    pause = None
    if row.pause_start and row.pause_end:
        pause = PausePeriod(start_date=row.pause_start, end_date=row.pause_end)
    return Student(
        id=row.id,
        name=row.name,
        active=row.active,
        birth_date=row.birth_date,
        parent_name=row.parent_name,
        phone=row.phone,
        class_id=row.class_id,
        class_id_2=row.class_id_2,
        plan=PlanType(row.plan),
        monthly_fee=row.monthly_fee,
        due_day=row.due_day,
        pause_period=pause,
        created_at=row.created_at,
    )


def _class_to_domain(row: ClassGroupRow) -> ClassGroup:
    return ClassGroup(
        id=row.id,
        name=row.name,
        day_of_week=row.day_of_week,
        time=row.time,
        activities=list(row.activities or []),
    )


def _attendance_to_domain(row: AttendanceRow) -> AttendanceRecord:
    return AttendanceRecord(
        id=row.id,
        date=row.date,
        student_id=row.student_id,
        class_id=row.class_id,
        status=AttendanceStatus(row.status),
        notes=row.notes,
    )


def _credit_to_domain(row: MakeupCreditRow) -> MakeupCredit:
    return MakeupCredit(
        id=row.id,
        student_id=row.student_id,
        generated_from_date=row.generated_from_date,
        origin_class_id=row.origin_class_id,
        used_at_date=row.used_at_date,
        expires_at=row.expires_at,
    )


def _payment_to_domain(row: PaymentRow) -> Payment:
    return Payment(
        id=row.id,
        student_id=row.student_id,
        amount=row.amount,
        due_date=row.due_date,
        status=PaymentStatus(row.status),
        paid_at=row.paid_at,
        month_ref=row.month_ref,
    )


ENTITIES: Dict[str, Tuple[Type[Base], Callable[[Any], Any]]] = {
    storage.STUDENTS: (StudentRow, _student_to_domain),
    storage.CLASSES: (ClassGroupRow, _class_to_domain),
    storage.ATTENDANCE: (AttendanceRow, _attendance_to_domain),
    storage.MAKEUP_CREDITS: (MakeupCreditRow, _credit_to_domain),
    storage.PAYMENTS: (PaymentRow, _payment_to_domain),
}


def _column_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten domain field values into column values"""
    values = {}
    for key, value in fields.items():
        if key == "pause_period":
            values["pause_start"] = value.start_date if value else None
            values["pause_end"] = value.end_date if value else None
        elif isinstance(value, Enum):
            values[key] = value.value
        else:
            values[key] = value
    return values


class RecordStore:
    """SQLAlchemy-backed record store, one instance per session"""

    def __init__(self, db: Session):
        self.db = db
        self._atomic_depth = 0

    def _entity(self, entity: str) -> Tuple[Type[Base], Callable[[Any], Any]]:
        try:
            return ENTITIES[entity]
        except KeyError:
            raise ValidationError(f"Unknown entity type: {entity}")

    def _clause(self, model: Type[Base], key: str, value: Any):
        name, _, op = key.partition("__")
        column = getattr(model, name, None)
        if column is None:
            raise ValidationError(f"Unknown field for {model.__tablename__}: {name}")
        if op == "isnull":
            return column.is_(None) if value else column.isnot(None)
        if isinstance(value, Enum):
            value = value.value
        try:
            return _OPERATORS[op or "eq"](column, value)
        except KeyError:
            raise ValidationError(f"Unsupported filter operator: {op}")

    def _query(self, entity: str, filters: Optional[Dict[str, Any]]):
        model, _ = self._entity(entity)
        query = self.db.query(model)
        for key, value in (filters or {}).items():
            query = query.filter(self._clause(model, key, value))
        return model, query

    def _commit(self) -> None:
        # Inside atomic() writes are flushed so later reads see them; the block commits
        if self._atomic_depth:
            self.db.flush()
        else:
            self.db.commit()

    def _fail(self, action: str, entity: str, exc: SQLAlchemyError) -> StorageError:
        if not self._atomic_depth:
            self.db.rollback()
        logger.error(f"Storage {action} failed", extra={"entity": entity, "error": str(exc)})
        return StorageError(f"Could not {action} {entity}: {exc}", reason=exc)

    @contextmanager
    def atomic(self) -> Iterator["RecordStore"]:
        """Run several calls as one transaction; any exception rolls all of them back"""
        self._atomic_depth += 1
        try:
            yield self
        except BaseException:
            self._atomic_depth -= 1
            if not self._atomic_depth:
                self.db.rollback()
            raise
        self._atomic_depth -= 1
        if not self._atomic_depth:
            try:
                self.db.commit()
            except SQLAlchemyError as e:
                raise self._fail("commit", "transaction", e) from e

    def insert(self, entity: str, fields: Dict[str, Any]) -> Any:
        model, to_domain = self._entity(entity)
        row = model(**_column_values(fields))
        try:
            self.db.add(row)
            self._commit()
            return to_domain(row)
        except SQLAlchemyError as e:
            raise self._fail("insert", entity, e) from e

    def insert_many(self, entity: str, rows: List[Dict[str, Any]]) -> List[Any]:
        """Insert all rows in a single commit; nothing is stored if any row fails"""
        model, to_domain = self._entity(entity)
        db_rows = [model(**_column_values(fields)) for fields in rows]
        try:
            self.db.add_all(db_rows)
            self._commit()
            return [to_domain(row) for row in db_rows]
        except SQLAlchemyError as e:
            raise self._fail("insert", entity, e) from e

    def update(self, entity: str, record_id: uuid.UUID, fields: Dict[str, Any]) -> None:
        model, _ = self._entity(entity)
        try:
            updated = (
                self.db.query(model)
                .filter(model.id == record_id)
                .update(_column_values(fields), synchronize_session="fetch")
            )
            self._commit()
        except SQLAlchemyError as e:
            raise self._fail("update", entity, e) from e
        if not updated:
            raise StorageError(f"No {entity} record with id {record_id}")

    def delete(self, entity: str, record_id: uuid.UUID) -> None:
        model, _ = self._entity(entity)
        try:
            deleted = self.db.query(model).filter(model.id == record_id).delete(synchronize_session="fetch")
            self._commit()
        except SQLAlchemyError as e:
            raise self._fail("delete", entity, e) from e
        if not deleted:
            raise StorageError(f"No {entity} record with id {record_id}")

    def delete_where(self, entity: str, filters: Dict[str, Any]) -> int:
        """Bulk delete by a conjunction of predicates; returns the number of rows removed"""
        if not filters:
            raise ValidationError("Refusing to delete without filters")
        _, query = self._query(entity, filters)
        try:
            deleted = query.delete(synchronize_session="fetch")
            self._commit()
            return deleted
        except SQLAlchemyError as e:
            raise self._fail("delete", entity, e) from e

    def select_all(
        self,
        entity: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[Any]:
        model, query = self._query(entity, filters)
        _, to_domain = self._entity(entity)
        if order_by:
            column = getattr(model, order_by.lstrip("-"))
            query = query.order_by(column.desc() if order_by.startswith("-") else column.asc())
        try:
            return [to_domain(row) for row in query.all()]
        except SQLAlchemyError as e:
            raise self._fail("select", entity, e) from e
