"""SQLAlchemy ORM models for the studio record set"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Date, Integer, Numeric, Text, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class StudentRow(Base):
    """Enrolled student"""

    __tablename__ = "students"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    birth_date = Column(Date, nullable=True)
    parent_name = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    class_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    class_id_2 = Column(UUID(as_uuid=True), nullable=True)
    plan = Column(String(2), nullable=False, default="1x")
    monthly_fee = Column(Numeric(10, 2), nullable=True)
    due_day = Column(Integer, nullable=False, default=10)
    pause_start = Column(Date, nullable=True)
    pause_end = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ClassGroupRow(Base):
    """Weekly class group"""

    __tablename__ = "classes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    day_of_week = Column(Integer, nullable=False)
    time = Column(String(5), nullable=False)
    activities = Column(JSON, nullable=False, default=list)


class AttendanceRow(Base):
    """One attendance mark per student, class and date"""

    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("student_id", "date", "class_id", name="uq_attendance_mark"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    date = Column(Date, nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    class_id = Column(UUID(as_uuid=True), nullable=False)
    status = Column(String(16), nullable=False)
    notes = Column(Text, nullable=True)


class MakeupCreditRow(Base):
    """Makeup entitlement generated by an absence"""

    __tablename__ = "makeup_credits"
    __table_args__ = (UniqueConstraint("student_id", "generated_from_date", name="uq_credit_absence"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    generated_from_date = Column(Date, nullable=False)
    origin_class_id = Column(UUID(as_uuid=True), nullable=True)
    used_at_date = Column(Date, nullable=True)
    expires_at = Column(Date, nullable=True)


class PaymentRow(Base):
    """Monthly due"""

    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=True)
    due_date = Column(Date, nullable=False)
    status = Column(String(16), nullable=False, default="pending")
    paid_at = Column(DateTime(timezone=True), nullable=True)
    month_ref = Column(String(7), nullable=False, index=True)
