"""
Employee model

Internal principal. Authorization flows through the employee's role.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import AccountStatus


class Employee(Base):
    __tablename__ = "employees"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=True)
    phone = Column(String(30), nullable=True)
    employee_number = Column(String(50), unique=True, nullable=True)
    department = Column(String(100), nullable=True)
    job_title = Column(String(100), nullable=True)

    # One role, many employees. No cascade: role deletion is refused while referenced
    role_id = Column(String(36), ForeignKey("roles.id"), nullable=True)
    role = relationship("Role", lazy="joined")

    status = Column(SQLEnum(AccountStatus), default=AccountStatus.ACTIVE, nullable=False)

    # Login tracking
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    login_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_employees_role_id", "role_id"),
        Index("ix_employees_status", "status"),
    )

    def __repr__(self):
        return f"<Employee(id={self.id}, email='{self.email}')>"

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE
