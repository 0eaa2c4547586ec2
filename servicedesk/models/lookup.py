"""
Reference data models

Test types, sample types, standards, price lists, distance rates, mixer
types and generic lookup tables. All bilingual, all soft-disabled through
is_active rather than deleted while in use.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, Boolean, Text, DateTime, Numeric, JSON, ForeignKey, Table,
    UniqueConstraint, Enum as SQLEnum, Index
)
from sqlalchemy.orm import relationship

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import ServiceCategory, StandardType


def _now():
    return datetime.now(timezone.utc)


test_type_standards = Table(
    "test_type_standards",
    Base.metadata,
    Column("test_type_id", String(36), ForeignKey("test_types.id", ondelete="CASCADE"), primary_key=True),
    Column("standard_id", String(36), ForeignKey("standards.id", ondelete="CASCADE"), primary_key=True),
)


class TestType(Base):
    __tablename__ = "test_types"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    category = Column(SQLEnum(ServiceCategory), nullable=False)
    base_price = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    samples = relationship("SampleType", back_populates="test_type", lazy="selectin")
    standards = relationship(
        "Standard", secondary=test_type_standards, back_populates="test_types", lazy="selectin"
    )

    __table_args__ = (
        Index("ix_test_types_category", "category"),
        Index("ix_test_types_is_active", "is_active"),
    )

    def __repr__(self):
        return f"<TestType(code='{self.code}')>"


class SampleType(Base):
    __tablename__ = "sample_types"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), unique=True, nullable=False)
    test_type_id = Column(String(36), ForeignKey("test_types.id"), nullable=False)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    unit = Column(String(50), default="sample", nullable=False)
    unit_ar = Column(String(50), default="عينة", nullable=False)
    min_quantity = Column(Integer, default=1, nullable=False)
    max_quantity = Column(Integer, nullable=True)
    price_per_unit = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    test_type = relationship("TestType", back_populates="samples", lazy="joined")

    __table_args__ = (
        Index("ix_sample_types_test_type_id", "test_type_id"),
    )


class Standard(Base):
    __tablename__ = "standards"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False)
    title = Column(String(300), nullable=False)
    title_ar = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    type = Column(SQLEnum(StandardType), default=StandardType.EGYPTIAN, nullable=False)
    document_url = Column(String(500), nullable=True)
    version = Column(String(50), nullable=True)  # edition label, e.g. "2018"
    published_year = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    test_types = relationship(
        "TestType", secondary=test_type_standards, back_populates="standards", lazy="selectin"
    )

    __table_args__ = (
        Index("ix_standards_type", "type"),
    )


class PriceList(Base):
    """
    Dated price list for one service category.

    At most one default list per category; the current list is the active
    default whose validity window contains now.
    """
    __tablename__ = "price_lists"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    category = Column(SQLEnum(ServiceCategory), nullable=False)
    valid_from = Column(DateTime(timezone=True), default=_now, nullable=False)
    valid_to = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    items = relationship(
        "PriceListItem",
        back_populates="price_list",
        cascade="all, delete-orphan",
        order_by=lambda: [PriceListItem.sort_order, PriceListItem.name],
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_price_lists_category", "category"),
        Index("ix_price_lists_validity", "valid_from", "valid_to"),
    )


class PriceListItem(Base):
    __tablename__ = "price_list_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    price_list_id = Column(String(36), ForeignKey("price_lists.id", ondelete="CASCADE"), nullable=False)
    code = Column(String(50), nullable=False)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    unit = Column(String(50), default="unit", nullable=False)
    unit_ar = Column(String(50), default="وحدة", nullable=False)
    min_quantity = Column(Integer, default=1, nullable=False)
    max_quantity = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    price_list = relationship("PriceList", back_populates="items")

    __table_args__ = (
        UniqueConstraint("price_list_id", "code", name="uq_price_list_item_code"),
    )


class DistanceRate(Base):
    """Site-visit fee band covering [from_km, to_km)."""
    __tablename__ = "distance_rates"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    from_km = Column(Integer, nullable=False)
    to_km = Column(Integer, nullable=False)
    rate = Column(Numeric(12, 2), nullable=False)
    rate_per_km = Column(Numeric(12, 2), nullable=True)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    __table_args__ = (
        Index("ix_distance_rates_range", "from_km", "to_km"),
    )


class MixerType(Base):
    __tablename__ = "mixer_types"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    capacity = Column(Numeric(12, 2), nullable=True)
    capacity_unit = Column(String(20), default="m³", nullable=False)
    capacity_unit_ar = Column(String(20), default="م³", nullable=False)
    price_per_batch = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class LookupCategory(Base):
    """Named list of codes (e.g. building types). System categories cannot be removed."""
    __tablename__ = "lookup_categories"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_system = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    items = relationship(
        "LookupItem",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by=lambda: [LookupItem.sort_order, LookupItem.name],
        lazy="selectin",
    )


class LookupItem(Base):
    __tablename__ = "lookup_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    category_id = Column(String(36), ForeignKey("lookup_categories.id", ondelete="CASCADE"), nullable=False)
    code = Column(String(50), nullable=False)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    value = Column(String(500), nullable=True)
    icon = Column(String(100), nullable=True)
    color = Column(String(20), nullable=True)
    extra = Column("metadata", JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    category = relationship("LookupCategory", back_populates="items")

    __table_args__ = (
        UniqueConstraint("category_id", "code", name="uq_lookup_item_code"),
    )
