from datetime import datetime
import enum

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from realestate_api.core.database import Base


class PropertyDataType(str, enum.Enum):
    NUMBER = "number"
    TEXT = "text"
    MULTIPLE_CHOICE = "multiple_choice"
    SINGLE_CHOICE = "single_choice"
    DATE = "date"
    BOOLEAN = "boolean"
    FILE = "file"


CHOICE_TYPES = frozenset({PropertyDataType.SINGLE_CHOICE, PropertyDataType.MULTIPLE_CHOICE})


class Property(Base):
    """A dynamic attribute definition scoped to one final type."""

    __tablename__ = "properties"
    __table_args__ = (UniqueConstraint("final_type_id", "property_key", name="uq_property_final_type_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    final_type_id: Mapped[int] = mapped_column(ForeignKey("final_types.id"), index=True, nullable=False)
    property_key: Mapped[str] = mapped_column(String(100), nullable=False)
    property_name: Mapped[str] = mapped_column(String(160), nullable=False)
    group_name: Mapped[str] = mapped_column(String(120), default="general", nullable=False)
    data_type: Mapped[PropertyDataType] = mapped_column(Enum(PropertyDataType), nullable=False)
    # JSON text: a list of choices, or {"extensions": [...], "mime_types": [...]} for files.
    allowed_values: Mapped[str | None] = mapped_column(Text)
    is_filter: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    placeholder: Mapped[str | None] = mapped_column(String(255))
    unit: Mapped[str | None] = mapped_column(String(40))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    final_type = relationship("FinalType")
    values = relationship("PropertyValue", back_populates="property", cascade="all, delete-orphan")


class PropertyValue(Base):
    __tablename__ = "property_values"
    __table_args__ = (UniqueConstraint("real_estate_id", "property_id", name="uq_property_value_listing"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    real_estate_id: Mapped[int] = mapped_column(ForeignKey("real_estates.id", ondelete="CASCADE"), index=True, nullable=False)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), index=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    property = relationship("Property", back_populates="values")
    real_estate = relationship("RealEstate", back_populates="property_values")
