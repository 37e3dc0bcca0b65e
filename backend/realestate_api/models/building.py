from datetime import datetime
import enum

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from realestate_api.core.database import Base


class BuildingStatus(str, enum.Enum):
    COMPLETED = "completed"
    UNDER_CONSTRUCTION = "under_construction"
    PLANNED = "planned"


class BuildingItemType(str, enum.Enum):
    APARTMENT = "apartment"
    SHOP = "shop"
    VILLA = "villa"
    OFFICE = "office"


class Building(Base):
    __tablename__ = "buildings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[BuildingStatus] = mapped_column(Enum(BuildingStatus), default=BuildingStatus.PLANNED, nullable=False)
    location: Mapped[str] = mapped_column(String(120), default="0.0,0.0", nullable=False)
    building_age: Mapped[int | None] = mapped_column(Integer)
    company_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    company = relationship("User")
    items = relationship("BuildingItem", back_populates="building", order_by="BuildingItem.id")


class BuildingItem(Base):
    __tablename__ = "building_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    area: Mapped[float] = mapped_column(Float, nullable=False)
    type: Mapped[BuildingItemType] = mapped_column(Enum(BuildingItemType), nullable=False)
    building_id: Mapped[int] = mapped_column(ForeignKey("buildings.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    building = relationship("Building", back_populates="items")
