from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from realestate_api.core.database import Base


class RealEstate(Base):
    __tablename__ = "real_estates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(120))
    view_time: Mapped[str | None] = mapped_column(String(120))
    payment_method: Mapped[str | None] = mapped_column(String(80))
    cover_image: Mapped[str] = mapped_column(String(255), nullable=False)
    # Free-form extra fields as JSON text.
    others: Mapped[str | None] = mapped_column(Text)

    city_id: Mapped[int] = mapped_column(ForeignKey("cities.id"), index=True, nullable=False)
    neighborhood_id: Mapped[int] = mapped_column(ForeignKey("neighborhoods.id"), index=True, nullable=False)
    final_city_id: Mapped[int | None] = mapped_column(ForeignKey("final_cities.id"), index=True)
    main_type_id: Mapped[int] = mapped_column(ForeignKey("main_types.id"), index=True, nullable=False)
    sub_type_id: Mapped[int] = mapped_column(ForeignKey("sub_types.id"), index=True, nullable=False)
    final_type_id: Mapped[int] = mapped_column(ForeignKey("final_types.id"), index=True, nullable=False)
    building_id: Mapped[int | None] = mapped_column(ForeignKey("buildings.id"), index=True)
    building_item_id: Mapped[int | None] = mapped_column(ForeignKey("building_items.id"), index=True)
    company_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    city = relationship("City")
    neighborhood = relationship("Neighborhood")
    final_city = relationship("FinalCity")
    main_type = relationship("MainType")
    sub_type = relationship("SubType")
    final_type = relationship("FinalType")
    building = relationship("Building")
    building_item = relationship("BuildingItem")
    company = relationship("User")

    files = relationship("File", back_populates="real_estate", cascade="all, delete-orphan", order_by="File.id")
    property_values = relationship("PropertyValue", back_populates="real_estate", cascade="all, delete-orphan")
    reservations = relationship("Reservation", back_populates="real_estate", cascade="all, delete-orphan")
    offers = relationship("Offer", back_populates="real_estate", cascade="all, delete-orphan")


class File(Base):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    real_estate_id: Mapped[int] = mapped_column(ForeignKey("real_estates.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    real_estate = relationship("RealEstate", back_populates="files")
