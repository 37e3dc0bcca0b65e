from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from realestate_api.core.database import Base


class MainType(Base):
    __tablename__ = "main_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    icon: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    sub_types = relationship("SubType", back_populates="main_type", order_by="SubType.id")


class SubType(Base):
    __tablename__ = "sub_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    main_type_id: Mapped[int] = mapped_column(ForeignKey("main_types.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    main_type = relationship("MainType", back_populates="sub_types")
    final_types = relationship("FinalType", back_populates="sub_type")


class FinalType(Base):
    __tablename__ = "final_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    sub_type_id: Mapped[int] = mapped_column(ForeignKey("sub_types.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    sub_type = relationship("SubType", back_populates="final_types")
