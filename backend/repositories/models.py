"""
SQLAlchemy ORM models for persistence.
"""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from db import Base
from domain.models import utcnow


class PlaceORM(Base):
    __tablename__ = "places"

    id = Column(String, primary_key=True, index=True)
    # Case-insensitive uniqueness is enforced by the application, not here.
    name = Column(String, nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    last_used_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    points_of_interest = relationship(
        "PointOfInterestORM",
        back_populates="place",
        cascade="all, delete-orphan",
        order_by="PointOfInterestORM.position",
    )


class PointOfInterestORM(Base):
    __tablename__ = "points_of_interest"

    id = Column(String, primary_key=True, index=True)
    place_id = Column(String, ForeignKey("places.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    place = relationship("PlaceORM", back_populates="points_of_interest")
