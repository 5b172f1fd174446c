from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from load_hunter.database import Base


class GeocodeCache(Base):
    __tablename__ = "geocode_cache"

    id = Column(Integer, primary_key=True, index=True)
    location_key = Column(String(255), unique=True, index=True, nullable=False)  # "columbus, oh"
    city = Column(String(120), nullable=True)
    state = Column(String(10), nullable=True)
    latitude = Column(Numeric(10, 6), nullable=False)
    longitude = Column(Numeric(10, 6), nullable=False)
    hit_count = Column(Integer, nullable=False, default=1)
    month_created = Column(String(7), nullable=True)  # YYYY-MM
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ParserHint(Base):
    __tablename__ = "parser_hints"

    id = Column(Integer, primary_key=True, index=True)
    source = Column(String(20), nullable=False, default="sylectus", index=True)
    field_name = Column(String(60), nullable=False)
    pattern = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class VehicleTypeMapping(Base):
    __tablename__ = "vehicle_type_mappings"

    id = Column(Integer, primary_key=True, index=True)
    original_value = Column(String(120), unique=True, nullable=False)  # as it appears in the email
    canonical_value = Column(String(120), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
