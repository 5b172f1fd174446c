from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from load_hunter.database import Base, JSONType


class HuntPlan(Base):
    __tablename__ = "hunt_plans"

    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(String(64), nullable=False, index=True)
    plan_name = Column(String(120), nullable=False)
    vehicle_size = Column(String(255), nullable=True)  # "VAN" or a JSON array of sizes
    zip_code = Column(String(10), nullable=True)
    hunt_coordinates = Column(JSONType, nullable=True)  # {"lat": .., "lng": ..}
    pickup_radius = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    enabled = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )


class LoadHuntMatch(Base):
    __tablename__ = "load_hunt_matches"
    __table_args__ = (
        UniqueConstraint("load_email_id", "hunt_plan_id", name="uq_load_hunt_matches_email_plan"),
    )

    id = Column(Integer, primary_key=True, index=True)
    load_email_id = Column(Integer, ForeignKey("load_emails.id", ondelete="CASCADE"), nullable=False, index=True)
    hunt_plan_id = Column(Integer, ForeignKey("hunt_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = Column(String(64), nullable=False, index=True)
    distance_miles = Column(Numeric(10, 2), nullable=True)
    match_score = Column(Numeric(6, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    match_status = Column(String(20), nullable=False, default="active")
    matched_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
