"""
Transport vehicles and participant pickup/dropoff assignments.

Vehicles with a capacity are capped the same way seating tables are
(denormalized `assigned_count` + `version`); a NULL capacity means uncapped.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from eventdesk.db.base import Base, TimestampMixin

PICKUP_PENDING = "pending"
PICKUP_PICKED_UP = "picked_up"
PICKUP_DROPPED_OFF = "dropped_off"

# Position in the pickup lifecycle; transitions only move forward
PICKUP_ORDER = {PICKUP_PENDING: 0, PICKUP_PICKED_UP: 1, PICKUP_DROPPED_OFF: 2}


class TransportVehicle(Base, TimestampMixin):
    __tablename__ = "transport_vehicles"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    plate_number = Column(String(50), nullable=True)
    driver_name = Column(String(255), nullable=True)
    driver_contact_number = Column(String(30), nullable=True)
    capacity = Column(Integer, nullable=True)
    assigned_count = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("capacity IS NULL OR capacity >= 1", name="check_vehicle_capacity_positive"),
        CheckConstraint("assigned_count >= 0", name="check_vehicle_assigned_non_negative"),
        CheckConstraint(
            "capacity IS NULL OR assigned_count <= capacity", name="check_vehicle_assigned_lte_capacity"
        ),
    )

    def __repr__(self) -> str:
        return f"<TransportVehicle(id={self.id}, label={self.label})>"


class VehicleAssignment(Base, TimestampMixin):
    __tablename__ = "vehicle_assignments"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = Column(
        Integer, ForeignKey("transport_vehicles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    vehicle_label = Column(String(255), nullable=False)
    pickup_status = Column(String(20), nullable=False, default=PICKUP_PENDING)
    pickup_location = Column(String(255), nullable=True)
    pickup_at = Column(DateTime(timezone=True), nullable=True)
    dropoff_location = Column(String(255), nullable=True)
    dropoff_at = Column(DateTime(timezone=True), nullable=True)

    vehicle = relationship("TransportVehicle", lazy="joined")

    __table_args__ = (
        UniqueConstraint("participant_id", "event_id", name="uq_vehicle_assignment_participant_event"),
        CheckConstraint(
            "pickup_status IN ('pending', 'picked_up', 'dropped_off')", name="check_vehicle_pickup_status"
        ),
    )

    def __repr__(self) -> str:
        return f"<VehicleAssignment(participant={self.participant_id}, vehicle={self.vehicle_label}, status={self.pickup_status})>"
