"""
Seating tables and seat assignments.

Key design decisions:
- `occupied_seats` is denormalized so the capacity check is a single
  conditional UPDATE instead of a COUNT under lock
- `version` enables optimistic locking; every change to a table's occupancy
  bumps it
- CHECK constraints are the final safety net against overshooting capacity
- A participant holds at most one seat system-wide (unique participant_id),
  and seat numbers are unique within a table
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from eventdesk.db.base import Base, TimestampMixin


class SeatingTable(Base, TimestampMixin):
    __tablename__ = "seating_tables"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    table_number = Column(String(50), nullable=False)
    capacity = Column(Integer, nullable=False)
    occupied_seats = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    event = relationship("Event", lazy="joined")

    __table_args__ = (
        UniqueConstraint("event_id", "table_number", name="uq_seating_table_event_number"),
        CheckConstraint("capacity >= 1", name="check_table_capacity_positive"),
        CheckConstraint("occupied_seats >= 0", name="check_table_occupied_non_negative"),
        CheckConstraint("occupied_seats <= capacity", name="check_table_occupied_lte_capacity"),
    )

    @property
    def available_seats(self) -> int:
        return self.capacity - self.occupied_seats

    def __repr__(self) -> str:
        return f"<SeatingTable(id={self.id}, number={self.table_number}, {self.occupied_seats}/{self.capacity})>"


class SeatAssignment(Base, TimestampMixin):
    __tablename__ = "seat_assignments"

    id = Column(Integer, primary_key=True, index=True)
    table_id = Column(
        Integer, ForeignKey("seating_tables.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant_id = Column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    seat_number = Column(Integer, nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=False)

    participant = relationship("Participant", lazy="joined")

    __table_args__ = (
        UniqueConstraint("participant_id", name="uq_seat_assignment_participant"),
        UniqueConstraint("table_id", "seat_number", name="uq_seat_assignment_table_seat"),
        CheckConstraint("seat_number >= 1", name="check_seat_number_positive"),
    )

    def __repr__(self) -> str:
        return f"<SeatAssignment(table={self.table_id}, participant={self.participant_id}, seat={self.seat_number})>"
