"""
Event (programme) and the participant opt-in join table.

Key design decisions:
- Index on `starts_at` because scanner and listing queries order by it
- `is_active` plus the time window derive the open/closed phase; the phase
  itself is never stored
- One EventJoin per (participant, event), enforced by a unique constraint
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint

from eventdesk.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=True)
    location = Column(String(255), nullable=True)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_events_starts_at", "starts_at"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title})>"


class EventJoin(Base, TimestampMixin):
    __tablename__ = "event_joins"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("participant_id", "event_id", name="uq_event_join_participant_event"),
    )
