"""
Attendance record: verified physical presence of a participant at an event.

The unique constraint on (participant_id, event_id) is what makes concurrent
duplicate scans converge on a single row.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from eventdesk.db.base import Base, TimestampMixin

STATUS_PENDING = "pending"
STATUS_SCANNED = "scanned"


class AttendanceRecord(Base, TimestampMixin):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=STATUS_PENDING)
    scanned_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("participant_id", "event_id", name="uq_attendance_participant_event"),
        CheckConstraint("status IN ('pending', 'scanned')", name="check_attendance_status"),
    )

    def __repr__(self) -> str:
        return f"<AttendanceRecord(participant={self.participant_id}, event={self.event_id}, status={self.status})>"
