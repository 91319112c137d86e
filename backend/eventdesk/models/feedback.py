"""
Post-event survey feedback and assignment notice log.
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from eventdesk.db.base import Base, TimestampMixin


class Feedback(Base, TimestampMixin):
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    user_experience_rating = Column(Integer, nullable=True)
    event_ratings = Column(JSON, nullable=True)
    recommendations = Column(String(1000), nullable=True)


class AssignmentNotificationLog(Base, TimestampMixin):
    __tablename__ = "assignment_notification_logs"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("participant_id", "event_id", name="uq_notification_log_participant_event"),
    )
