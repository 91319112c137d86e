"""
Participant identity record.

Key design decisions:
- `display_id` and `verification_token` are unique at the storage layer; the
  registry retries generation when an insert collides
- Both credentials are write-once: the validator below refuses to replace a
  value that has already been set
- `credential_payload` is the encrypted token that goes into the QR code
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship, validates

from eventdesk.db.base import Base, TimestampMixin


class Participant(Base, TimestampMixin):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    contact_number = Column(String(30), nullable=False)
    organization = Column(String(255), nullable=False)
    country_id = Column(Integer, ForeignKey("countries.id", ondelete="SET NULL"), nullable=True)
    participant_type_id = Column(
        Integer, ForeignKey("participant_types.id", ondelete="SET NULL"), nullable=True
    )
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_staff = Column(Boolean, default=False, nullable=False)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    consent_contact_sharing = Column(Boolean, default=False, nullable=False)
    consent_photo_video = Column(Boolean, default=False, nullable=False)

    display_id = Column(String(32), unique=True, index=True, nullable=False)
    verification_token = Column(String(64), unique=True, index=True, nullable=False)
    credential_payload = Column(String(512), nullable=False)

    country = relationship("Country", lazy="joined")
    participant_type = relationship("ParticipantType", lazy="joined")

    @validates("display_id", "verification_token")
    def _credentials_are_immutable(self, key, value):
        current = getattr(self, key)
        if current is not None and value != current:
            raise ValueError(f"{key} cannot be changed once assigned")
        return value

    def has_reserved_type(self, reserved_labels) -> bool:
        return self.participant_type is not None and self.participant_type.matches_any(reserved_labels)

    def __repr__(self) -> str:
        return f"<Participant(id={self.id}, display_id={self.display_id})>"
