"""
Reference data: countries and participant classifications.
"""

from sqlalchemy import Boolean, Column, Integer, String

from eventdesk.db.base import Base, TimestampMixin


class Country(Base, TimestampMixin):
    __tablename__ = "countries"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(8), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    flag_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Country(id={self.id}, code={self.code})>"


class ParticipantType(Base, TimestampMixin):
    __tablename__ = "participant_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    def matches_any(self, labels) -> bool:
        """Case-insensitive match of name or slug against a set of labels."""
        wanted = {label.upper() for label in labels}
        return (self.name or "").upper() in wanted or (self.slug or "").upper() in wanted

    def __repr__(self) -> str:
        return f"<ParticipantType(id={self.id}, slug={self.slug})>"
