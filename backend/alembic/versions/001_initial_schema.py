"""Initial schema: registry, events, attendance, seating, transport, feedback.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Reference data
    op.create_table(
        "countries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(8), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("flag_url", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("code", name="uq_countries_code"),
    )
    op.create_index("ix_countries_id", "countries", ["id"])

    op.create_table(
        "participant_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("slug", name="uq_participant_types_slug"),
    )
    op.create_index("ix_participant_types_id", "participant_types", ["id"])

    # Participants
    op.create_table(
        "participants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("contact_number", sa.String(30), nullable=False),
        sa.Column("organization", sa.String(255), nullable=False),
        sa.Column("country_id", sa.Integer(), sa.ForeignKey("countries.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "participant_type_id",
            sa.Integer(),
            sa.ForeignKey("participant_types.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_staff", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("consent_contact_sharing", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("consent_photo_video", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("display_id", sa.String(32), nullable=False),
        sa.Column("verification_token", sa.String(64), nullable=False),
        sa.Column("credential_payload", sa.String(512), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_participants_id", "participants", ["id"])
    op.create_index("ix_participants_email", "participants", ["email"], unique=True)
    # Credentials are looked up on every scan; uniqueness is what the
    # registry's collision retry relies on
    op.create_index("ix_participants_display_id", "participants", ["display_id"], unique=True)
    op.create_index("ix_participants_verification_token", "participants", ["verification_token"], unique=True)

    # Events
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_starts_at", "events", ["starts_at"])

    op.create_table(
        "event_joins",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("participant_id", "event_id", name="uq_event_join_participant_event"),
    )
    op.create_index("ix_event_joins_id", "event_joins", ["id"])
    op.create_index("ix_event_joins_participant_id", "event_joins", ["participant_id"])
    op.create_index("ix_event_joins_event_id", "event_joins", ["event_id"])

    # Attendance: the unique pair is what makes duplicate scans converge
    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("participant_id", "event_id", name="uq_attendance_participant_event"),
        sa.CheckConstraint("status IN ('pending', 'scanned')", name="check_attendance_status"),
    )
    op.create_index("ix_attendance_records_id", "attendance_records", ["id"])
    op.create_index("ix_attendance_records_participant_id", "attendance_records", ["participant_id"])
    op.create_index("ix_attendance_records_event_id", "attendance_records", ["event_id"])

    # Seating
    op.create_table(
        "seating_tables",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("table_number", sa.String(50), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("occupied_seats", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "table_number", name="uq_seating_table_event_number"),
        sa.CheckConstraint("capacity >= 1", name="check_table_capacity_positive"),
        sa.CheckConstraint("occupied_seats >= 0", name="check_table_occupied_non_negative"),
        sa.CheckConstraint("occupied_seats <= capacity", name="check_table_occupied_lte_capacity"),
    )
    op.create_index("ix_seating_tables_id", "seating_tables", ["id"])
    op.create_index("ix_seating_tables_event_id", "seating_tables", ["event_id"])

    op.create_table(
        "seat_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("table_id", sa.Integer(), sa.ForeignKey("seating_tables.id", ondelete="CASCADE"), nullable=False),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("participant_id", name="uq_seat_assignment_participant"),
        sa.UniqueConstraint("table_id", "seat_number", name="uq_seat_assignment_table_seat"),
        sa.CheckConstraint("seat_number >= 1", name="check_seat_number_positive"),
    )
    op.create_index("ix_seat_assignments_id", "seat_assignments", ["id"])
    op.create_index("ix_seat_assignments_table_id", "seat_assignments", ["table_id"])

    # Transport
    op.create_table(
        "transport_vehicles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("plate_number", sa.String(50), nullable=True),
        sa.Column("driver_name", sa.String(255), nullable=True),
        sa.Column("driver_contact_number", sa.String(30), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("assigned_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("capacity IS NULL OR capacity >= 1", name="check_vehicle_capacity_positive"),
        sa.CheckConstraint("assigned_count >= 0", name="check_vehicle_assigned_non_negative"),
        sa.CheckConstraint(
            "capacity IS NULL OR assigned_count <= capacity", name="check_vehicle_assigned_lte_capacity"
        ),
    )
    op.create_index("ix_transport_vehicles_id", "transport_vehicles", ["id"])
    op.create_index("ix_transport_vehicles_event_id", "transport_vehicles", ["event_id"])

    op.create_table(
        "vehicle_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "vehicle_id",
            sa.Integer(),
            sa.ForeignKey("transport_vehicles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("vehicle_label", sa.String(255), nullable=False),
        sa.Column("pickup_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("pickup_location", sa.String(255), nullable=True),
        sa.Column("pickup_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dropoff_location", sa.String(255), nullable=True),
        sa.Column("dropoff_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("participant_id", "event_id", name="uq_vehicle_assignment_participant_event"),
        sa.CheckConstraint(
            "pickup_status IN ('pending', 'picked_up', 'dropped_off')", name="check_vehicle_pickup_status"
        ),
    )
    op.create_index("ix_vehicle_assignments_id", "vehicle_assignments", ["id"])
    op.create_index("ix_vehicle_assignments_participant_id", "vehicle_assignments", ["participant_id"])
    op.create_index("ix_vehicle_assignments_event_id", "vehicle_assignments", ["event_id"])
    op.create_index("ix_vehicle_assignments_vehicle_id", "vehicle_assignments", ["vehicle_id"])

    # Feedback and notice log
    op.create_table(
        "feedback",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_experience_rating", sa.Integer(), nullable=True),
        sa.Column("event_ratings", sa.JSON(), nullable=True),
        sa.Column("recommendations", sa.String(1000), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_feedback_id", "feedback", ["id"])
    op.create_index("ix_feedback_participant_id", "feedback", ["participant_id"])

    op.create_table(
        "assignment_notification_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("participant_id", "event_id", name="uq_notification_log_participant_event"),
    )
    op.create_index("ix_assignment_notification_logs_id", "assignment_notification_logs", ["id"])


def downgrade() -> None:
    op.drop_table("assignment_notification_logs")
    op.drop_table("feedback")
    op.drop_table("vehicle_assignments")
    op.drop_table("transport_vehicles")
    op.drop_table("seat_assignments")
    op.drop_table("seating_tables")
    op.drop_table("attendance_records")
    op.drop_table("event_joins")
    op.drop_table("events")
    op.drop_table("participants")
    op.drop_table("participant_types")
    op.drop_table("countries")
