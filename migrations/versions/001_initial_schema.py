"""Initial schema: users, specializations, weekly availability, slot exceptions,
availability slots, appointments.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ACTIVE = sa.text("status IN ('pending', 'confirmed')")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="patient"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_role"), "users", ["role"], unique=False)

    op.create_table(
        "specializations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_specializations_name"), "specializations", ["name"], unique=True)

    op.create_table(
        "doctor_specializations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("specialization_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["specialization_id"], ["specializations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("doctor_id", "specialization_id", name="uq_doctor_specializations_pair"),
    )
    op.create_index(op.f("ix_doctor_specializations_doctor_id"), "doctor_specializations", ["doctor_id"])
    op.create_index(
        op.f("ix_doctor_specializations_specialization_id"), "doctor_specializations", ["specialization_id"]
    )

    op.create_table(
        "weekly_availability",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("slot_duration_mins", sa.Integer(), nullable=False),
        sa.Column("timezone", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("weekday BETWEEN 0 AND 6", name="ck_weekly_availability_weekday"),
        sa.CheckConstraint("start_time < end_time", name="ck_weekly_availability_window"),
        sa.CheckConstraint(
            "slot_duration_mins BETWEEN 5 AND 480", name="ck_weekly_availability_duration"
        ),
    )
    op.create_index(op.f("ix_weekly_availability_doctor_id"), "weekly_availability", ["doctor_id"])

    op.create_table(
        "slot_exceptions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("full_day", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_slot_exceptions_doctor_id"), "slot_exceptions", ["doctor_id"])
    op.create_index(op.f("ix_slot_exceptions_day"), "slot_exceptions", ["day"])

    op.create_table(
        "availability_slots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("specialization_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("duration_mins", sa.Integer(), nullable=False),
        sa.Column("is_booked", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("source", sa.String(), nullable=False, server_default="generated"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["specialization_id"], ["specializations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("doctor_id", "start_time", name="uq_availability_slots_doctor_start"),
    )
    op.create_index(op.f("ix_availability_slots_doctor_id"), "availability_slots", ["doctor_id"])
    op.create_index(
        "ix_availability_slots_search",
        "availability_slots",
        ["specialization_id", "is_booked", "start_time"],
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("availability_slot_id", sa.Integer(), nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="confirmed"),
        sa.Column("symptoms", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("booked_at", sa.DateTime(), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["availability_slot_id"], ["availability_slots.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["patient_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'canceled', 'completed')",
            name="ck_appointments_status",
        ),
    )
    op.create_index(op.f("ix_appointments_availability_slot_id"), "appointments", ["availability_slot_id"])
    op.create_index(op.f("ix_appointments_patient_id"), "appointments", ["patient_id"])
    op.create_index(
        "uq_appointments_active_slot",
        "appointments",
        ["availability_slot_id"],
        unique=True,
        postgresql_where=_ACTIVE,
    )


def downgrade() -> None:
    op.drop_index("uq_appointments_active_slot", table_name="appointments")
    op.drop_index(op.f("ix_appointments_patient_id"), table_name="appointments")
    op.drop_index(op.f("ix_appointments_availability_slot_id"), table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("ix_availability_slots_search", table_name="availability_slots")
    op.drop_index(op.f("ix_availability_slots_doctor_id"), table_name="availability_slots")
    op.drop_table("availability_slots")
    op.drop_index(op.f("ix_slot_exceptions_day"), table_name="slot_exceptions")
    op.drop_index(op.f("ix_slot_exceptions_doctor_id"), table_name="slot_exceptions")
    op.drop_table("slot_exceptions")
    op.drop_index(op.f("ix_weekly_availability_doctor_id"), table_name="weekly_availability")
    op.drop_table("weekly_availability")
    op.drop_index(
        op.f("ix_doctor_specializations_specialization_id"), table_name="doctor_specializations"
    )
    op.drop_index(op.f("ix_doctor_specializations_doctor_id"), table_name="doctor_specializations")
    op.drop_table("doctor_specializations")
    op.drop_index(op.f("ix_specializations_name"), table_name="specializations")
    op.drop_table("specializations")
    op.drop_index(op.f("ix_users_role"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
