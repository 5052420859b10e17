"""Initial schema: accounts, inventory ledger, requests, camps, messaging

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

from bloodlink.db.base import UUID


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade():
    # Accounts; single table keyed by role
    op.create_table(
        "users",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(100), nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("street", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("zip_code", sa.String(20), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.Column("license_number", sa.String(100), nullable=True),
        sa.Column("registration_number", sa.String(100), nullable=True),
        sa.Column("blood_group", sa.String(3), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(10), nullable=True),
        sa.Column("last_donation_date", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_city", "users", ["city"])
    op.create_index("ix_users_created_at", "users", ["created_at"])
    op.create_index("idx_users_role_city", "users", ["role", "city"])

    op.create_table(
        "blood_requests",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("blood_group", sa.String(3), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("urgency", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("patient_name", sa.String(150), nullable=True),
        sa.Column("patient_age", sa.Integer(), nullable=True),
        sa.Column("reason", sa.String(500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("responded_at", sa.DateTime(), nullable=True),
        sa.Column("fulfilled_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.Column(
            "hospital_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "blood_bank_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.CheckConstraint("quantity >= 1", name="ck_blood_requests_quantity_positive"),
    )
    op.create_index("ix_blood_requests_status", "blood_requests", ["status"])
    op.create_index("ix_blood_requests_created_at", "blood_requests", ["created_at"])
    op.create_index(
        "idx_request_hospital_created", "blood_requests", ["hospital_id", "created_at"]
    )
    op.create_index("idx_request_bank_status", "blood_requests", ["blood_bank_id", "status"])

    op.create_table(
        "camps",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("start_time", sa.String(10), nullable=True),
        sa.Column("end_time", sa.String(10), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("zip_code", sa.String(20), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("target_donors", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.Column(
            "blood_bank_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index("ix_camps_date", "camps", ["date"])
    op.create_index("ix_camps_blood_bank_id", "camps", ["blood_bank_id"])
    op.create_index("idx_camps_active_date", "camps", ["is_active", "date"])

    op.create_table(
        "camp_registrations",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("registered_at", sa.DateTime(), nullable=False),
        sa.Column(
            "camp_id",
            UUID(),
            sa.ForeignKey("camps.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "donor_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.UniqueConstraint("camp_id", "donor_id", name="uq_camp_registration_donor"),
    )
    op.create_index("ix_camp_registrations_donor_id", "camp_registrations", ["donor_id"])

    op.create_table(
        "inventory_lots",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("blood_group", sa.String(3), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("expiry_date", sa.DateTime(), nullable=True),
        sa.Column("source", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column(
            "blood_bank_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_lots_quantity_non_negative"),
    )
    op.create_index("ix_inventory_lots_expiry_date", "inventory_lots", ["expiry_date"])
    op.create_index("ix_inventory_lots_created_at", "inventory_lots", ["created_at"])
    op.create_index(
        "idx_lots_bank_group_created",
        "inventory_lots",
        ["blood_bank_id", "blood_group", "created_at"],
    )

    op.create_table(
        "inventory_transactions",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("blood_group", sa.String(3), nullable=False),
        sa.Column("direction", sa.String(3), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column(
            "blood_bank_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "related_request_id",
            UUID(),
            sa.ForeignKey("blood_requests.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "related_camp_id",
            UUID(),
            sa.ForeignKey("camps.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.CheckConstraint("quantity > 0", name="ck_inventory_transactions_quantity_positive"),
    )
    op.create_index(
        "ix_inventory_transactions_created_at", "inventory_transactions", ["created_at"]
    )
    op.create_index(
        "ix_inventory_transactions_related_request_id",
        "inventory_transactions",
        ["related_request_id"],
    )
    op.create_index(
        "idx_transactions_bank_created",
        "inventory_transactions",
        ["blood_bank_id", "created_at"],
    )

    op.create_table(
        "donations",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("blood_group", sa.String(3), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("donation_date", sa.DateTime(), nullable=False),
        sa.Column("expiry_date", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("certificate_generated", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column(
            "donor_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "blood_bank_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "camp_id",
            UUID(),
            sa.ForeignKey("camps.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )

    op.create_table(
        "notifications",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column(
            "recipient_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("related_id", UUID(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "idx_notifications_recipient_created", "notifications", ["recipient_id", "created_at"]
    )

    op.create_table(
        "messages",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column(
            "sender_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "recipient_id",
            UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "related_request_id",
            UUID(),
            sa.ForeignKey("blood_requests.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index(
        "idx_messages_pair_created", "messages", ["sender_id", "recipient_id", "created_at"]
    )
    op.create_index("idx_messages_recipient_read", "messages", ["recipient_id", "read"])


def downgrade():
    op.drop_table("messages")
    op.drop_table("notifications")
    op.drop_table("donations")
    op.drop_table("inventory_transactions")
    op.drop_table("inventory_lots")
    op.drop_table("camp_registrations")
    op.drop_table("camps")
    op.drop_table("blood_requests")
    op.drop_table("users")
