"""create clinics, clients, leads and whatsapp messages tables

Revision ID: e1f2a3b4c5d6
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "e1f2a3b4c5d6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "clinics",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("whatsapp_instance_id", sa.String(length=50), nullable=True),
        sa.Column("whatsapp_api_token", sa.String(length=255), nullable=True),
        sa.Column("whatsapp_enabled", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("whatsapp_authorized", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("whatsapp_phone", sa.String(length=20), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("whatsapp_instance_id"),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("clinic_id", sa.UUID(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("phone_primary", sa.String(length=32), nullable=True),
        sa.Column("phone_secondary", sa.String(length=32), nullable=True),
        sa.Column("status", sa.String(length=20), server_default="active", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clients_clinic_status", "clients", ["clinic_id", "status"])
    op.create_index("ix_clients_phone_primary", "clients", ["phone_primary"])

    op.create_table(
        "leads",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("clinic_id", sa.UUID(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="new", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_leads_clinic_status", "leads", ["clinic_id", "status"])
    op.create_index("ix_leads_phone", "leads", ["phone"])

    message_direction = postgresql.ENUM("inbound", "outbound", name="message_direction")
    message_direction.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "whatsapp_messages",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("clinic_id", sa.UUID(), nullable=False),
        sa.Column("client_id", sa.UUID(), nullable=True),
        sa.Column("lead_id", sa.UUID(), nullable=True),
        sa.Column(
            "direction",
            postgresql.ENUM("inbound", "outbound", name="message_direction", create_type=False),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("sender_phone", sa.String(length=32), nullable=True),
        sa.Column("sender_name", sa.String(length=255), nullable=True),
        sa.Column("recipient_phone", sa.String(length=32), nullable=True),
        sa.Column("provider_message_id", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=True),
        sa.Column(
            "sent_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "clinic_id", "provider_message_id", name="uq_whatsapp_messages_provider_id"
        ),
    )
    op.create_index(
        "ix_whatsapp_messages_clinic_sent_at", "whatsapp_messages", ["clinic_id", "sent_at"]
    )
    op.create_index("ix_whatsapp_messages_client", "whatsapp_messages", ["client_id"])
    op.create_index("ix_whatsapp_messages_lead", "whatsapp_messages", ["lead_id"])


def downgrade() -> None:
    op.drop_index("ix_whatsapp_messages_lead", table_name="whatsapp_messages")
    op.drop_index("ix_whatsapp_messages_client", table_name="whatsapp_messages")
    op.drop_index("ix_whatsapp_messages_clinic_sent_at", table_name="whatsapp_messages")
    op.drop_table("whatsapp_messages")
    postgresql.ENUM(name="message_direction").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_leads_phone", table_name="leads")
    op.drop_index("ix_leads_clinic_status", table_name="leads")
    op.drop_table("leads")

    op.drop_index("ix_clients_phone_primary", table_name="clients")
    op.drop_index("ix_clients_clinic_status", table_name="clients")
    op.drop_table("clients")

    op.drop_table("clinics")
