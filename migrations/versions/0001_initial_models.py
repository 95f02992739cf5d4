"""payment boxes, transitions, settings

Creates the three payment-box tables. ``init_db`` creates the same tables
through SQLModel metadata for local SQLite setups.

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


revision: str = "0001_initial_models"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "paymentbox",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("sender_id", sa.String(length=64), nullable=False),
        sa.Column("receiver_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("phase", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_duration", sa.String(length=16), nullable=True),
        sa.Column("payment_duration_days", sa.Integer(), nullable=True),
        sa.Column("bill_image_url", sa.String(), nullable=True),
        sa.Column("admin_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("transaction_start_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("seller_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("buyer_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("seller_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("seller_bank_account", sa.String(length=64), nullable=True),
        sa.Column("seller_bank_name", sa.String(length=128), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("seller_cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("seller_rejection_reason", sa.String(), nullable=True),
        sa.Column("seller_rejection_bank_account", sa.String(length=64), nullable=True),
        sa.Column("seller_rejection_bank_name", sa.String(length=128), nullable=True),
        sa.Column("refund_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refund_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refund_reason", sa.String(), nullable=True),
        sa.Column("buyer_bank_account", sa.String(length=64), nullable=True),
        sa.Column("buyer_bank_name", sa.String(length=128), nullable=True),
        sa.Column("admin_message", sa.String(), nullable=True),
        sa.Column("admin_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_seller_message", sa.String(), nullable=True),
        sa.Column("admin_seller_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("buyer_reply", sa.String(), nullable=True),
        sa.Column("buyer_reply_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("content", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("has_fee", sa.Boolean(), nullable=True),
        sa.Column("transaction_fee", sa.String(length=64), nullable=True),
    )
    op.create_index("ix_paymentbox_sender_id", "paymentbox", ["sender_id"])
    op.create_index("ix_paymentbox_receiver_id", "paymentbox", ["receiver_id"])
    op.create_index("ix_paymentbox_status", "paymentbox", ["status"])
    op.create_index("ix_paymentbox_phase", "paymentbox", ["phase"])

    op.create_table(
        "paymentboxtransition",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("box_id", sa.String(length=32), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("from_status", sa.String(length=32), nullable=False),
        sa.Column("from_phase", sa.String(length=32), nullable=False),
        sa.Column("to_status", sa.String(length=32), nullable=False),
        sa.Column("to_phase", sa.String(length=32), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=False),
        sa.Column("actor_role", sa.String(length=16), nullable=False),
        sa.Column("reason", sa.String(length=240), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_paymentboxtransition_box_id", "paymentboxtransition", ["box_id"])
    op.create_index("ix_paymentboxtransition_action", "paymentboxtransition", ["action"])

    op.create_table(
        "paymentboxsettings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("content", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("has_fee", sa.Boolean(), nullable=False),
        sa.Column("transaction_fee", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("paymentboxsettings")
    op.drop_index("ix_paymentboxtransition_action", table_name="paymentboxtransition")
    op.drop_index("ix_paymentboxtransition_box_id", table_name="paymentboxtransition")
    op.drop_table("paymentboxtransition")
    op.drop_index("ix_paymentbox_phase", table_name="paymentbox")
    op.drop_index("ix_paymentbox_status", table_name="paymentbox")
    op.drop_index("ix_paymentbox_receiver_id", table_name="paymentbox")
    op.drop_index("ix_paymentbox_sender_id", table_name="paymentbox")
    op.drop_table("paymentbox")
