"""accounts and restaurant profiles

Revision ID: 0001_accounts
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_accounts"
down_revision = None
branch_labels = None
depends_on = None

role_enum = sa.Enum("customer", "restaurant", "admin", name="roleenum")


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone_number", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("phone_verified", sa.Boolean(), nullable=False),
        sa.Column("verification_token", sa.String(), nullable=True),
        sa.Column("email_otp", sa.String(length=6), nullable=True),
        sa.Column("email_otp_expires", sa.DateTime(), nullable=True),
        sa.Column("phone_otp", sa.String(length=6), nullable=True),
        sa.Column("phone_otp_expires", sa.DateTime(), nullable=True),
        sa.Column("reset_password_token", sa.String(), nullable=True),
        sa.Column("reset_password_expires", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_accounts_id", "accounts", ["id"])
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)
    op.create_index("ix_accounts_phone_number", "accounts", ["phone_number"], unique=True)
    op.create_index("ix_accounts_verification_token", "accounts", ["verification_token"])
    op.create_index("ix_accounts_reset_password_token", "accounts", ["reset_password_token"])

    op.create_table(
        "restaurant_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False, unique=True),
        sa.Column("restaurant_name", sa.String(), nullable=False),
        sa.Column("cuisine", sa.JSON(), nullable=True),
        sa.Column("address", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_restaurant_profiles_id", "restaurant_profiles", ["id"])


def downgrade() -> None:
    op.drop_index("ix_restaurant_profiles_id", table_name="restaurant_profiles")
    op.drop_table("restaurant_profiles")
    op.drop_index("ix_accounts_reset_password_token", table_name="accounts")
    op.drop_index("ix_accounts_verification_token", table_name="accounts")
    op.drop_index("ix_accounts_phone_number", table_name="accounts")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_index("ix_accounts_id", table_name="accounts")
    op.drop_table("accounts")
    role_enum.drop(op.get_bind(), checkfirst=True)
