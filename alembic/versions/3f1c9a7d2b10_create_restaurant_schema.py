"""create restaurant schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("totp_secret", sa.String(64), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "dishes",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
    )

    # NULL stock = unlimited
    op.create_table(
        "ingredients",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("price", sa.Numeric(6, 2), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("stock IS NULL OR stock >= 0", name="ck_ingredient_stock"),
    )

    op.create_table(
        "ingredient_requirements",
        sa.Column(
            "ingredient_id", sa.Integer(), sa.ForeignKey("ingredients.id"), primary_key=True
        ),
        sa.Column("required_id", sa.Integer(), sa.ForeignKey("ingredients.id"), primary_key=True),
        sa.CheckConstraint("ingredient_id <> required_id", name="ck_requirement_not_self"),
    )

    op.create_table(
        "ingredient_incompatibilities",
        sa.Column(
            "ingredient_low_id", sa.Integer(), sa.ForeignKey("ingredients.id"), primary_key=True
        ),
        sa.Column(
            "ingredient_high_id", sa.Integer(), sa.ForeignKey("ingredients.id"), primary_key=True
        ),
        sa.CheckConstraint(
            "ingredient_low_id < ingredient_high_id", name="ck_incompatibility_ordered"
        ),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("dish_id", sa.Integer(), sa.ForeignKey("dishes.id"), nullable=False),
        sa.Column("size", sa.String(10), nullable=False),
        sa.Column("total", sa.Numeric(8, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, default="confirmed", index=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "order_ingredients",
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), primary_key=True),
        sa.Column(
            "ingredient_id", sa.Integer(), sa.ForeignKey("ingredients.id"), primary_key=True
        ),
        sa.Column("price", sa.Numeric(6, 2), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("order_ingredients")
    op.drop_table("orders")
    op.drop_table("ingredient_incompatibilities")
    op.drop_table("ingredient_requirements")
    op.drop_table("ingredients")
    op.drop_table("dishes")
    op.drop_table("users")
