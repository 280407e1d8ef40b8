"""add_clinical_libraries

Revision ID: 9e4b7a2d1c58
Revises: 5a1d2c3e4f60
Create Date: 2026-10-19 15:40:12.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '9e4b7a2d1c58'
down_revision: Union[str, Sequence[str], None] = '5a1d2c3e4f60'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create medication, diagnosis and care-plan template tables."""
    op.create_table(
        "medications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("doses", postgresql.JSONB(), nullable=False),
        sa.Column("frequencies", postgresql.JSONB(), nullable=False),
        sa.Column("used_for", sa.Text()),
        sa.Column("potential_side_effects", sa.Text()),
        sa.Column("description", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_medications_name", "medications", ["name"])

    op.create_table(
        "medical_diagnoses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("common_symptoms", postgresql.JSONB(), nullable=False),
        sa.Column("risk_factors", postgresql.JSONB(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_medical_diagnoses_code", "medical_diagnoses", ["code"])
    op.create_index("ix_medical_diagnoses_category", "medical_diagnoses", ["category"])

    op.create_table(
        "care_plan_templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("concern", sa.String(255), nullable=False),
        sa.Column("goal", sa.Text(), nullable=False),
        sa.Column("barrier", sa.Text(), nullable=False),
        sa.Column("target_date", sa.Date()),
        sa.Column("is_ongoing", sa.Boolean(), nullable=False),
        sa.Column("recommendations", postgresql.JSONB(), nullable=False),
        sa.Column("created_by", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index(
        "ix_care_plan_templates_category", "care_plan_templates", ["category"]
    )


def downgrade() -> None:
    """Drop the library tables."""
    op.drop_table("care_plan_templates")
    op.drop_table("medical_diagnoses")
    op.drop_table("medications")
