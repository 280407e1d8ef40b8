"""initial_schema

Revision ID: 5a1d2c3e4f60
Revises:
Create Date: 2026-10-19 09:12:44.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5a1d2c3e4f60'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Create client, assessment, directory, catalog and account tables."""
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("preferred_name", sa.String(100)),
        sa.Column("date_of_birth", sa.Date()),
        sa.Column("gender", sa.String(50)),
        sa.Column("marital_status", sa.String(50)),
        sa.Column("primary_language", sa.String(50)),
        sa.Column("veteran_status", sa.Boolean(), nullable=False),
        sa.Column("living_arrangement", sa.String(100)),
        sa.Column("mobility_status", sa.String(100)),
        sa.Column("phone", sa.String(50)),
        sa.Column("cell_phone", sa.String(50)),
        sa.Column("email", sa.String(255)),
        sa.Column("address_line1", sa.String(255)),
        sa.Column("address_line2", sa.String(255)),
        sa.Column("city", sa.String(100)),
        sa.Column("state", sa.String(50)),
        sa.Column("zip_code", sa.String(20)),
        sa.Column("poc_full_name", sa.String(255)),
        sa.Column("poc_relationship", sa.String(100)),
        sa.Column("poc_phone", sa.String(50)),
        sa.Column("poc_email", sa.String(255)),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.Integer()),
        sa.Column("has_portal_access", sa.Boolean(), nullable=False),
        sa.Column("access_code", sa.String(16)),
        sa.Column("access_code_expires", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_clients_access_code", "clients", ["access_code"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("ADMIN", "CARE_MANAGER", name="userrole"),
            nullable=False,
        ),
        sa.Column("title", sa.String(100)),
        sa.Column("phone", sa.String(50)),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("verification_token", sa.String(64)),
        sa.Column("verification_sent_at", sa.DateTime()),
        sa.Column("created_by", sa.Integer()),
        *_timestamps(),
    )
    op.create_index("ix_users_verification_token", "users", ["verification_token"])

    op.create_table(
        "client_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("verification_token", sa.String(64)),
        sa.Column("verification_sent_at", sa.DateTime()),
        sa.Column("last_login", sa.DateTime()),
        sa.Column("created_by", sa.Integer()),
        *_timestamps(),
    )
    op.create_index("ix_client_users_client_id", "client_users", ["client_id"])
    op.create_index(
        "ix_client_users_verification_token", "client_users", ["verification_token"]
    )

    op.create_table(
        "assessments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id")),
        sa.Column("created_by", sa.Integer()),
        sa.Column(
            "status",
            sa.Enum("DRAFT", "COMPLETE", name="assessmentstatus"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("current_section", sa.String(50), nullable=False),
        sa.Column("sections", postgresql.JSONB(), nullable=False),
        sa.Column("completion_percentage", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_assessments_client_id", "assessments", ["client_id"])

    op.create_table(
        "assessment_audit_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "assessment_id", sa.Integer(), sa.ForeignKey("assessments.id"), nullable=False
        ),
        sa.Column("user_id", sa.Integer()),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_assessment_audit_entries_assessment_id",
        "assessment_audit_entries",
        ["assessment_id"],
    )

    op.create_table(
        "resources",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("subcategory", sa.String(100)),
        sa.Column("address", sa.String(500)),
        sa.Column("phone", sa.String(50)),
        sa.Column("email", sa.String(255)),
        sa.Column("website", sa.String(500)),
        sa.Column("contact_person", sa.String(255)),
        sa.Column("description", sa.Text()),
        sa.Column("tags", postgresql.JSONB(), nullable=False),
        sa.Column("service_area", sa.String(255)),
        sa.Column("logo_url", sa.String(1000)),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("is_ecc_favorite", sa.Boolean(), nullable=False),
        sa.Column("is_archived", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_resources_name", "resources", ["name"])
    op.create_index("ix_resources_type", "resources", ["type"])

    op.create_table(
        "custom_resource_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("created_by", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("brand", sa.String(255)),
        sa.Column("model", sa.String(255)),
        sa.Column("description", sa.Text()),
        sa.Column("features", postgresql.JSONB(), nullable=False),
        sa.Column("price_range", sa.String(100)),
        sa.Column("where_to_buy", postgresql.JSONB(), nullable=False),
        sa.Column("website", sa.String(500)),
        sa.Column("image_url", sa.String(1000)),
        sa.Column("rating", sa.Float(), nullable=False),
        sa.Column("review_count", sa.Integer(), nullable=False),
        sa.Column("medicaid_covered", sa.Boolean(), nullable=False),
        sa.Column("medicare_covered", sa.Boolean(), nullable=False),
        sa.Column("insurance_notes", sa.Text()),
        sa.Column("user_guide_url", sa.String(1000)),
        sa.Column("video_demo_url", sa.String(1000)),
        sa.Column("tags", postgresql.JSONB(), nullable=False),
        sa.Column("recommended_for", postgresql.JSONB(), nullable=False),
        sa.Column("safety_features", postgresql.JSONB(), nullable=False),
        sa.Column("ease_of_use_rating", sa.Integer()),
        sa.Column("durability_rating", sa.Integer()),
        sa.Column("value_rating", sa.Integer()),
        sa.Column("ecc_notes", sa.Text()),
        sa.Column("date_reviewed", sa.Date()),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_products_name", "products", ["name"])
    op.create_index("ix_products_category", "products", ["category"])

    op.create_table(
        "product_reviews",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("user_id", sa.Integer()),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column(
            "user_role",
            sa.Enum(
                "CARE_MANAGER",
                "CLIENT",
                "FAMILY_MEMBER",
                "HEALTHCARE_PROVIDER",
                name="reviewerrole",
            ),
            nullable=False,
        ),
        sa.Column("overall_rating", sa.Integer(), nullable=False),
        sa.Column("ease_of_use_rating", sa.Integer(), nullable=False),
        sa.Column("durability_rating", sa.Integer(), nullable=False),
        sa.Column("value_rating", sa.Integer(), nullable=False),
        sa.Column("safety_rating", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("review_text", sa.Text(), nullable=False),
        sa.Column("pros", postgresql.JSONB(), nullable=False),
        sa.Column("cons", postgresql.JSONB(), nullable=False),
        sa.Column("recommended_for", postgresql.JSONB(), nullable=False),
        sa.Column("helpful_votes", sa.Integer(), nullable=False),
        sa.Column("verified_purchase", sa.Boolean(), nullable=False),
        sa.Column("client_condition", sa.String(255)),
        sa.Column("usage_duration", sa.String(100)),
        sa.Column("would_recommend", sa.Boolean(), nullable=False),
        sa.Column("is_featured", sa.Boolean(), nullable=False),
        sa.Column("admin_response", sa.Text()),
        sa.Column("admin_response_by", sa.String(255)),
        sa.Column("admin_response_at", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_product_reviews_product_id", "product_reviews", ["product_id"])


def downgrade() -> None:
    """Drop every table and enum created by upgrade."""
    op.drop_table("product_reviews")
    op.drop_table("products")
    op.drop_table("custom_resource_categories")
    op.drop_table("resources")
    op.drop_table("assessment_audit_entries")
    op.drop_table("assessments")
    op.drop_table("client_users")
    op.drop_table("users")
    op.drop_table("clients")
    sa.Enum(name="reviewerrole").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="assessmentstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
