"""create_proofdesk_schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 00:00:00.000000

Initial schema:
  - tenants, users, tenant_domains
  - galleries, photos
  - proof_selections, proof_selection_items
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    # 1. Tenants
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(63), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("billing_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("storage_used_bytes", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("storage_limit_bytes", sa.BigInteger(), nullable=True),
        sa.Column("storage_enforced", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("stripe_account_id", sa.String(255), nullable=True),
        sa.Column("stripe_onboarding_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
        sa.UniqueConstraint("stripe_account_id"),
    )
    op.create_index(op.f("ix_tenants_id"), "tenants", ["id"], unique=False)
    op.create_index("idx_tenant_slug", "tenants", ["slug"], unique=False)
    op.create_index("idx_tenant_status", "tenants", ["status"], unique=False)

    # 2. Tenant users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="TENANT"),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_tenant_id"), "users", ["tenant_id"], unique=False)

    # 3. Custom domains (one per tenant)
    op.create_table(
        "tenant_domains",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("hostname", sa.String(253), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="PENDING_VERIFICATION"),
        sa.Column("verification_token", sa.String(64), nullable=False),
        sa.Column("txt_record_name", sa.String(300), nullable=False),
        sa.Column("txt_record_value", sa.String(300), nullable=False),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("activated_at", sa.DateTime(), nullable=True),
        sa.Column("disabled_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id"),
        sa.UniqueConstraint("hostname"),
    )
    op.create_index(op.f("ix_tenant_domains_id"), "tenant_domains", ["id"], unique=False)
    op.create_index("idx_tenant_domain_status", "tenant_domains", ["status"], unique=False)

    # 4. Galleries and photos
    op.create_table(
        "galleries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("access_mode", sa.String(20), nullable=False, server_default="PUBLIC"),
        sa.Column("client_username", sa.String(100), nullable=True),
        sa.Column("client_password_hash", sa.String(), nullable=True),
        sa.Column("max_selections", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_galleries_id"), "galleries", ["id"], unique=False)
    op.create_index("ix_galleries_tenant_id", "galleries", ["tenant_id"], unique=False)

    op.create_table(
        "photos",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("gallery_id", sa.Integer(), nullable=False),
        sa.Column("storage_key", sa.String(500), nullable=True),
        sa.Column("original_filename", sa.String(255), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("bytes", sa.BigInteger(), nullable=True),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("alt_text", sa.String(500), nullable=True),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["gallery_id"], ["galleries.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("storage_key"),
    )
    op.create_index(op.f("ix_photos_id"), "photos", ["id"], unique=False)
    op.create_index("ix_photos_tenant_gallery", "photos", ["tenant_id", "gallery_id"], unique=False)
    op.create_index("ix_photos_sort_order", "photos", ["gallery_id", "sort_order"], unique=False)

    # 5. Proof selections
    op.create_table(
        "proof_selections",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("gallery_id", sa.Integer(), nullable=False),
        sa.Column("client_username", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="DRAFT"),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["gallery_id"], ["galleries.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "gallery_id", "client_username", name="uq_proof_selection_client"),
    )
    op.create_index(op.f("ix_proof_selections_id"), "proof_selections", ["id"], unique=False)
    op.create_index(
        "ix_proof_selections_tenant_gallery", "proof_selections", ["tenant_id", "gallery_id"], unique=False
    )

    op.create_table(
        "proof_selection_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("selection_id", sa.Integer(), nullable=False),
        sa.Column("photo_id", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["selection_id"], ["proof_selections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["photo_id"], ["photos.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("selection_id", "photo_id", name="uq_proof_selection_item_photo"),
    )
    op.create_index(op.f("ix_proof_selection_items_id"), "proof_selection_items", ["id"], unique=False)
    op.create_index("ix_proof_selection_items_tenant", "proof_selection_items", ["tenant_id"], unique=False)


def downgrade() -> None:
    # Reverse in dependency order
    op.drop_index("ix_proof_selection_items_tenant", table_name="proof_selection_items")
    op.drop_index(op.f("ix_proof_selection_items_id"), table_name="proof_selection_items")
    op.drop_table("proof_selection_items")

    op.drop_index("ix_proof_selections_tenant_gallery", table_name="proof_selections")
    op.drop_index(op.f("ix_proof_selections_id"), table_name="proof_selections")
    op.drop_table("proof_selections")

    op.drop_index("ix_photos_sort_order", table_name="photos")
    op.drop_index("ix_photos_tenant_gallery", table_name="photos")
    op.drop_index(op.f("ix_photos_id"), table_name="photos")
    op.drop_table("photos")

    op.drop_index("ix_galleries_tenant_id", table_name="galleries")
    op.drop_index(op.f("ix_galleries_id"), table_name="galleries")
    op.drop_table("galleries")

    op.drop_index("idx_tenant_domain_status", table_name="tenant_domains")
    op.drop_index(op.f("ix_tenant_domains_id"), table_name="tenant_domains")
    op.drop_table("tenant_domains")

    op.drop_index(op.f("ix_users_tenant_id"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_table("users")

    op.drop_index("idx_tenant_status", table_name="tenants")
    op.drop_index("idx_tenant_slug", table_name="tenants")
    op.drop_index(op.f("ix_tenants_id"), table_name="tenants")
    op.drop_table("tenants")
