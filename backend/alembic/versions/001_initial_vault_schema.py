"""initial vault schema

Revision ID: 001_initial_vault_schema
Revises:
Create Date: 2026-10-01

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_vault_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('encryption_key', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'folders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('folders.id', ondelete='CASCADE'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('name', 'parent_id', 'user_id', name='uq_folder_sibling_name'),
    )
    op.create_index('ix_folders_id', 'folders', ['id'])
    op.create_index('ix_folders_parent_id', 'folders', ['parent_id'])
    op.create_index('ix_folders_user_id', 'folders', ['user_id'])

    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('encrypted_content', sa.Text(), nullable=True),
        sa.Column('content_fingerprint', sa.String(length=64), nullable=True),
        sa.Column('file_path', sa.String(length=500), nullable=True),
        sa.Column('file_size', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('language', sa.String(length=50), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('folder_id', sa.Integer(), sa.ForeignKey('folders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('access_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_accessed', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "type IN ('text', 'secret', 'api_key', 'code', 'file')",
            name='ck_item_type',
        ),
    )
    op.create_index('ix_items_id', 'items', ['id'])
    op.create_index('ix_items_type', 'items', ['type'])
    op.create_index('ix_items_folder_id', 'items', ['folder_id'])
    op.create_index('ix_items_user_id', 'items', ['user_id'])
    op.create_index('idx_items_access_count', 'items', ['access_count'])

    op.create_table(
        'item_versions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('encrypted_content', sa.Text(), nullable=True),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('item_id', 'version_number', name='uq_item_version_number'),
    )
    op.create_index('ix_item_versions_id', 'item_versions', ['id'])
    op.create_index('ix_item_versions_item_id', 'item_versions', ['item_id'])


def downgrade():
    # Children first
    op.drop_table('item_versions')
    op.drop_table('items')
    op.drop_table('folders')
    op.drop_table('users')
