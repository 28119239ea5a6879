"""Create profiles, filters, articles and the article_filters link table

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255)),
        sa.Column('role', sa.String(20), nullable=False, server_default='reader'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint("role IN ('reader', 'author', 'editor', 'admin')", name='ck_profiles_role'),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)

    op.create_table(
        'filters',
        sa.Column('id', sa.Uuid(), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('parent_id', sa.Uuid()),
        sa.Column('level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['parent_id'], ['filters.id'], ondelete='RESTRICT'),
        sa.CheckConstraint('level >= 0 AND level <= 2', name='ck_filters_level_range'),
    )
    op.create_index('ix_filters_slug', 'filters', ['slug'], unique=True)
    op.create_index('ix_filters_parent_id', 'filters', ['parent_id'])
    op.create_index('idx_filters_parent_order', 'filters', ['parent_id', 'order_index'])

    op.create_table(
        'articles',
        sa.Column('id', sa.Uuid(), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('slug', sa.String(500), nullable=False),
        sa.Column('excerpt', sa.Text()),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('published_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint("status IN ('draft', 'published', 'archived')", name='ck_articles_status'),
    )
    op.create_index('ix_articles_slug', 'articles', ['slug'], unique=True)
    op.create_index('idx_articles_status_published', 'articles', ['status', 'published_at'])

    op.create_table(
        'article_filters',
        sa.Column('article_id', sa.Uuid(), primary_key=True),
        sa.Column('filter_id', sa.Uuid(), primary_key=True),
        sa.ForeignKeyConstraint(['article_id'], ['articles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['filter_id'], ['filters.id'], ondelete='RESTRICT'),
    )
    op.create_index('ix_article_filters_filter_id', 'article_filters', ['filter_id'])


def downgrade() -> None:
    op.drop_index('ix_article_filters_filter_id', table_name='article_filters')
    op.drop_table('article_filters')
    op.drop_index('idx_articles_status_published', table_name='articles')
    op.drop_index('ix_articles_slug', table_name='articles')
    op.drop_table('articles')
    op.drop_index('idx_filters_parent_order', table_name='filters')
    op.drop_index('ix_filters_parent_id', table_name='filters')
    op.drop_index('ix_filters_slug', table_name='filters')
    op.drop_table('filters')
    op.drop_index('ix_profiles_email', table_name='profiles')
    op.drop_table('profiles')
