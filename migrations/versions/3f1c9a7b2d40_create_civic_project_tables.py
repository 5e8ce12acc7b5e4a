"""Create civic project tables

Revision ID: 3f1c9a7b2d40
Revises:
Create Date: 2026-10-18 09:12:41.508113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f1c9a7b2d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    # Reference tables
    op.create_table(
        'barangays',
        _id(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table(
        'tags',
        _id(),
        sa.Column('name', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table(
        'funding_sources',
        _id(),
        sa.Column('name', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'users',
        _id(),
        sa.Column('auth_subject', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=True),
        sa.Column('role', sa.String(length=20), server_default='resident', nullable=False),
        sa.Column('barangay_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['barangay_id'], ['barangays.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('auth_subject'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'announcements',
        _id(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'contacts',
        _id(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('position', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('barangay_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['barangay_id'], ['barangays.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )

    # Projects and their associations
    op.create_table(
        'projects',
        _id(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('cost', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('completion_date', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='planned', nullable=False),
        sa.Column('progress', sa.Integer(), server_default='0', nullable=False),
        sa.Column('implementing_agency', sa.String(length=255), nullable=True),
        sa.Column('contract_term', sa.String(length=255), nullable=True),
        sa.Column('contractor', sa.String(length=255), nullable=True),
        sa.Column('funding_source_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('progress >= 0 AND progress <= 100', name='ck_projects_progress_range'),
        sa.CheckConstraint('cost IS NULL OR cost >= 0', name='ck_projects_cost_positive'),
        sa.ForeignKeyConstraint(['funding_source_id'], ['funding_sources.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('title'),
    )
    op.create_table(
        'project_tags',
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tag_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('project_id', 'tag_id'),
    )
    op.create_table(
        'project_barangays',
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('barangay_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['barangay_id'], ['barangays.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('project_id', 'barangay_id'),
    )

    op.create_table(
        'progress_updates',
        _id(),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('progress', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            'progress >= 0 AND progress <= 100', name='ck_progress_updates_progress_range'
        ),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('project_id', 'progress', name='uq_progress_updates_project_progress'),
    )
    op.create_index('ix_progress_updates_project_id', 'progress_updates', ['project_id'])

    # Engagement
    op.create_table(
        'comments',
        _id(),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('commented_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['commented_by'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_comments_project_id', 'comments', ['project_id'])

    op.create_table(
        'reactions',
        _id(),
        sa.Column('reacted_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('reaction_type', sa.String(length=20), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('comment_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            '(project_id IS NULL) <> (comment_id IS NULL)', name='ck_reactions_single_target'
        ),
        sa.ForeignKeyConstraint(['reacted_by'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reacted_by', 'project_id', name='uq_reactions_user_project'),
        sa.UniqueConstraint('reacted_by', 'comment_id', name='uq_reactions_user_comment'),
    )
    op.create_index('ix_reactions_project_id', 'reactions', ['project_id'])
    op.create_index('ix_reactions_comment_id', 'reactions', ['comment_id'])

    op.create_table(
        'reports',
        _id(),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('reported_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('comment_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            '(project_id IS NULL) <> (comment_id IS NULL)', name='ck_reports_single_target'
        ),
        sa.ForeignKeyConstraint(['reported_by'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reports_project_id', 'reports', ['project_id'])
    op.create_index('ix_reports_comment_id', 'reports', ['comment_id'])

    # Media rows, each owned by exactly one project, progress update or report
    op.create_table(
        'media',
        _id(),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('reference_token', sa.String(length=512), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('recorded_date', sa.DateTime(), nullable=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('progress_update_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('report_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            '(CASE WHEN project_id IS NULL THEN 0 ELSE 1 END)'
            ' + (CASE WHEN progress_update_id IS NULL THEN 0 ELSE 1 END)'
            ' + (CASE WHEN report_id IS NULL THEN 0 ELSE 1 END) = 1',
            name='ck_media_single_owner',
        ),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['progress_update_id'], ['progress_updates.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['report_id'], ['reports.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('url'),
        sa.UniqueConstraint('reference_token'),
    )
    op.create_index('ix_media_project_id', 'media', ['project_id'])
    op.create_index('ix_media_progress_update_id', 'media', ['progress_update_id'])
    op.create_index('ix_media_report_id', 'media', ['report_id'])


def downgrade() -> None:
    op.drop_index('ix_media_report_id', table_name='media')
    op.drop_index('ix_media_progress_update_id', table_name='media')
    op.drop_index('ix_media_project_id', table_name='media')
    op.drop_table('media')
    op.drop_index('ix_reports_comment_id', table_name='reports')
    op.drop_index('ix_reports_project_id', table_name='reports')
    op.drop_table('reports')
    op.drop_index('ix_reactions_comment_id', table_name='reactions')
    op.drop_index('ix_reactions_project_id', table_name='reactions')
    op.drop_table('reactions')
    op.drop_index('ix_comments_project_id', table_name='comments')
    op.drop_table('comments')
    op.drop_index('ix_progress_updates_project_id', table_name='progress_updates')
    op.drop_table('progress_updates')
    op.drop_table('project_barangays')
    op.drop_table('project_tags')
    op.drop_table('projects')
    op.drop_table('contacts')
    op.drop_table('announcements')
    op.drop_table('users')
    op.drop_table('funding_sources')
    op.drop_table('tags')
    op.drop_table('barangays')
