"""Initial migration - create users and test_results

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates both tables of the test-session service:
- users: students with their retake permission
- test_results: latest submission per student

Lookups go through the *_key columns, filled by the application with the
trimmed, Unicode lower-cased name. Their indexes carry no uniqueness.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Users Table ───────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('name_key', sa.Text(), nullable=False),
        sa.Column('password', sa.Text(), nullable=False),
        sa.Column('can_retake', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_name_key', 'users', ['name_key'])

    # ── Test Results Table ────────────────────────────────────
    op.create_table(
        'test_results',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column('student_name', sa.Text(), nullable=False),
        sa.Column('student_name_key', sa.Text(), nullable=False),
        sa.Column('pattern', sa.Text(), nullable=True),
        sa.Column('score', sa.Text(), nullable=True),
        sa.Column('total', sa.Text(), nullable=True),
        sa.Column('answers', sa.Text(), nullable=True),
        sa.Column('pdf_downloaded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('ip', sa.Text(), nullable=True),
    )
    op.create_index('ix_test_results_student_name_key', 'test_results', ['student_name_key'])


def downgrade() -> None:
    op.drop_index('ix_test_results_student_name_key', table_name='test_results')
    op.drop_table('test_results')
    op.drop_index('ix_users_name_key', table_name='users')
    op.drop_table('users')
