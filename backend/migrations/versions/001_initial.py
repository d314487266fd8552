"""Initial migration - create the students table

Revision ID: 001_initial
Revises: None
Create Date: 2025-06-02

Creates the single table of the tracker:
- students: Student records with contact details and Codeforces ratings

Email carries a unique index; the Codeforces handle is indexed for lookups.
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
    # ── Students Table ────────────────────────────────────────
    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('contact', sa.Text(), nullable=False),
        sa.Column('codeforces_id', sa.Text(), nullable=False),
        sa.Column('current_rating', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_rating', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint('email', name='uq_students_email'),
    )

    op.create_index('ix_students_codeforces_id', 'students', ['codeforces_id'])


def downgrade() -> None:
    op.drop_index('ix_students_codeforces_id', table_name='students')
    op.drop_table('students')
