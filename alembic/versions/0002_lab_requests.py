"""Lab room requests

Revision ID: 0002_lab_requests
Revises: 0001_initial
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '0002_lab_requests'
down_revision: Union[str, Sequence[str], None] = '0001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('lab_requests',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('lab', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=9), server_default='pending', nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('decided_by', sa.Integer(), nullable=True),
        sa.Column('date_approved', sa.DateTime(), nullable=True),
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_lab_request_user_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_lab_requests_user_id'), 'lab_requests', ['user_id'], unique=False)
    op.create_index('idx_lab_request_lab_status', 'lab_requests', ['lab', 'status'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_lab_request_lab_status', table_name='lab_requests')
    op.drop_index(op.f('ix_lab_requests_user_id'), table_name='lab_requests')
    op.drop_table('lab_requests')
