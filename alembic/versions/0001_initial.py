"""Initial lending schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19

Compatible with both SQLite and PostgreSQL:
- CURRENT_TIMESTAMP instead of now()
- ENUMs stored as VARCHAR (native_enum=False in models)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Create all tables."""

    # Users table
    op.create_table('users',
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=8), server_default='BORROWER', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    # Equipment table
    op.create_table('equipment',
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_equipment_stock_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_equipment_category_id'), 'equipment', ['category_id'], unique=False)
    op.create_index(op.f('ix_equipment_name'), 'equipment', ['name'], unique=False)

    # Carts
    op.create_table('carts',
        sa.Column('user_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_cart_user_id'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_carts_user_id'), 'carts', ['user_id'], unique=True)

    op.create_table('cart_items',
        sa.Column('cart_id', sa.Integer(), nullable=False),
        sa.Column('equipment_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('date_ordered', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], name='fk_cart_item_cart_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id'], name='fk_cart_item_equipment_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_cart_items_cart_id'), 'cart_items', ['cart_id'], unique=False)
    op.create_index('idx_cart_item_cart_equipment', 'cart_items', ['cart_id', 'equipment_id'], unique=True)

    # Borrow transactions
    op.create_table('borrow_transactions',
        sa.Column('cart_id', sa.Integer(), nullable=False),
        sa.Column('current_status', sa.String(length=8), nullable=False),
        sa.Column('last_status', sa.String(length=8), nullable=True),
        sa.Column('stock_reserved', sa.Boolean(), server_default='0', nullable=False),
        sa.Column('date_applied', sa.DateTime(), nullable=True),
        sa.Column('date_approved', sa.DateTime(), nullable=True),
        sa.Column('pick_up_date', sa.DateTime(), nullable=True),
        sa.Column('date_borrowed', sa.DateTime(), nullable=True),
        sa.Column('return_date', sa.DateTime(), nullable=True),
        sa.Column('date_returned', sa.DateTime(), nullable=True),
        sa.Column('date_archived', sa.DateTime(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], name='fk_borrow_transaction_cart_id'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_borrow_transactions_cart_id'), 'borrow_transactions', ['cart_id'], unique=False)
    op.create_index('idx_borrow_transaction_status', 'borrow_transactions', ['current_status'], unique=False)
    op.create_index('idx_borrow_transaction_status_return', 'borrow_transactions', ['current_status', 'return_date'], unique=False)

    # No foreign key on equipment_id: snapshots outlive equipment rows
    op.create_table('borrowed_items',
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('equipment_id', sa.Integer(), nullable=False),
        sa.Column('equipment_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('date_ordered', sa.DateTime(), nullable=True),
        sa.Column('returned_quantity', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['transaction_id'], ['borrow_transactions.id'], name='fk_borrowed_item_transaction_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_borrowed_items_transaction_id'), 'borrowed_items', ['transaction_id'], unique=False)
    op.create_index(op.f('ix_borrowed_items_equipment_id'), 'borrowed_items', ['equipment_id'], unique=False)

    # Logbook
    op.create_table('logbook',
        sa.Column('transaction_id', sa.Integer(), nullable=True),
        sa.Column('cart_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('last_status', sa.String(length=32), nullable=True),
        sa.Column('current_status', sa.String(length=32), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('date_applied', sa.DateTime(), nullable=True),
        sa.Column('date_approved', sa.DateTime(), nullable=True),
        sa.Column('pick_up_date', sa.DateTime(), nullable=True),
        sa.Column('date_borrowed', sa.DateTime(), nullable=True),
        sa.Column('return_date', sa.DateTime(), nullable=True),
        sa.Column('date_returned', sa.DateTime(), nullable=True),
        sa.Column('date_archived', sa.DateTime(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_logbook_transaction_id'), 'logbook', ['transaction_id'], unique=False)
    op.create_index(op.f('ix_logbook_cart_id'), 'logbook', ['cart_id'], unique=False)
    op.create_index('idx_logbook_transaction_created', 'logbook', ['transaction_id', 'created_at'], unique=False)

    # Notifications
    op.create_table('notifications',
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=13), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('resource_type', sa.String(length=11), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default='0', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_notification_user_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_notification_type_user', 'notifications', ['type', 'user_id'], unique=False)


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('idx_notification_type_user', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('idx_logbook_transaction_created', table_name='logbook')
    op.drop_index(op.f('ix_logbook_cart_id'), table_name='logbook')
    op.drop_index(op.f('ix_logbook_transaction_id'), table_name='logbook')
    op.drop_table('logbook')
    op.drop_index(op.f('ix_borrowed_items_equipment_id'), table_name='borrowed_items')
    op.drop_index(op.f('ix_borrowed_items_transaction_id'), table_name='borrowed_items')
    op.drop_table('borrowed_items')
    op.drop_index('idx_borrow_transaction_status_return', table_name='borrow_transactions')
    op.drop_index('idx_borrow_transaction_status', table_name='borrow_transactions')
    op.drop_index(op.f('ix_borrow_transactions_cart_id'), table_name='borrow_transactions')
    op.drop_table('borrow_transactions')
    op.drop_index('idx_cart_item_cart_equipment', table_name='cart_items')
    op.drop_index(op.f('ix_cart_items_cart_id'), table_name='cart_items')
    op.drop_table('cart_items')
    op.drop_index(op.f('ix_carts_user_id'), table_name='carts')
    op.drop_table('carts')
    op.drop_index(op.f('ix_equipment_name'), table_name='equipment')
    op.drop_index(op.f('ix_equipment_category_id'), table_name='equipment')
    op.drop_table('equipment')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_table('users')
