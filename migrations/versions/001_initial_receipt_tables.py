"""Initial receipt tables migration

Revision ID: 001_initial_receipts
Revises:
Create Date: 2026-03-14

Creates users, receipts and receipt_items.
Uses IF NOT EXISTS to be safe for databases created with create_all().
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '001_initial_receipts'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR PRIMARY KEY,
            firebase_uid VARCHAR NOT NULL UNIQUE,
            email VARCHAR UNIQUE,
            display_name VARCHAR,
            is_active BOOLEAN DEFAULT true,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_firebase_uid ON users(firebase_uid)")

    # Create receipts table
    op.execute("""
        CREATE TABLE IF NOT EXISTS receipts (
            id VARCHAR PRIMARY KEY,
            user_id VARCHAR NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            store_name VARCHAR NOT NULL,
            purchase_date TIMESTAMP WITH TIME ZONE NOT NULL,
            total_amount FLOAT NOT NULL DEFAULT 0,
            total_tax FLOAT NOT NULL DEFAULT 0,
            savings FLOAT NOT NULL DEFAULT 0,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_receipts_user_id ON receipts(user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_receipts_purchase_date ON receipts(purchase_date)")

    # Create receipt_items table
    op.execute("""
        CREATE TABLE IF NOT EXISTS receipt_items (
            id VARCHAR PRIMARY KEY,
            receipt_id VARCHAR NOT NULL REFERENCES receipts(id) ON DELETE CASCADE,
            position INTEGER NOT NULL DEFAULT 0,
            name VARCHAR,
            category VARCHAR NOT NULL,
            price FLOAT NOT NULL,
            is_discount BOOLEAN NOT NULL DEFAULT false,
            discount_description TEXT
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_receipt_items_receipt_position
        ON receipt_items(receipt_id, position)
    """)


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign keys)
    op.execute("DROP TABLE IF EXISTS receipt_items CASCADE")
    op.execute("DROP TABLE IF EXISTS receipts CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
