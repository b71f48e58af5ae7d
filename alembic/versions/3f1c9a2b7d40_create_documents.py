"""create documents

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2025-04-02 00:12:43.512087

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2b7d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'documents',
        sa.Column('path', sa.String(length=512), nullable=False),
        sa.Column('data', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('path'),
    )
    # Prefix scans over one month of raw records during recalculation
    op.create_index('ix_documents_path_prefix', 'documents', ['path'], postgresql_ops={'path': 'text_pattern_ops'})


def downgrade() -> None:
    op.drop_index('ix_documents_path_prefix', table_name='documents')
    op.drop_table('documents')
