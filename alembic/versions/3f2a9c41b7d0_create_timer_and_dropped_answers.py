"""create_timer_and_dropped_answers

Revision ID: 3f2a9c41b7d0
Revises:
Create Date: 2026-10-17 10:12:03.418221

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c41b7d0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('timer_states',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mock_id', sa.String(64), nullable=False),
        sa.Column('section_id', sa.String(64), nullable=False),
        sa.Column('remaining_seconds', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('mock_id', 'section_id', name='uq_timer_mock_section')
    )
    op.create_index('ix_timer_states_id', 'timer_states', ['id'])
    op.create_index('ix_timer_states_mock_id', 'timer_states', ['mock_id'])
    op.create_index('ix_timer_states_section_id', 'timer_states', ['section_id'])

    op.create_table('dropped_answers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mock_id', sa.String(64), nullable=False),
        sa.Column('section_id', sa.String(64), nullable=False),
        sa.Column('question_ord', sa.Integer(), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('dropped_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resent_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_dropped_answers_id', 'dropped_answers', ['id'])
    op.create_index('ix_dropped_answers_mock_id', 'dropped_answers', ['mock_id'])
    op.create_index('ix_dropped_answers_section_id', 'dropped_answers', ['section_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_dropped_answers_section_id', table_name='dropped_answers')
    op.drop_index('ix_dropped_answers_mock_id', table_name='dropped_answers')
    op.drop_index('ix_dropped_answers_id', table_name='dropped_answers')
    op.drop_table('dropped_answers')
    op.drop_index('ix_timer_states_section_id', table_name='timer_states')
    op.drop_index('ix_timer_states_mock_id', table_name='timer_states')
    op.drop_index('ix_timer_states_id', table_name='timer_states')
    op.drop_table('timer_states')
