"""initial_schema

Revision ID: 3f2a9c71d0e4
Revises:
Create Date: 2026-10-19 10:12:41.503117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c71d0e4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    connection = op.get_bind()
    inspector = sa.inspect(connection)

    # База могла быть создана через Base.metadata.create_all при старте приложения
    existing_tables = inspector.get_table_names()

    if 'users' not in existing_tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('phone', sa.String(), nullable=False),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('role', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_phone'), 'users', ['phone'], unique=True)

    if 'schedules' not in existing_tables:
        op.create_table(
            'schedules',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('cron_expr', sa.String(), nullable=False),
            sa.Column('duration_minutes', sa.Integer(), nullable=False),
            sa.Column('start_date', sa.Date(), nullable=True),
            sa.Column('end_date', sa.Date(), nullable=True),
            sa.Column('timezone', sa.String(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_schedules_id'), 'schedules', ['id'], unique=False)

    if 'bookings' not in existing_tables:
        op.create_table(
            'bookings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('schedule_id', sa.Integer(), nullable=False),
            sa.Column('shift_start', sa.DateTime(), nullable=False),
            sa.Column('shift_end', sa.DateTime(), nullable=False),
            sa.Column('buddy_user_id', sa.Integer(), nullable=True),
            sa.Column('buddy_name', sa.String(), nullable=True),
            sa.Column('attended', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['buddy_user_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['schedule_id'], ['schedules.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('schedule_id', 'shift_start', name='uq_booking_schedule_shift_start')
        )
        op.create_index(op.f('ix_bookings_id'), 'bookings', ['id'], unique=False)
        op.create_index(op.f('ix_bookings_user_id'), 'bookings', ['user_id'], unique=False)

    if 'recurring_assignments' not in existing_tables:
        op.create_table(
            'recurring_assignments',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('buddy_name', sa.String(), nullable=True),
            sa.Column('day_of_week', sa.Integer(), nullable=False),
            sa.Column('schedule_id', sa.Integer(), nullable=False),
            sa.Column('time_slot', sa.String(), nullable=False),
            sa.Column('description', sa.String(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='ck_recurring_assignment_day_of_week'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['schedule_id'], ['schedules.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_recurring_assignments_id'), 'recurring_assignments', ['id'], unique=False)
        op.create_index(op.f('ix_recurring_assignments_user_id'), 'recurring_assignments', ['user_id'], unique=False)
        op.create_index(
            'uq_recurring_assignment_active',
            'recurring_assignments',
            ['user_id', 'day_of_week', 'schedule_id', 'time_slot'],
            unique=True,
            sqlite_where=sa.text('is_active = 1'),
            postgresql_where=sa.text('is_active')
        )

    if 'outbox' not in existing_tables:
        op.create_table(
            'outbox',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('message_type', sa.String(), nullable=False),
            sa.Column('recipient', sa.String(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('payload', sa.Text(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('send_at', sa.DateTime(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_outbox_id'), 'outbox', ['id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_outbox_id'), table_name='outbox')
    op.drop_table('outbox')
    op.drop_index('uq_recurring_assignment_active', table_name='recurring_assignments')
    op.drop_index(op.f('ix_recurring_assignments_user_id'), table_name='recurring_assignments')
    op.drop_index(op.f('ix_recurring_assignments_id'), table_name='recurring_assignments')
    op.drop_table('recurring_assignments')
    op.drop_index(op.f('ix_bookings_user_id'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_id'), table_name='bookings')
    op.drop_table('bookings')
    op.drop_index(op.f('ix_schedules_id'), table_name='schedules')
    op.drop_table('schedules')
    op.drop_index(op.f('ix_users_phone'), table_name='users')
    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_table('users')
