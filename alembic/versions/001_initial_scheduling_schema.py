"""Initial scheduling schema

Revision ID: 001
Revises:
Create Date: 2025-06-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Create appointment_types table
    op.create_table('appointment_types',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    # Create appointments table
    op.create_table('appointments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('appointment_time', sa.Time(), nullable=False),
        sa.Column('appointment_type_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('patient_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('symptoms', sa.Text(), nullable=True),
        sa.Column('is_approved', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('is_completed', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('is_canceled', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=500), nullable=True),
        sa.Column('reschedule_reason', sa.String(length=100), nullable=True),
        sa.CheckConstraint('NOT (is_completed AND is_canceled)', name='ck_appointments_not_completed_and_canceled'),
        sa.ForeignKeyConstraint(['appointment_type_id'], ['appointment_types.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_appointments_appointment_date', 'appointments', ['appointment_date'])
    op.create_index('ix_appointments_owner_id', 'appointments', ['owner_id'])
    op.create_index('idx_appointments_date_canceled', 'appointments', ['appointment_date', 'is_canceled'])
    op.create_index('idx_appointments_date_time', 'appointments', ['appointment_date', 'appointment_time'])
    op.create_index('idx_appointments_date_type', 'appointments', ['appointment_date', 'appointment_type_id'])

    # Create appointment type association table
    op.create_table('appointment_appointment_types',
        sa.Column('appointment_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('appointment_type_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['appointment_type_id'], ['appointment_types.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('appointment_id', 'appointment_type_id'),
    )
    op.create_index('idx_appointment_appointment_types_type', 'appointment_appointment_types', ['appointment_type_id'])

    # Create appointment patient association table
    op.create_table('appointment_patients',
        sa.Column('appointment_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('patient_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('appointment_id', 'patient_id'),
    )

    # Create disabled_dates table
    op.create_table('disabled_dates',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(length=500), nullable=True),
        sa.Column('disabled_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_disabled_dates_date', 'disabled_dates', ['date'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_disabled_dates_date', table_name='disabled_dates')
    op.drop_table('disabled_dates')
    op.drop_table('appointment_patients')
    op.drop_index('idx_appointment_appointment_types_type', table_name='appointment_appointment_types')
    op.drop_table('appointment_appointment_types')
    op.drop_index('idx_appointments_date_type', table_name='appointments')
    op.drop_index('idx_appointments_date_time', table_name='appointments')
    op.drop_index('idx_appointments_date_canceled', table_name='appointments')
    op.drop_index('ix_appointments_owner_id', table_name='appointments')
    op.drop_index('ix_appointments_appointment_date', table_name='appointments')
    op.drop_table('appointments')
    op.drop_table('appointment_types')
