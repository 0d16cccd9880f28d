"""Initial schema: tenants, customers, services, appointments, notification logs

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-03-01

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_initial_schema'
down_revision = None

subscription_status = sa.Enum('TRIAL', 'ACTIVE', 'EXPIRED', 'CANCELLED', name='subscriptionstatus')
appointment_status = sa.Enum(
    'PENDING', 'CONFIRMED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED', 'NO_SHOW',
    name='appointmentstatus'
)
payment_status = sa.Enum('PENDING', 'PAID', 'FAILED', name='paymentstatus')
notification_kind = sa.Enum('CONFIRMATION', 'RESCHEDULE', 'CANCELLATION', 'REMINDER', name='notificationkind')
notification_status = sa.Enum('SENT', 'FAILED', 'SKIPPED', name='notificationstatus')

ACTIVE_SLOT = sa.text("status IN ('PENDING', 'CONFIRMED', 'IN_PROGRESS')")


def upgrade():
    op.create_table(
        'tenants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('slug', sa.String(40), nullable=False),
        sa.Column('business_name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('subscription_status', subscription_status, nullable=False),
        sa.Column('subscription_plan', sa.String(50), nullable=True),
        sa.Column('trial_ends_at', sa.DateTime(), nullable=True),
        sa.Column('subscription_ends_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_tenants_slug', 'tenants', ['slug'], unique=True)
    op.create_index('ix_tenants_business_name', 'tenants', ['business_name'])
    op.create_index('ix_tenants_subscription_status', 'tenants', ['subscription_status'])
    op.create_index('ix_tenants_is_active', 'tenants', ['is_active'])

    op.create_table(
        'customers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('notes', sa.String(2000), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_customers_phone', 'customers', ['phone'])
    op.create_index('ix_customers_email', 'customers', ['email'])

    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.String(1000), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_services_tenant_id', 'services', ['tenant_id'])
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('scheduled_time', sa.Time(), nullable=False),
        sa.Column('slot_time', sa.Time(), nullable=False),
        sa.Column('service_name', sa.String(200), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('status', appointment_status, nullable=False),
        sa.Column('payment_status', payment_status, nullable=False),
        sa.Column('notes', sa.String(2000), nullable=True),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_sent_at', sa.DateTime(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancellation_reason', sa.String(1000), nullable=True),
        sa.Column('reschedule_reason', sa.String(1000), nullable=True),
        sa.Column('reschedule_requested_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_appointments_tenant_id', 'appointments', ['tenant_id'])
    op.create_index('ix_appointments_customer_id', 'appointments', ['customer_id'])
    op.create_index('ix_appointments_scheduled_date', 'appointments', ['scheduled_date'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])

    # At most one slot-holding appointment per tenant, date and minute
    op.create_index(
        'uq_appointments_active_slot',
        'appointments',
        ['tenant_id', 'scheduled_date', 'slot_time'],
        unique=True,
        postgresql_where=ACTIVE_SLOT,
        sqlite_where=ACTIVE_SLOT,
    )

    op.create_table(
        'notification_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('appointment_id', sa.Uuid(), nullable=False),
        sa.Column('kind', notification_kind, nullable=False),
        sa.Column('recipient', sa.String(255), nullable=True),
        sa.Column('message_body', sa.String(2000), nullable=False),
        sa.Column('status', notification_status, nullable=False),
        sa.Column('provider_message_id', sa.String(100), nullable=True),
        sa.Column('error_message', sa.String(1000), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notification_logs_tenant_id', 'notification_logs', ['tenant_id'])
    op.create_index('ix_notification_logs_appointment_id', 'notification_logs', ['appointment_id'])


def downgrade():
    op.drop_table('notification_logs')
    op.drop_index('uq_appointments_active_slot', 'appointments')
    op.drop_table('appointments')
    op.drop_table('services')
    op.drop_table('customers')
    op.drop_table('tenants')

    bind = op.get_bind()
    for enum in (notification_status, notification_kind, payment_status, appointment_status, subscription_status):
        enum.drop(bind, checkfirst=True)
