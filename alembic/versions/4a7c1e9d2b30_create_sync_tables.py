"""Create company, token, function and synced record tables.

Revision ID: 4a7c1e9d2b30
Revises:
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '4a7c1e9d2b30'
down_revision = None
branch_labels = None
depends_on = None


def _json() -> sa.types.TypeEngine:
    return postgresql.JSONB().with_variant(sa.JSON(), 'sqlite')


def _record_columns() -> list:
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('airtable_record_id', sa.String(length=255), nullable=False),
    ]


def _company_column() -> sa.Column:
    return sa.Column('cio_company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False)


def _index(table: str, column: str, unique: bool = False) -> None:
    op.create_index(f'ix_{table}_{column}', table, [column], unique=unique)


def upgrade() -> None:
    op.create_table(
        'companies',
        *_record_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('gsuite_domain', sa.String(length=255), nullable=False),
        sa.Column('github_org', sa.String(length=255), nullable=False),
        sa.Column('website', sa.String(length=512), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=False),
        sa.Column('gsuite_account_id', sa.String(length=255), nullable=False),
        sa.Column('gsuite_subject', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=64), nullable=False),
        sa.Column('okta_domain', sa.String(length=255), nullable=False),
        sa.Column('mailchimp_list_id', sa.String(length=64), nullable=False),
        sa.Column('airtable_base_id_cio', sa.String(length=64), nullable=False),
        sa.Column('airtable_base_id_customer_leads', sa.String(length=64), nullable=False),
        sa.Column('airtable_base_id_finance', sa.String(length=64), nullable=False),
        sa.Column('airtable_base_id_travel', sa.String(length=64), nullable=False),
        sa.Column('airtable_base_id_misc', sa.String(length=64), nullable=False),
        sa.Column('airtable_base_id_hiring', sa.String(length=64), nullable=False),
        sa.Column('airtable_enterprise_account_id', sa.String(length=64), nullable=False),
        sa.Column('slack_channel_debug', sa.String(length=255), nullable=False),
        sa.Column('slack_channel_mailing_lists', sa.String(length=255), nullable=False),
        sa.Column('slack_webhook_url', sa.String(length=512), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    _index('companies', 'airtable_record_id')
    _index('companies', 'name', unique=True)

    op.create_table(
        'api_tokens',
        *_record_columns(),
        _company_column(),
        sa.Column('product', sa.String(length=64), nullable=False),
        sa.Column('company_id', sa.String(length=255), nullable=False),
        sa.Column('item_id', sa.String(length=255), nullable=False),
        sa.Column('user_email', sa.String(length=255), nullable=False),
        sa.Column('token_type', sa.String(length=64), nullable=False),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('expires_in', sa.Integer(), nullable=False),
        sa.Column('refresh_token', sa.Text(), nullable=False),
        sa.Column('refresh_token_expires_in', sa.Integer(), nullable=False),
        sa.Column('expires_date', sa.DateTime(), nullable=True),
        sa.Column('refresh_token_expires_date', sa.DateTime(), nullable=True),
        sa.Column('endpoint', sa.String(length=512), nullable=False),
        sa.Column('last_updated_at', sa.DateTime(), nullable=False),
        sa.Column('auth_company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('auth_company_id', 'product', name='uq_api_token_company_product'),
    )
    _index('api_tokens', 'airtable_record_id')
    _index('api_tokens', 'cio_company_id')
    _index('api_tokens', 'product')
    _index('api_tokens', 'auth_company_id')

    op.create_table(
        'functions',
        *_record_columns(),
        _company_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('conclusion', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('logs', sa.Text(), nullable=False),
        sa.Column('saga_id', sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    _index('functions', 'airtable_record_id')
    _index('functions', 'cio_company_id')
    _index('functions', 'name')
    _index('functions', 'status')
    _index('functions', 'saga_id', unique=True)

    op.create_table(
        'software_vendors',
        *_record_columns(),
        _company_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('category', sa.String(length=255), nullable=False),
        sa.Column('website', sa.String(length=512), nullable=False),
        sa.Column('has_okta_integration', sa.Boolean(), nullable=False),
        sa.Column('used_purely_for_api', sa.Boolean(), nullable=False),
        sa.Column('pay_as_you_go', sa.Boolean(), nullable=False),
        sa.Column('pay_as_you_go_pricing_description', sa.String(), nullable=False),
        sa.Column('software_licenses', sa.Boolean(), nullable=False),
        sa.Column('cost_per_user_per_month', sa.Float(), nullable=False),
        sa.Column('users', sa.Integer(), nullable=False),
        sa.Column('flat_cost_per_month', sa.Float(), nullable=False),
        sa.Column('total_cost_per_month', sa.Float(), nullable=False),
        sa.Column('groups', _json(), nullable=True),
        sa.Column('link_to_transactions', _json(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    _index('software_vendors', 'airtable_record_id')
    _index('software_vendors', 'cio_company_id')
    _index('software_vendors', 'name')

    op.create_table(
        'credit_card_transactions',
        *_record_columns(),
        _company_column(),
        sa.Column('transaction_id', sa.String(length=255), nullable=False),
        sa.Column('card_vendor', sa.String(length=64), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('employee_name', sa.String(length=255), nullable=False),
        sa.Column('employee_email', sa.String(length=255), nullable=False),
        sa.Column('card_id', sa.String(length=255), nullable=False),
        sa.Column('merchant_id', sa.String(length=255), nullable=False),
        sa.Column('merchant_name', sa.String(length=255), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('category_name', sa.String(length=255), nullable=False),
        sa.Column('state', sa.String(length=64), nullable=False),
        sa.Column('memo', sa.String(), nullable=False),
        sa.Column('time', sa.DateTime(), nullable=False),
        sa.Column('receipts', _json(), nullable=True),
        sa.Column('link_to_vendor', _json(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cio_company_id', 'transaction_id', name='uq_credit_card_transaction_company_transaction'),
    )
    _index('credit_card_transactions', 'airtable_record_id')
    _index('credit_card_transactions', 'cio_company_id')
    _index('credit_card_transactions', 'transaction_id')

    op.create_table(
        'bookings',
        *_record_columns(),
        _company_column(),
        sa.Column('booking_id', sa.String(length=255), nullable=False),
        sa.Column('booked_at', sa.DateTime(), nullable=True),
        sa.Column('last_modified_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('booking_type', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=64), nullable=False),
        sa.Column('vendor', sa.String(length=255), nullable=False),
        sa.Column('flight', sa.String(length=64), nullable=False),
        sa.Column('cabin', sa.String(length=64), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('passengers', _json(), nullable=True),
        sa.Column('booker', sa.String(length=255), nullable=False),
        sa.Column('origin', sa.String(length=255), nullable=False),
        sa.Column('destination', sa.String(length=255), nullable=False),
        sa.Column('length', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('currency', sa.String(length=16), nullable=False),
        sa.Column('grand_total', sa.Float(), nullable=False),
        sa.Column('purpose', sa.String(length=255), nullable=False),
        sa.Column('reason', sa.String(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cio_company_id', 'booking_id', name='uq_booking_company_booking'),
    )
    _index('bookings', 'airtable_record_id')
    _index('bookings', 'cio_company_id')
    _index('bookings', 'booking_id')

    op.create_table(
        'recorded_meetings',
        *_record_columns(),
        _company_column(),
        sa.Column('meeting_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=512), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('video', sa.String(length=1024), nullable=False),
        sa.Column('chat_log_link', sa.String(length=1024), nullable=False),
        sa.Column('chat_log', sa.Text(), nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('attendees', _json(), nullable=True),
        sa.Column('transcript', sa.Text(), nullable=False),
        sa.Column('transcript_id', sa.String(length=255), nullable=False),
        sa.Column('event_link', sa.String(length=1024), nullable=False),
        sa.Column('location', sa.String(length=512), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cio_company_id', 'meeting_id', name='uq_recorded_meeting_company_meeting'),
    )
    _index('recorded_meetings', 'airtable_record_id')
    _index('recorded_meetings', 'cio_company_id')
    _index('recorded_meetings', 'meeting_id')

    op.create_table(
        'mailing_list_subscribers',
        *_record_columns(),
        _company_column(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=512), nullable=False),
        sa.Column('company', sa.String(length=255), nullable=False),
        sa.Column('interest', sa.Text(), nullable=False),
        sa.Column('wants_podcast_updates', sa.Boolean(), nullable=False),
        sa.Column('wants_newsletter', sa.Boolean(), nullable=False),
        sa.Column('wants_product_updates', sa.Boolean(), nullable=False),
        sa.Column('date_added', sa.DateTime(), nullable=False),
        sa.Column('date_optin', sa.DateTime(), nullable=True),
        sa.Column('date_last_changed', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('source', sa.String(length=255), nullable=False),
        sa.Column('revenue', sa.Float(), nullable=False),
        sa.Column('street_1', sa.String(length=255), nullable=False),
        sa.Column('street_2', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=255), nullable=False),
        sa.Column('state', sa.String(length=255), nullable=False),
        sa.Column('zipcode', sa.String(length=32), nullable=False),
        sa.Column('country', sa.String(length=255), nullable=False),
        sa.Column('address_formatted', sa.String(length=1024), nullable=False),
        sa.Column('phone', sa.String(length=64), nullable=False),
        sa.Column('tags', _json(), nullable=True),
        sa.Column('zoho_lead_id', sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    _index('mailing_list_subscribers', 'airtable_record_id')
    _index('mailing_list_subscribers', 'cio_company_id')
    _index('mailing_list_subscribers', 'email')

    op.create_table(
        'applicants',
        *_record_columns(),
        _company_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=64), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=64), nullable=False),
        sa.Column('submitted_time', sa.DateTime(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('criminal_background_check_status', sa.String(length=64), nullable=False),
        sa.Column('motor_vehicle_background_check_status', sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    _index('applicants', 'airtable_record_id')
    _index('applicants', 'cio_company_id')
    _index('applicants', 'name')
    _index('applicants', 'email')
    _index('applicants', 'status')


def downgrade() -> None:
    for table in (
        'applicants',
        'mailing_list_subscribers',
        'recorded_meetings',
        'bookings',
        'credit_card_transactions',
        'software_vendors',
        'functions',
        'api_tokens',
    ):
        op.drop_table(table)
    op.drop_table('companies')
