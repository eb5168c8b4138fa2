"""wallet, refunds, vendor profile, typed order events

Revision ID: 0002_wallet_refunds
Revises: 0001_initial
Create Date: 2026-10-25 09:41:07.118530

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0002_wallet_refunds'
down_revision: Union[str, Sequence[str], None] = '0001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_EVENT_TYPES = (
    'order_placed', 'payment_verified', 'payment_failed', 'item_status_changed',
    'order_cancelled', 'refund_issued', 'ticket_opened',
)


def upgrade():
    bind = op.get_bind()
    is_postgres = bind.dialect.name == 'postgresql'

    with op.batch_alter_table('user') as batch_op:
        batch_op.add_column(sa.Column('wallet', sa.Float(), nullable=False, server_default='0'))
        batch_op.create_check_constraint('ck_user_wallet_non_negative', 'wallet >= 0')

    with op.batch_alter_table('vendor') as batch_op:
        batch_op.add_column(sa.Column('gstin', sa.String(), nullable=True))
        batch_op.add_column(sa.Column('pan_number', sa.String(), nullable=True))
        batch_op.add_column(sa.Column('address', sa.JSON(), nullable=True))
        batch_op.add_column(
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now())
        )

    if is_postgres:
        # ADD VALUE cannot run inside the migration transaction on older servers
        with op.get_context().autocommit_block():
            op.execute("ALTER TYPE paymentstatus ADD VALUE IF NOT EXISTS 'partially_refunded'")

    with op.batch_alter_table('orders') as batch_op:
        batch_op.add_column(sa.Column('refunded_amount', sa.Float(), nullable=False, server_default='0'))

    event_type = sa.Enum(*ORDER_EVENT_TYPES, name='ordereventtype')
    event_type.create(bind, checkfirst=True)
    with op.batch_alter_table('order_event') as batch_op:
        batch_op.alter_column(
            'event_type',
            existing_type=sa.String(),
            type_=event_type,
            existing_nullable=False,
            postgresql_using='event_type::ordereventtype',
        )
        batch_op.create_index('ix_order_event_created_at', ['created_at'])


def downgrade():
    with op.batch_alter_table('order_event') as batch_op:
        batch_op.drop_index('ix_order_event_created_at')
        batch_op.alter_column(
            'event_type',
            existing_type=sa.Enum(*ORDER_EVENT_TYPES, name='ordereventtype'),
            type_=sa.String(),
            existing_nullable=False,
            postgresql_using='event_type::text',
        )
    sa.Enum(name='ordereventtype').drop(op.get_bind(), checkfirst=True)

    with op.batch_alter_table('orders') as batch_op:
        batch_op.drop_column('refunded_amount')

    # postgres cannot drop an enum value; 'partially_refunded' stays in paymentstatus

    with op.batch_alter_table('vendor') as batch_op:
        batch_op.drop_column('updated_at')
        batch_op.drop_column('address')
        batch_op.drop_column('pan_number')
        batch_op.drop_column('gstin')

    with op.batch_alter_table('user') as batch_op:
        batch_op.drop_constraint('ck_user_wallet_non_negative', type_='check')
        batch_op.drop_column('wallet')
