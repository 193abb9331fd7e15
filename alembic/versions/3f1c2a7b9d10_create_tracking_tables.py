"""create purchase order, shipment tracking and notification tables

Revision ID: 3f1c2a7b9d10
Revises:
Create Date: 2026-10-18 09:12:41.512203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a7b9d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('created_by', sa.String(length=255), server_default=sa.text("'system@local'"), nullable=False),
        sa.Column('last_changed_by', sa.String(length=255), server_default=sa.text("'system@local'"), nullable=False),
    ]


def _text_column(name: str) -> sa.Column:
    # Provider strings have no documented length limit.
    return sa.Column(name, sa.Text(), server_default=sa.text("''"), nullable=False)


def upgrade() -> None:
    # 1. Purchase Order
    op.create_table(
        'purchase_order',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('po_number', sa.String(length=30), nullable=False),
        sa.Column('order_type', sa.String(length=30), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchase_order_po_number', 'purchase_order', ['po_number'], unique=True)

    # 2. Customer Sub-Order
    op.create_table(
        'customer_order',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('customer_po_number', sa.String(length=30), nullable=False),
        sa.Column('customer', sa.String(length=120), nullable=True),
        sa.Column('warehouse', sa.String(length=120), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_order.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_customer_order_purchase_order_id', 'customer_order', ['purchase_order_id'])

    # 3. Shipment
    op.create_table(
        'shipment',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('customer_order_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('container_no', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=100), nullable=True),
        sa.Column('carrier', sa.String(length=100), nullable=True),
        sa.Column('bol_number', sa.String(length=50), nullable=True),
        sa.Column('eta', sa.Date(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['customer_order_id'], ['customer_order.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_shipment_customer_order_id', 'shipment', ['customer_order_id'])
    op.create_index('ix_shipment_container_no', 'shipment', ['container_no'])

    # 4. Tracking history (append-only)
    op.create_table(
        'shipment_tracking_record',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('shipment_id', sa.Integer(), nullable=False),
        _text_column('type'),
        _text_column('number'),
        _text_column('sealine'),
        _text_column('sealine_name'),
        _text_column('status'),
        _text_column('updated_at'),
        _text_column('from_port_name'),
        _text_column('from_port_country'),
        _text_column('from_port_locode'),
        _text_column('to_port_name'),
        _text_column('to_port_country'),
        _text_column('to_port_locode'),
        _text_column('pol_name'),
        _text_column('pol_date'),
        sa.Column('pol_actual', sa.JSON(), nullable=False),
        _text_column('pod_name'),
        _text_column('pod_date'),
        sa.Column('pod_actual', sa.JSON(), nullable=False),
        _text_column('pod_predictive_eta'),
        _text_column('container_iso_code'),
        _text_column('container_size_type'),
        _text_column('vessel_names'),
        _text_column('vessel_imos'),
        _text_column('last_event_code'),
        _text_column('last_event_status'),
        _text_column('last_event_date'),
        _text_column('last_event_location'),
        _text_column('last_event_facility'),
        _text_column('last_event_vessel'),
        _text_column('last_event_voyage'),
        _text_column('latlong'),
        _text_column('raw_json'),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['shipment_id'], ['shipment.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_shipment_tracking_record_shipment_id', 'shipment_tracking_record', ['shipment_id'])

    # 5. Notifications feed
    op.create_table(
        'notification',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=20), server_default=sa.text("'info'"), nullable=False),
        sa.Column('read', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('related_id', sa.String(length=50), nullable=True),
        sa.Column('link', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_related_id', 'notification', ['related_id'])


def downgrade() -> None:
    op.drop_index('ix_notification_related_id', table_name='notification')
    op.drop_table('notification')
    op.drop_index('ix_shipment_tracking_record_shipment_id', table_name='shipment_tracking_record')
    op.drop_table('shipment_tracking_record')
    op.drop_index('ix_shipment_container_no', table_name='shipment')
    op.drop_index('ix_shipment_customer_order_id', table_name='shipment')
    op.drop_table('shipment')
    op.drop_index('ix_customer_order_purchase_order_id', table_name='customer_order')
    op.drop_table('customer_order')
    op.drop_index('ix_purchase_order_po_number', table_name='purchase_order')
    op.drop_table('purchase_order')
