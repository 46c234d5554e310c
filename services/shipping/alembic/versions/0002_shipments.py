from alembic import op
import sqlalchemy as sa

revision = '0002_shipments'
down_revision = '0001_init'
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'shipments',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('origin', sa.String(100), nullable=False),
        sa.Column('destination', sa.String(100), nullable=False),
        sa.Column('package_weight', sa.Numeric(10, 2), nullable=False),
        sa.Column('package_length', sa.Numeric(10, 2), nullable=False),
        sa.Column('package_width', sa.Numeric(10, 2), nullable=False),
        sa.Column('package_height', sa.Numeric(10, 2), nullable=False),
        sa.Column('quoted_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('tracking_number', sa.String(32), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('tracking_number', name='uq_shipments_tracking_number'),
    )
    op.create_index('ix_shipments_user_id', 'shipments', ['user_id'])

    # Append-only ledger, one row per status change
    op.create_table(
        'shipment_status_history',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('shipment_id', sa.Integer, sa.ForeignKey('shipments.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('location', sa.String(150), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_shipment_status_history_shipment_id', 'shipment_status_history', ['shipment_id'])

def downgrade():
    op.drop_index('ix_shipment_status_history_shipment_id', table_name='shipment_status_history')
    op.drop_table('shipment_status_history')
    op.drop_index('ix_shipments_user_id', table_name='shipments')
    op.drop_table('shipments')
