from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('nickname', sa.String(50), nullable=False),
        sa.Column('names', sa.String(100), nullable=False),
        sa.Column('lastnames', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(100), nullable=False),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(30), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'tariffs',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('origin', sa.String(100), nullable=False),
        sa.Column('destination', sa.String(100), nullable=False),
        sa.Column('price_per_kg', sa.Numeric(10, 2), nullable=False),
        sa.UniqueConstraint('origin', 'destination', name='uq_tariffs_route'),
    )

def downgrade():
    op.drop_table('tariffs')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
