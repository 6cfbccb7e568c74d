"""Initial schema: users, food listings and messages

Revision ID: 4b1e2c7a9f30
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4b1e2c7a9f30'
down_revision = None
branch_labels = None
depends_on = None

USER_TYPES = ('provider', 'ngo')
URGENCY_LEVELS = ('low', 'medium', 'high')
CLAIM_STATUSES = (
    'open', 'claimed', 'confirmed', 'in_process',
    'delivery_partner_assigned', 'in_transit', 'completed', 'cancelled',
)


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('user_type', sa.Enum(*USER_TYPES, name='user_type'), nullable=False),
        sa.Column('organization_type', sa.String(length=255), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=True)
        batch_op.create_index(batch_op.f('ix_users_user_type'), ['user_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_users_is_verified'), ['is_verified'], unique=False)
        batch_op.create_index(batch_op.f('ix_users_created_at'), ['created_at'], unique=False)

    op.create_table(
        'food_listings',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('quantity', sa.String(length=255), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('food_type', sa.String(length=255), nullable=False),
        sa.Column('urgency', sa.Enum(*URGENCY_LEVELS, name='urgency'), nullable=False),
        sa.Column('expires_in', sa.String(length=255), nullable=False),
        sa.Column('contact_info', sa.String(length=255), nullable=False),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('provider_id', sa.String(length=36), nullable=False),
        sa.Column('claimed_by_ngo_id', sa.String(length=36), nullable=True),
        sa.Column('claim_status', sa.Enum(*CLAIM_STATUSES, name='claim_status'), nullable=False),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['provider_id'], ['users.id']),
        sa.ForeignKeyConstraint(['claimed_by_ngo_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('food_listings', schema=None) as batch_op:
        for column in ('location', 'food_type', 'urgency', 'provider_id',
                       'claimed_by_ngo_id', 'claim_status', 'is_active', 'created_at'):
            batch_op.create_index(batch_op.f(f'ix_food_listings_{column}'), [column], unique=False)

    op.create_table(
        'messages',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('sender_id', sa.String(length=36), nullable=False),
        sa.Column('receiver_id', sa.String(length=36), nullable=False),
        sa.Column('listing_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('sender_id <> receiver_id', name='chk_message_distinct_parties'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id']),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.id']),
        sa.ForeignKeyConstraint(['listing_id'], ['food_listings.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('messages', schema=None) as batch_op:
        for column in ('sender_id', 'receiver_id', 'listing_id', 'created_at'):
            batch_op.create_index(batch_op.f(f'ix_messages_{column}'), [column], unique=False)


def downgrade():
    op.drop_table('messages')
    op.drop_table('food_listings')
    op.drop_table('users')
