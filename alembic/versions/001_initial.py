"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

property_type = sa.Enum('HOTEL', 'RESTAURANT', name='property_type')
user_type = sa.Enum('MASTER_ADMIN', 'PROPERTY_ADMIN', 'STAFF', name='user_type')


def upgrade() -> None:
    # Create properties table
    op.create_table(
        'properties',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('code', sa.String(50), unique=True, nullable=False),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('property_type', property_type, nullable=False),
        sa.Column('address_line1', sa.String(200)),
        sa.Column('address_line2', sa.String(200)),
        sa.Column('city', sa.String(80)),
        sa.Column('state', sa.String(80)),
        sa.Column('country', sa.String(80)),
        sa.Column('postal_code', sa.String(20)),
        sa.Column('timezone', sa.String(64), server_default='Asia/Kolkata'),
        sa.Column('gstin', sa.String(20)),
        sa.Column('phone', sa.String(32)),
        sa.Column('email', sa.String(254)),
        sa.Column('website', sa.String(200)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('property_id', sa.Integer(), sa.ForeignKey('properties.id')),
        sa.Column('full_name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(254), unique=True),
        sa.Column('phone', sa.String(32)),
        sa.Column('user_type', user_type, nullable=False, server_default='STAFF'),
        sa.Column('password_hash', sa.String(255)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('email_verified_at', sa.DateTime()),
        sa.Column('refresh_token', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create roles and permissions tables
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(80), unique=True, nullable=False),
        sa.Column('description', sa.String(255)),
    )

    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('code', sa.String(100), unique=True, nullable=False),
        sa.Column('description', sa.String(255)),
    )

    # Association tables
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'role_permissions',
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), primary_key=True),
    )

    # First Master Admin claim marker
    op.create_table(
        'bootstrap_claims',
        sa.Column('name', sa.String(64), primary_key=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create indexes
    op.create_index('ix_users_property_id', 'users', ['property_id'])
    op.create_index('ix_users_user_type', 'users', ['user_type'])


def downgrade() -> None:
    op.drop_index('ix_users_user_type', 'users')
    op.drop_index('ix_users_property_id', 'users')
    op.drop_table('bootstrap_claims')
    op.drop_table('role_permissions')
    op.drop_table('user_roles')
    op.drop_table('permissions')
    op.drop_table('roles')
    op.drop_table('users')
    op.drop_table('properties')
    user_type.drop(op.get_bind(), checkfirst=True)
    property_type.drop(op.get_bind(), checkfirst=True)
