"""create_onboarding_tables

Revision ID: b7e1c2d3a4f5
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'b7e1c2d3a4f5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


role_kind_enum = postgresql.ENUM(
    'club_manager', 'member', 'parent', 'club_coach',
    name='role_kind_enum', create_type=False,
)
club_type_enum = postgresql.ENUM(
    'sports', 'academic', 'social', 'professional', 'other',
    name='club_type_enum', create_type=False,
)
child_relationship_enum = postgresql.ENUM(
    'parent', 'guardian', 'grandparent', 'relative', 'other',
    name='child_relationship_enum', create_type=False,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema - Create users, clubs, roles, accounts, invites and progress."""
    bind = op.get_bind()
    role_kind_enum.create(bind, checkfirst=True)
    club_type_enum.create(bind, checkfirst=True)
    child_relationship_enum.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('auth_id', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('primary_role', role_kind_enum, nullable=True),
        sa.Column('is_onboarded', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('onboarding_completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_auth_id', 'users', ['auth_id'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'user_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('emergency_contact', sa.String(length=255), nullable=True),
        sa.Column('medical_info', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'clubs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('club_type', club_type_enum, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('founded_year', sa.Integer(), nullable=True),
        sa.Column('membership_capacity', sa.Integer(), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('verified', sa.Boolean(), server_default='false', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_clubs_club_type', 'clubs', ['club_type'])
    op.create_index('ix_clubs_created_by', 'clubs', ['created_by'])

    op.create_table(
        'club_invite_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('club_id', sa.Integer(), nullable=False),
        sa.Column('role', role_kind_enum, nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('used_count >= 0', name='ck_invite_used_count_non_negative'),
        sa.CheckConstraint(
            'usage_limit IS NULL OR used_count <= usage_limit',
            name='ck_invite_used_count_within_limit',
        ),
        sa.CheckConstraint(
            'usage_limit IS NULL OR usage_limit > 0',
            name='ck_invite_usage_limit_positive',
        ),
        sa.ForeignKeyConstraint(['club_id'], ['clubs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_club_invite_codes_code', 'club_invite_codes', ['code'], unique=True)
    op.create_index('ix_club_invite_codes_club_id', 'club_invite_codes', ['club_id'])

    op.create_table(
        'user_roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', role_kind_enum, nullable=False),
        sa.Column('club_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['club_id'], ['clubs.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_roles_club_id', 'user_roles', ['club_id'])
    op.create_index('ix_user_roles_user_active', 'user_roles', ['user_id', 'is_active'])
    # One active role per (user, role, club)
    op.create_index(
        'uq_user_roles_active_scope',
        'user_roles',
        ['user_id', 'role', 'club_id'],
        unique=True,
        postgresql_where=sa.text('is_active'),
    )

    op.create_table(
        'user_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_role_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('account_number', sa.String(length=20), nullable=False),
        sa.Column('role', role_kind_enum, nullable=False),
        sa.Column('club_id', sa.Integer(), nullable=True),
        sa.Column('position', sa.String(length=100), nullable=True),
        sa.Column('parent_phone', sa.String(length=20), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('onboarding_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('length(account_number) = 11', name='ck_account_number_length'),
        sa.ForeignKeyConstraint(['user_role_id'], ['user_roles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['club_id'], ['clubs.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_role_id'),
    )
    op.create_index(
        'ix_user_accounts_account_number', 'user_accounts', ['account_number'], unique=True
    )
    op.create_index('ix_user_accounts_user_active', 'user_accounts', ['user_id', 'is_active'])

    op.create_table(
        'user_children',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('parent_user_id', sa.Integer(), nullable=False),
        sa.Column('relationship', child_relationship_enum, nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('club_id', sa.Integer(), nullable=True),
        sa.Column('membership_code', sa.String(length=50), nullable=True),
        sa.Column('medical_info', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            'first_name IS NOT NULL AND last_name IS NOT NULL '
            'AND date_of_birth IS NOT NULL',
            name='ck_user_children_identity',
        ),
        sa.ForeignKeyConstraint(['parent_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['club_id'], ['clubs.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_children_parent_user_id', 'user_children', ['parent_user_id'])
    op.create_index('ix_user_children_club_id', 'user_children', ['club_id'])

    op.create_table(
        'completion_steps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', role_kind_enum, nullable=False),
        sa.Column('step', sa.String(length=50), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'role', 'step', name='uq_completion_step'),
    )
    op.create_index('ix_completion_steps_user_id', 'completion_steps', ['user_id'])


def downgrade() -> None:
    """Downgrade schema - Drop onboarding tables and enum types."""
    op.drop_table('completion_steps')
    op.drop_table('user_children')
    op.drop_table('user_accounts')
    op.drop_table('user_roles')
    op.drop_table('club_invite_codes')
    op.drop_table('clubs')
    op.drop_table('user_profiles')
    op.drop_table('users')

    bind = op.get_bind()
    child_relationship_enum.drop(bind, checkfirst=True)
    club_type_enum.drop(bind, checkfirst=True)
    role_kind_enum.drop(bind, checkfirst=True)
