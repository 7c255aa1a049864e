"""Create CV template and agency profile tables"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3a7c5e9d1f20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create cv_templates table
    op.create_table(
        'cv_templates',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('office_name', sa.String(200), nullable=False, server_default=''),
        sa.Column('country', sa.String(20), nullable=False),
        sa.Column('pages', sa.JSON(), nullable=False),
        sa.Column('fields', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_cv_templates_owner_id'), 'cv_templates', ['owner_id'])
    op.create_index(op.f('ix_cv_templates_country'), 'cv_templates', ['country'])

    # Create agency_profiles table
    op.create_table(
        'agency_profiles',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('agency_name', sa.String(200), nullable=True),
        sa.Column('cv_generated_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade():
    op.drop_table('agency_profiles')
    op.drop_index(op.f('ix_cv_templates_country'), table_name='cv_templates')
    op.drop_index(op.f('ix_cv_templates_owner_id'), table_name='cv_templates')
    op.drop_table('cv_templates')
