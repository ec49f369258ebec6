"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _id():
    return sa.Column('id', sa.String(36), primary_key=True)


def upgrade() -> None:
    op.create_table(
        'sites',
        _id(),
        sa.Column('site_num', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('access_instructions', sa.Text(), nullable=True),
        sa.Column('location_type', sa.String(20), nullable=True),
        sa.Column('location', _json(), nullable=True),
        sa.Column('latitude', sa.Double(), nullable=True),
        sa.Column('longitude', sa.Double(), nullable=True),
        sa.Column('region', sa.String(100), nullable=True),
        sa.Column('generator_id', sa.String(36), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_sites_site_num', 'sites', ['site_num'], unique=True)
    op.create_index('ix_sites_region', 'sites', ['region'])

    op.create_table(
        'generators',
        _id(),
        sa.Column('site_id', sa.String(36), sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('install_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('removal_date', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'site_configs',
        _id(),
        sa.Column('site_id', sa.String(36), sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('is_current', sa.Boolean(), nullable=True),
        sa.Column('generator_id', sa.String(36), sa.ForeignKey('generators.id', ondelete='SET NULL'), nullable=True),
    )

    op.create_table(
        'site_user_association_types',
        _id(),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
    )

    op.create_table(
        'site_user_associations',
        _id(),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('site_id', sa.String(36), sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column(
            'association_type_id',
            sa.String(36),
            sa.ForeignKey('site_user_association_types.id', ondelete='CASCADE'),
            nullable=False,
        ),
    )

    op.create_table(
        'power_plant_types',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('voltage', sa.Float(), nullable=False),
        sa.Column('model', sa.String(100), nullable=True),
    )

    op.create_table(
        'rectifier_types',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('power', sa.Float(), nullable=False),
    )

    op.create_table(
        'power_plants',
        _id(),
        sa.Column('site_id', sa.String(36), sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('region', sa.String(100), nullable=True),
        sa.Column('transmission', sa.String(100), nullable=True),
        sa.Column('technology_flags', _json(), nullable=True),
        sa.Column('latest_reading', _json(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'plant_configs',
        _id(),
        sa.Column('power_plant_id', sa.String(36), sa.ForeignKey('power_plants.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('power_plant_type_id', sa.String(36), sa.ForeignKey('power_plant_types.id', ondelete='SET NULL'), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('is_current', sa.Boolean(), nullable=True),
        sa.Column('region', sa.String(100), nullable=True),
        sa.Column('strings', _json(), nullable=True),
        sa.Column('snmp_strings', _json(), nullable=True),
        sa.Column('rectifier_types', _json(), nullable=True),
        sa.Column('transmission_config', sa.String(100), nullable=True),
        sa.Column('service_level', sa.String(100), nullable=True),
        sa.Column('technology_flags', _json(), nullable=True),
        sa.Column('thermal_probe', sa.Boolean(), nullable=True),
        sa.Column('optimal_runtime_thresholds_override', _json(), nullable=True),
        sa.Column('connection_status', sa.String(20), nullable=True),
    )

    op.create_table(
        'plant_battery_infos',
        _id(),
        sa.Column('power_plant_id', sa.String(36), sa.ForeignKey('power_plants.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('region', sa.String(100), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'plant_records',
        _id(),
        sa.Column('power_plant_id', sa.String(36), sa.ForeignKey('power_plants.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('load', _json(), nullable=True),
        sa.Column('voltage', _json(), nullable=True),
        sa.Column('temperature', _json(), nullable=True),
        sa.Column('utilization', _json(), nullable=True),
    )

    op.create_table(
        'routine_uploads',
        _id(),
        sa.Column('condition_override', sa.String(20), nullable=True),
    )

    op.create_table(
        'routines',
        _id(),
        sa.Column('power_plant_id', sa.String(36), sa.ForeignKey('power_plants.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('routine_type', sa.String(50), nullable=True),
        sa.Column('plant_reading', _json(), nullable=True),
        sa.Column('latest_reading', _json(), nullable=True),
        sa.Column('edit_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('routine_upload_id', sa.String(36), sa.ForeignKey('routine_uploads.id', ondelete='SET NULL'), nullable=True),
    )

    op.create_table(
        'battery_types',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('conductance', sa.Float(), nullable=True),
        sa.Column('capacity', sa.Float(), nullable=True),
        sa.Column('nominal_vpc_voltage', sa.Float(), nullable=True),
        sa.Column('comp_volt_per_celsius', sa.Float(), nullable=True),
        sa.Column('voltage', sa.Float(), nullable=True),
    )

    op.create_table(
        'battery_records',
        _id(),
        sa.Column('conductance', _json(), nullable=True),
    )

    op.create_table(
        'batteries',
        _id(),
        sa.Column('serial_number', sa.String(100), nullable=True, index=True),
        sa.Column('manufacturing_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('battery_type_id', sa.String(36), sa.ForeignKey('battery_types.id', ondelete='SET NULL'), nullable=True),
        sa.Column('current_record_id', sa.String(36), sa.ForeignKey('battery_records.id', ondelete='SET NULL'), nullable=True),
    )

    op.create_table(
        'log_items',
        _id(),
        sa.Column('submitter', sa.String(255), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column('site_id', sa.String(36), sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('power_plant_id', sa.String(36), sa.ForeignKey('power_plants.id', ondelete='SET NULL'), nullable=True),
        sa.Column('type', sa.String(50), nullable=True),
        sa.Column('comment_updates', _json(), nullable=True),
    )

    op.create_table(
        'company_configs',
        _id(),
        sa.Column('date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_current', sa.Boolean(), nullable=True, index=True),
        sa.Column('runtime_degradation_multiplier', sa.Float(), nullable=True),
        sa.Column('critical_float_mod', sa.Float(), nullable=True),
        sa.Column('optimal_runtime_function_name', sa.String(50), nullable=True),
        sa.Column('runtime_threshold_table', _json(), nullable=True),
        sa.Column('runtime_precision', sa.Integer(), nullable=True),
        sa.Column('utilization_precision', sa.Integer(), nullable=True),
        sa.Column('utilization_threshold_table', _json(), nullable=True),
        sa.Column('battery_capacity_table', _json(), nullable=True),
    )


def downgrade() -> None:
    for table in (
        'company_configs',
        'log_items',
        'batteries',
        'battery_records',
        'battery_types',
        'routines',
        'routine_uploads',
        'plant_records',
        'plant_battery_infos',
        'plant_configs',
        'power_plants',
        'rectifier_types',
        'power_plant_types',
        'site_user_associations',
        'site_user_association_types',
        'site_configs',
        'generators',
    ):
        op.drop_table(table)
    op.drop_index('ix_sites_region', table_name='sites')
    op.drop_index('ix_sites_site_num', table_name='sites')
    op.drop_table('sites')
