"""

Revision ID: 4b1f0c2d9e7a
Revises:
Create Date: 2025-07-01 09:12:44.318205

"""

# revision identifiers, used by Alembic.
revision = '4b1f0c2d9e7a'
down_revision = None

from alembic import op
import sqlalchemy as sa


def upgrade():
    op.create_table('asn',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('coordinator', sa.Text(), nullable=False),
    sa.Column('country', sa.Text(), nullable=False),
    sa.Column('asn', sa.BigInteger(), nullable=False),
    sa.Column('date', sa.Text(), nullable=False),
    sa.Column('identifier', sa.Text(), nullable=False),
    sa.Column('name', sa.Text(), nullable=True),
    sa.Column('geo', sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('asn'),
    sa.UniqueConstraint('coordinator', 'asn', 'identifier', name='uq_asn_coordinator_asn_identifier')
    )
    op.create_index('idx_asn_coordinator_identifier', 'asn', ['coordinator', 'identifier'], unique=False)
    for table in ['ipv4', 'ipv6']:
        op.create_table(table,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('coordinator', sa.Text(), nullable=False),
        sa.Column('country', sa.Text(), nullable=False),
        sa.Column('network', sa.Text(), nullable=False),
        sa.Column('firstip', sa.String(length=40), nullable=True),
        sa.Column('lastip', sa.String(length=40), nullable=True),
        sa.Column('date', sa.Text(), nullable=False),
        sa.Column('identifier', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('coordinator', 'network', 'identifier',
                            name='uq_{}_coordinator_network_identifier'.format(table))
        )
        op.create_index(op.f('ix_{}_firstip'.format(table)), table, ['firstip'], unique=False)
        op.create_index(op.f('ix_{}_lastip'.format(table)), table, ['lastip'], unique=False)
        op.create_index('idx_{}_coordinator_identifier'.format(table), table, ['coordinator', 'identifier'], unique=False)
    op.create_table('rpsl',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('key', sa.Text(), nullable=False),
    sa.Column('value', sa.Text(collation='NOCASE'), nullable=False),
    sa.Column('block', sa.Text(), nullable=False),
    sa.Column('source_url', sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('key', 'value', name='uq_rpsl_key_value')
    )
    op.create_index(op.f('ix_rpsl_source_url'), 'rpsl', ['source_url'], unique=False)
    op.create_table('rpsl_origin',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('origin', sa.Text(collation='NOCASE'), nullable=False),
    sa.Column('route', sa.Text(collation='NOCASE'), nullable=False),
    sa.Column('source_url', sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('origin', 'route', name='uq_rpsl_origin_origin_route')
    )
    op.create_index('idx_rpsl_origin_route', 'rpsl_origin', ['route'], unique=False)
    op.create_index(op.f('ix_rpsl_origin_source_url'), 'rpsl_origin', ['source_url'], unique=False)
    op.create_table('rpsl_mntby',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('mntby', sa.Text(collation='NOCASE'), nullable=False),
    sa.Column('key', sa.Text(), nullable=False),
    sa.Column('value', sa.Text(collation='NOCASE'), nullable=False),
    sa.Column('source_url', sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('mntby', 'key', 'value', name='uq_rpsl_mntby_mntby_key_value')
    )
    op.create_index('idx_rpsl_mntby_key_value', 'rpsl_mntby', ['key', 'value'], unique=False)
    op.create_index(op.f('ix_rpsl_mntby_source_url'), 'rpsl_mntby', ['source_url'], unique=False)
    op.create_table('geo',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('network', sa.Text(), nullable=False),
    sa.Column('firstip', sa.String(length=40), nullable=False),
    sa.Column('lastip', sa.String(length=40), nullable=False),
    sa.Column('geo', sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('network')
    )
    op.create_index(op.f('ix_geo_firstip'), 'geo', ['firstip'], unique=False)
    op.create_index(op.f('ix_geo_lastip'), 'geo', ['lastip'], unique=False)
    op.create_table('file_metadata',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('url', sa.Text(), nullable=False),
    sa.Column('last_modified', sa.Text(), nullable=False),
    sa.Column('file_size', sa.BigInteger(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('url')
    )
    op.create_table('event_log',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('timestamp', sa.DateTime(), nullable=False),
    sa.Column('message', sa.Text(), nullable=True),
    sa.Column('is_important', sa.Boolean(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_event_log_timestamp'), 'event_log', ['timestamp'], unique=False)


def downgrade():
    for table in ['event_log', 'file_metadata', 'geo', 'rpsl_mntby',
                  'rpsl_origin', 'rpsl', 'ipv6', 'ipv4', 'asn']:
        op.drop_table(table)
