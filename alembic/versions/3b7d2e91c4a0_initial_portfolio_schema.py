"""initial_portfolio_schema

Revision ID: 3b7d2e91c4a0
Revises:
Create Date: 2026-10-19 10:12:41.204518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b7d2e91c4a0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)]
    if updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)
        )
    return columns


def _vocabulary_table(name: str, name_column: str, length: int, *extra):
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(name_column, sa.String(length=length), nullable=False),
        *extra,
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(name_column),
    )
    op.create_index(op.f(f'ix_{name}_id'), name, ['id'], unique=False)


def upgrade() -> None:
    _vocabulary_table('tag', 'tag_name', 100)
    _vocabulary_table('content_people', 'person_name', 100)
    _vocabulary_table(
        'content_cameras', 'camera_name', 100,
        sa.Column('body_serial_number', sa.String(length=100), nullable=True),
    )
    _vocabulary_table(
        'content_lenses', 'lens_name', 150,
        sa.Column('lens_serial_number', sa.String(length=100), nullable=True),
    )
    _vocabulary_table(
        'content_film_types', 'film_type_name', 100,
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('default_iso', sa.Integer(), nullable=False),
    )
    _vocabulary_table('location', 'location_name', 255)

    op.create_table(
        'content',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('content_type', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_content_id'), 'content', ['id'], unique=False)
    op.create_index(op.f('ix_content_content_type'), 'content', ['content_type'], unique=False)

    op.create_table(
        'collection',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=30), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=150), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('location_id', sa.Integer(), nullable=True),
        sa.Column('collection_date', sa.Date(), nullable=True),
        sa.Column('visible', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('display_mode', sa.String(length=20), nullable=True),
        sa.Column('cover_image_id', sa.Integer(), nullable=True),
        sa.Column('content_per_page', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('total_content', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('password_protected', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['location_id'], ['location.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['cover_image_id'], ['content.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_collection_id'), 'collection', ['id'], unique=False)
    op.create_index(op.f('ix_collection_type'), 'collection', ['type'], unique=False)
    op.create_index(op.f('ix_collection_slug'), 'collection', ['slug'], unique=True)

    op.create_table(
        'content_image',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('image_width', sa.Integer(), nullable=True),
        sa.Column('image_height', sa.Integer(), nullable=True),
        sa.Column('iso', sa.Integer(), nullable=True),
        sa.Column('author', sa.String(length=255), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('f_stop', sa.String(length=20), nullable=True),
        sa.Column('shutter_speed', sa.String(length=30), nullable=True),
        sa.Column('focal_length', sa.String(length=30), nullable=True),
        sa.Column('black_and_white', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_film', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('film_format', sa.String(length=20), nullable=True),
        sa.Column('create_date', sa.String(length=30), nullable=True),
        sa.Column('image_url_web', sa.String(length=1024), nullable=False),
        sa.Column('image_url_original', sa.String(length=1024), nullable=True),
        sa.Column('file_identifier', sa.String(length=512), nullable=True),
        sa.Column('camera_id', sa.Integer(), nullable=True),
        sa.Column('lens_id', sa.Integer(), nullable=True),
        sa.Column('film_type_id', sa.Integer(), nullable=True),
        sa.Column('location_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['id'], ['content.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['camera_id'], ['content_cameras.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['lens_id'], ['content_lenses.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['film_type_id'], ['content_film_types.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['location_id'], ['location.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_content_image_file_identifier'), 'content_image', ['file_identifier'], unique=False)

    op.create_table(
        'content_text',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('text_content', sa.Text(), nullable=False),
        sa.Column('format_type', sa.String(length=20), nullable=True),
        sa.ForeignKeyConstraint(['id'], ['content.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'content_gif',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('gif_url', sa.String(length=1024), nullable=False),
        sa.Column('thumbnail_url', sa.String(length=1024), nullable=True),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('author', sa.String(length=255), nullable=True),
        sa.Column('create_date', sa.String(length=30), nullable=True),
        sa.ForeignKeyConstraint(['id'], ['content.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'content_collection',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('referenced_collection_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['id'], ['content.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referenced_collection_id'], ['collection.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referenced_collection_id'),
    )

    op.create_table(
        'collection_content',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('visible', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['collection_id'], ['collection.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['content_id'], ['content.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('collection_id', 'content_id', name='uq_collection_content_pair'),
    )
    op.create_index(op.f('ix_collection_content_id'), 'collection_content', ['id'], unique=False)
    op.create_index(op.f('ix_collection_content_collection_id'), 'collection_content', ['collection_id'], unique=False)
    op.create_index(op.f('ix_collection_content_content_id'), 'collection_content', ['content_id'], unique=False)
    op.create_index('ix_collection_content_order', 'collection_content', ['collection_id', 'order_index'], unique=False)

    op.create_table(
        'content_tags',
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tag.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('content_id', 'tag_id'),
    )
    op.create_table(
        'content_image_people',
        sa.Column('image_id', sa.Integer(), nullable=False),
        sa.Column('person_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['image_id'], ['content_image.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['person_id'], ['content_people.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('image_id', 'person_id'),
    )
    op.create_table(
        'collection_tags',
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['collection_id'], ['collection.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tag.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('collection_id', 'tag_id'),
    )
    op.create_table(
        'collection_people',
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('person_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['collection_id'], ['collection.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['person_id'], ['content_people.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('collection_id', 'person_id'),
    )


def downgrade() -> None:
    for table in (
        'collection_people',
        'collection_tags',
        'content_image_people',
        'content_tags',
        'collection_content',
        'content_collection',
        'content_gif',
        'content_text',
        'content_image',
        'collection',
        'content',
        'location',
        'content_film_types',
        'content_lenses',
        'content_cameras',
        'content_people',
        'tag',
    ):
        op.drop_table(table)
