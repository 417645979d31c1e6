"""create topics, sources, generations and attribution tables

Revision ID: 4c1a7e2d9b10
Revises:
Create Date: 2026-10-19 10:12:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1a7e2d9b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'topics',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index(op.f('ix_topics_user_id'), 'topics', ['user_id'], unique=False)

    op.create_table(
        'documents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('topic_id', sa.String(36), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('filename', sa.String(512), nullable=False),
        sa.Column('storage_path', sa.String(1024), nullable=True),
        sa.Column('content_type', sa.String(255), nullable=True),
        sa.Column('size_bytes', sa.Integer(), nullable=True),
        sa.Column('document_metadata', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index(op.f('ix_documents_topic_id'), 'documents', ['topic_id'], unique=False)
    op.create_index(op.f('ix_documents_user_id'), 'documents', ['user_id'], unique=False)

    op.create_table(
        'knowledge_base',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('topic_id', sa.String(36), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('document_id', sa.String(36), sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=True),
        sa.Column('kind', sa.String(32), nullable=False),
        sa.Column('source_label', sa.String(512), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('entry_metadata', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index(op.f('ix_knowledge_base_topic_id'), 'knowledge_base', ['topic_id'], unique=False)
    op.create_index(op.f('ix_knowledge_base_user_id'), 'knowledge_base', ['user_id'], unique=False)
    op.create_index(op.f('ix_knowledge_base_document_id'), 'knowledge_base', ['document_id'], unique=False)

    op.create_table(
        'sources',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('topic_id', sa.String(36), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('document_id', sa.String(36), sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=True),
        sa.Column('knowledge_base_id', sa.String(36), sa.ForeignKey('knowledge_base.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('kind', sa.String(32), nullable=False),
        sa.Column('source_name', sa.String(512), nullable=False),
        sa.Column('original_name', sa.String(512), nullable=True),
        sa.Column('content_type', sa.String(255), nullable=True),
        sa.Column('size_bytes', sa.Integer(), nullable=True),
        sa.Column('word_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('processing_status', sa.String(20), nullable=False, server_default='processing'),
        sa.Column('source_metadata', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('ingested_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(op.f('ix_sources_topic_id'), 'sources', ['topic_id'], unique=False)
    op.create_index(op.f('ix_sources_user_id'), 'sources', ['user_id'], unique=False)
    op.create_index(op.f('ix_sources_document_id'), 'sources', ['document_id'], unique=False)
    op.create_index(op.f('ix_sources_kind'), 'sources', ['kind'], unique=False)
    op.create_index(op.f('ix_sources_ingested_at'), 'sources', ['ingested_at'], unique=False)

    op.create_table(
        'generations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('topic_id', sa.String(36), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('generation_type', sa.String(32), nullable=False),
        sa.Column('ai_model', sa.String(100), nullable=True),
        sa.Column('source_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('status', sa.String(20), nullable=False, server_default='processing'),
        sa.Column('items_generated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('breakdown', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_time_ms', sa.Integer(), nullable=True),
        sa.CheckConstraint("status IN ('processing', 'completed', 'failed')", name='ck_generations_status'),
    )
    op.create_index(op.f('ix_generations_topic_id'), 'generations', ['topic_id'], unique=False)
    op.create_index(op.f('ix_generations_user_id'), 'generations', ['user_id'], unique=False)
    op.create_index(op.f('ix_generations_status'), 'generations', ['status'], unique=False)
    op.create_index(op.f('ix_generations_completed_at'), 'generations', ['completed_at'], unique=False)

    op.create_table(
        'questions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('topic_id', sa.String(36), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('item_type', sa.String(32), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('is_saved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('generation_id', sa.String(36), sa.ForeignKey('generations.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('source_attribution', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index(op.f('ix_questions_topic_id'), 'questions', ['topic_id'], unique=False)
    op.create_index(op.f('ix_questions_user_id'), 'questions', ['user_id'], unique=False)
    op.create_index(op.f('ix_questions_generation_id'), 'questions', ['generation_id'], unique=False)

    op.create_table(
        'generation_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('generation_id', sa.String(36), sa.ForeignKey('generations.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('question_id', sa.String(36), sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_type', sa.String(32), nullable=False),
        sa.Column('item_title', sa.String(255), nullable=True),
        sa.Column('difficulty', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index(op.f('ix_generation_items_generation_id'), 'generation_items', ['generation_id'], unique=False)
    op.create_index(op.f('ix_generation_items_question_id'), 'generation_items', ['question_id'], unique=True)

    op.create_table(
        'generation_item_sources',
        sa.Column('generation_item_id', sa.String(36), sa.ForeignKey('generation_items.id', ondelete='CASCADE'),
                  primary_key=True),
        sa.Column('source_id', sa.String(36), sa.ForeignKey('sources.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_index(op.f('ix_generation_item_sources_source_id'), 'generation_item_sources', ['source_id'],
                    unique=False)


def downgrade() -> None:
    op.drop_table('generation_item_sources')
    op.drop_table('generation_items')
    op.drop_table('questions')
    op.drop_table('generations')
    op.drop_table('sources')
    op.drop_table('knowledge_base')
    op.drop_table('documents')
    op.drop_table('topics')
