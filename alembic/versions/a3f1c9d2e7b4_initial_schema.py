"""initial_schema

Revision ID: a3f1c9d2e7b4
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a3f1c9d2e7b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'polls',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('creator_key', sa.String(length=64), nullable=False),
        sa.Column('creator_address', sa.String(length=42), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('is_multiple_choice', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_anonymous', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('require_token', sa.String(length=42), nullable=True),
        sa.Column('require_token_amount', sa.String(length=78), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_polls_creator', 'polls', ['creator_key'])
    op.create_index('idx_polls_created_at', 'polls', ['created_at'])

    # One row per (voter, slot): slot 0 for single-choice, option index for multiple-choice
    op.create_table(
        'poll_votes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('poll_id', sa.Integer(), sa.ForeignKey('polls.id', ondelete='CASCADE'), nullable=False),
        sa.Column('voter_key', sa.String(length=64), nullable=False),
        sa.Column('voter_address', sa.String(length=42), nullable=True),
        sa.Column('option_index', sa.Integer(), nullable=False),
        sa.Column('choice_slot', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('poll_id', 'voter_key', 'choice_slot', name='uq_poll_voter_slot'),
    )
    op.create_index('idx_poll_votes_poll', 'poll_votes', ['poll_id'])
    op.create_index('idx_poll_votes_voter', 'poll_votes', ['poll_id', 'voter_key'])

    op.create_table(
        'quizzes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('creator_wallet', sa.String(length=42), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('questions_json', sa.JSON(), nullable=False),
        sa.Column('reward_token', sa.String(length=42), nullable=True),
        sa.Column('reward_amount', sa.String(length=78), nullable=False, server_default='0'),
        sa.Column('winner_limit', sa.Integer(), nullable=True),
        sa.Column('reward_pools', sa.JSON(), nullable=True),
        sa.Column('time_per_question', sa.Integer(), nullable=False, server_default='15'),
        sa.Column('stake_token', sa.String(length=42), nullable=True),
        sa.Column('stake_amount', sa.String(length=78), nullable=True),
        sa.Column('entry_fee', sa.String(length=78), nullable=True),
        sa.Column('entry_fee_token', sa.String(length=42), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_winners', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('contract_quiz_id', sa.String(length=78), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            'winner_limit IS NULL OR current_winners <= winner_limit',
            name='ck_quiz_winner_capacity',
        ),
    )
    op.create_index('idx_quizzes_status', 'quizzes', ['status'])

    op.create_table(
        'quiz_attempts',
        sa.Column('session_id', sa.String(length=36), primary_key=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('user_key', sa.String(length=64), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('answers_json', sa.JSON(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completion_time_ms', sa.BigInteger(), nullable=True),
        sa.Column('is_winner', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('quiz_id', 'wallet_address', name='uq_attempt_quiz_wallet'),
    )

    op.create_table(
        'winners',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('user_key', sa.String(length=64), nullable=True),
        sa.Column('slot', sa.Integer(), nullable=False),
        sa.Column('completion_time_ms', sa.BigInteger(), nullable=False),
        sa.Column('reward_amount', sa.String(length=78), nullable=False, server_default='0'),
        sa.Column('pool_tier', sa.Integer(), nullable=True),
        sa.Column('rank_in_pool', sa.Integer(), nullable=True),
        sa.Column('claimed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('claim_tx_hash', sa.String(length=100), nullable=True),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('quiz_id', 'wallet_address', name='uq_winner_quiz_wallet'),
        sa.UniqueConstraint('quiz_id', 'slot', name='uq_winner_quiz_slot'),
    )
    op.create_index('idx_winners_leaderboard', 'winners', ['quiz_id', 'completion_time_ms', 'created_at'])
    op.create_index('idx_winners_wallet', 'winners', ['wallet_address'])

    op.create_table(
        'reward_claims',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('winner_id', sa.Integer(), sa.ForeignKey('winners.id', ondelete='SET NULL'), nullable=True),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('user_key', sa.String(length=64), nullable=True),
        sa.Column('pool_tier', sa.Integer(), nullable=True),
        sa.Column('rank_in_pool', sa.Integer(), nullable=True),
        sa.Column('reward_amount', sa.String(length=78), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('tx_hash', sa.String(length=100), nullable=True),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('quiz_id', 'wallet_address', name='uq_claim_quiz_wallet'),
        sa.CheckConstraint("status IN ('pending', 'claimed')", name='ck_claim_status'),
    )
    op.create_index('idx_reward_claims_wallet', 'reward_claims', ['wallet_address'])

    op.create_table(
        'claim_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('claim_id', sa.Integer(), sa.ForeignKey('reward_claims.id', ondelete='CASCADE'), nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('tx_hash', sa.String(length=100), nullable=False),
        sa.Column('source', sa.String(length=20), nullable=False, server_default='claim'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('claim_id', name='uq_claim_event_claim'),
    )

    op.create_table(
        'notification_tokens',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('recipient_key', sa.String(length=64), nullable=False, unique=True),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('url', sa.String(length=500), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_notification_tokens_enabled', 'notification_tokens', ['enabled'])


def downgrade():
    op.drop_index('idx_notification_tokens_enabled', table_name='notification_tokens')
    op.drop_table('notification_tokens')
    op.drop_table('claim_events')
    op.drop_index('idx_reward_claims_wallet', table_name='reward_claims')
    op.drop_table('reward_claims')
    op.drop_index('idx_winners_wallet', table_name='winners')
    op.drop_index('idx_winners_leaderboard', table_name='winners')
    op.drop_table('winners')
    op.drop_table('quiz_attempts')
    op.drop_index('idx_quizzes_status', table_name='quizzes')
    op.drop_table('quizzes')
    op.drop_index('idx_poll_votes_voter', table_name='poll_votes')
    op.drop_index('idx_poll_votes_poll', table_name='poll_votes')
    op.drop_table('poll_votes')
    op.drop_index('idx_polls_created_at', table_name='polls')
    op.drop_index('idx_polls_creator', table_name='polls')
    op.drop_table('polls')
