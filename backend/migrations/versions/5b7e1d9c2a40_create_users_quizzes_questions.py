"""create users, quiz_packages and questions

Revision ID: 5b7e1d9c2a40
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7e1d9c2a40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'users' not in existing_tables:
        op.create_table(
            'users',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('password_hash', sa.String(length=255), nullable=False),
            sa.Column('role', sa.String(length=20), nullable=False, server_default='TEACHER'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.CheckConstraint("role IN ('ADMIN', 'TEACHER')", name='ck_users_role'),
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if 'quiz_packages' not in existing_tables:
        op.create_table(
            'quiz_packages',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('teacher_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_quiz_packages_teacher_id', 'quiz_packages', ['teacher_id'])

    if 'questions' not in existing_tables:
        op.create_table(
            'questions',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('quiz_id', sa.String(length=36), sa.ForeignKey('quiz_packages.id', ondelete='CASCADE'), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('question_text', sa.Text(), nullable=False),
            sa.Column('image_url', sa.Text(), nullable=True),
            sa.Column('options', sa.JSON(), nullable=False),
            sa.Column('correct_idx', sa.Integer(), nullable=False),
            sa.Column('time_limit', sa.Integer(), nullable=False, server_default='15'),
            sa.Column('points', sa.Integer(), nullable=False, server_default='20'),
            sa.CheckConstraint('correct_idx >= 0 AND correct_idx <= 3', name='ck_questions_correct_idx'),
            sa.CheckConstraint('time_limit >= 5 AND time_limit <= 60', name='ck_questions_time_limit'),
            sa.CheckConstraint('points >= 1 AND points <= 100', name='ck_questions_points'),
        )
        op.create_index('ix_questions_quiz_id', 'questions', ['quiz_id'])


def downgrade():
    op.drop_index('ix_questions_quiz_id', table_name='questions')
    op.drop_table('questions')
    op.drop_index('ix_quiz_packages_teacher_id', table_name='quiz_packages')
    op.drop_table('quiz_packages')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
