"""create onboarding, quiz and activity tables"""

from alembic import op
import sqlalchemy as sa

revision = "20261019_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


ONBOARDING_STEP = sa.Enum("welcome", "gender", "skill_quiz", "persona", "guided_intro", name="onboarding_step")
ASSISTANT_PERSONA = sa.Enum("calm", "kind", "direct", name="assistant_persona")
ASSISTANT_GENDER = sa.Enum("feminine", "masculine", "androgynous", name="assistant_gender")
SKILL_LEVEL = sa.Enum("beginner", "intermediate", "advanced", name="skill_level")
ACTIVITY_EVENT_TYPE = sa.Enum(
    "lesson_started",
    "lesson_progressed",
    "lesson_completed",
    "quiz_started",
    "quiz_submitted",
    "quiz_perfect",
    "achievement_unlocked",
    "level_up",
    "goal_met",
    name="activity_event_type",
)


def upgrade() -> None:
    op.create_table(
        "assistants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("gender", ASSISTANT_GENDER, nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("tagline", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_assistants_slug", "assistants", ["slug"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("assistant_id", sa.Integer(), sa.ForeignKey("assistants.id"), nullable=True),
        sa.Column("assistant_persona", ASSISTANT_PERSONA, nullable=True),
        sa.Column("skill_level", SKILL_LEVEL, nullable=False, server_default="beginner"),
        sa.Column("onboarding_step", ONBOARDING_STEP, nullable=True),
        sa.Column("onboarding_completed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "quizzes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("topic", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_quizzes_topic", "quizzes", ["topic"])

    op.create_table(
        "quiz_questions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "quiz_id",
            sa.Integer(),
            sa.ForeignKey("quizzes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
    )
    op.create_index("ix_quiz_questions_quiz_id", "quiz_questions", ["quiz_id"])

    op.create_table(
        "quiz_options",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "question_id",
            sa.Integer(),
            sa.ForeignKey("quiz_questions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_quiz_options_question_id", "quiz_options", ["question_id"])

    op.create_table(
        "quiz_attempts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "quiz_id",
            sa.Integer(),
            sa.ForeignKey("quizzes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column("submitted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("duration_sec", sa.Integer(), nullable=True),
        sa.UniqueConstraint("user_id", "quiz_id", "attempt_number", name="uq_quiz_attempts__user_quiz_num"),
    )
    op.create_index("ix_quiz_attempts_user_id", "quiz_attempts", ["user_id"])
    op.create_index("ix_quiz_attempts__quiz_started", "quiz_attempts", ["quiz_id", "started_at"])

    op.create_table(
        "quiz_attempt_answers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "attempt_id",
            sa.Integer(),
            sa.ForeignKey("quiz_attempts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "question_id",
            sa.Integer(),
            sa.ForeignKey("quiz_questions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "selected_option_id",
            sa.Integer(),
            sa.ForeignKey("quiz_options.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("time_taken_ms", sa.Integer(), nullable=True),
        sa.UniqueConstraint("attempt_id", "question_id", name="uq_quiz_attempt_answers__attempt_question"),
    )
    op.create_index("ix_quiz_attempt_answers_attempt_id", "quiz_attempt_answers", ["attempt_id"])
    op.create_index(
        "ix_quiz_attempt_answers_selected_option_id",
        "quiz_attempt_answers",
        ["selected_option_id"],
    )

    op.create_table(
        "activity_events",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_type", ACTIVITY_EVENT_TYPE, nullable=False),
        sa.Column(
            "occurred_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("points_delta", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lesson_id", sa.Integer(), nullable=True),
        sa.Column(
            "quiz_id",
            sa.Integer(),
            sa.ForeignKey("quizzes.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "quiz_attempt_id",
            sa.Integer(),
            sa.ForeignKey("quiz_attempts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("achievement_id", sa.Integer(), nullable=True),
    )
    op.create_index("ix_activity_events__user_time", "activity_events", ["user_id", "occurred_at"])
    op.create_index("ix_activity_events_quiz_id", "activity_events", ["quiz_id"])
    op.create_index("ix_activity_events_quiz_attempt_id", "activity_events", ["quiz_attempt_id"])

    op.create_table(
        "onboarding_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event", sa.String(), nullable=False),
        sa.Column("step", sa.String(), nullable=True),
        sa.Column(
            "ts",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("meta_json", sa.JSON(), nullable=True),
        sa.Column("variant", sa.String(), nullable=True),
    )
    op.create_index("ix_onboarding_events_user_id", "onboarding_events", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_onboarding_events_user_id", table_name="onboarding_events")
    op.drop_table("onboarding_events")
    op.drop_index("ix_activity_events_quiz_attempt_id", table_name="activity_events")
    op.drop_index("ix_activity_events_quiz_id", table_name="activity_events")
    op.drop_index("ix_activity_events__user_time", table_name="activity_events")
    op.drop_table("activity_events")
    op.drop_index("ix_quiz_attempt_answers_selected_option_id", table_name="quiz_attempt_answers")
    op.drop_index("ix_quiz_attempt_answers_attempt_id", table_name="quiz_attempt_answers")
    op.drop_table("quiz_attempt_answers")
    op.drop_index("ix_quiz_attempts__quiz_started", table_name="quiz_attempts")
    op.drop_index("ix_quiz_attempts_user_id", table_name="quiz_attempts")
    op.drop_table("quiz_attempts")
    op.drop_index("ix_quiz_options_question_id", table_name="quiz_options")
    op.drop_table("quiz_options")
    op.drop_index("ix_quiz_questions_quiz_id", table_name="quiz_questions")
    op.drop_table("quiz_questions")
    op.drop_index("ix_quizzes_topic", table_name="quizzes")
    op.drop_table("quizzes")
    op.drop_table("users")
    op.drop_index("ix_assistants_slug", table_name="assistants")
    op.drop_table("assistants")
    bind = op.get_bind()
    for enum in (ACTIVITY_EVENT_TYPE, SKILL_LEVEL, ASSISTANT_GENDER, ASSISTANT_PERSONA, ONBOARDING_STEP):
        enum.drop(bind, checkfirst=True)
