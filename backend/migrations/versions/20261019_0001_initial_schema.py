from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

LOCATIONS = [
    ("1", "Bass Lake"),
    ("2", "Trout Creek"),
    ("3", "Pike Pond"),
    ("4", "Catfish Bayou"),
    ("5", "Salmon River"),
    ("6", "Walleye Bay"),
    ("7", "Crappie Cove"),
    ("8", "Muskie Marsh"),
    ("9", "Sturgeon Shoals"),
    ("10", "Perch Point"),
]

def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=64), nullable=False),
        sa.Column("search_name", sa.String(length=64), nullable=False),
        sa.Column("coins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("loot_boxes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_search_name", "users", ["search_name"])

    op.create_table(
        "locations",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "challenges",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("goal", sa.String(length=16), nullable=False),
        sa.Column("location", sa.String(length=64), nullable=False),
        sa.Column("start_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("max_reward", sa.Integer(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("duration_seconds", sa.Integer(), nullable=False, server_default="120"),
        sa.Column("custom_text", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_challenges_kind", "challenges", ["kind"])
    op.create_index("ix_challenges_end_date", "challenges", ["end_date"])
    op.create_index("ix_challenges_completed", "challenges", ["completed"])

    op.create_table(
        "challenge_scores",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("challenge_id", sa.String(length=64), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("player_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("player_name", sa.String(length=64), nullable=True),
        sa.Column("fish_caught", sa.Integer(), nullable=False),
        sa.Column("total_weight", sa.Float(), nullable=False),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("coins", sa.Integer(), nullable=True),
        sa.UniqueConstraint("challenge_id", "player_id", name="uq_challenge_score_one_per_player"),
    )
    op.create_index("ix_challenge_scores_challenge_id", "challenge_scores", ["challenge_id"])
    op.create_index("ix_challenge_scores_player_id", "challenge_scores", ["player_id"])

    op.create_table(
        "friend_challenges",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("challenger_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("recipient_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("wager", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wager_escrowed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("goal", sa.String(length=16), nullable=False),
        sa.Column("location", sa.String(length=64), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False, server_default="120"),
        sa.Column("start_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("accepted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_friend_challenges_challenger_id", "friend_challenges", ["challenger_id"])
    op.create_index("ix_friend_challenges_recipient_id", "friend_challenges", ["recipient_id"])
    op.create_index("ix_friend_challenges_completed", "friend_challenges", ["completed"])
    # one open duel per ordered pair
    op.create_index(
        "uq_friend_challenge_open_pair", "friend_challenges", ["challenger_id", "recipient_id"],
        unique=True, postgresql_where=sa.text("NOT completed"),
    )

    op.create_table(
        "friend_challenge_scores",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("challenge_id", sa.String(length=64), sa.ForeignKey("friend_challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.String(length=64), nullable=False),
        sa.Column("player_name", sa.String(length=64), nullable=True),
        sa.Column("fish_caught", sa.Integer(), nullable=False),
        sa.Column("total_weight", sa.Float(), nullable=False),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("challenge_id", "player_id", name="uq_friend_score_one_per_player"),
        sa.UniqueConstraint("challenge_id", "seq", name="uq_friend_score_seq"),
    )
    op.create_index("ix_friend_challenge_scores_challenge_id", "friend_challenge_scores", ["challenge_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("data", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("dismissed", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "device_tokens",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("token", sa.String(length=512), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "token", name="uq_device_token_per_user"),
    )
    op.create_index("ix_device_tokens_user_id", "device_tokens", ["user_id"])

    op.create_table(
        "friend_requests",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("recipient_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_name", sa.String(length=64), nullable=False),
        sa.Column("dismissed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("recipient_id", "sender_id", name="uq_friend_request_pair"),
    )
    op.create_index("ix_friend_requests_recipient_id", "friend_requests", ["recipient_id"])
    op.create_index("ix_friend_requests_sender_id", "friend_requests", ["sender_id"])

    op.create_table(
        "friendships",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("friend_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("user_id", "friend_id", name="uq_friendship_pair"),
    )
    op.create_index("ix_friendships_user_id", "friendships", ["user_id"])

    op.create_table(
        "user_stats",
        sa.Column("user_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column("total_casts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_catches", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_ounces", sa.Float(), nullable=False, server_default="0"),
        sa.Column("biggest_catch", sa.JSON(), nullable=False),
        sa.Column("catches_by_fish", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_user_stats_total_ounces", "user_stats", ["total_ounces"])

    op.create_table(
        "leaderboard",
        sa.Column("position", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("player_name", sa.String(length=64), nullable=False),
        sa.Column("total_ounces", sa.Float(), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        "items",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
    )

    op.create_table(
        "item_unlocks",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", sa.String(length=64), sa.ForeignKey("items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_equipped", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("unlocked_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "item_id", name="uq_item_unlock"),
    )
    op.create_index("ix_item_unlocks_user_id", "item_unlocks", ["user_id"])

    locations = sa.table(
        "locations",
        sa.column("id", sa.String),
        sa.column("name", sa.String),
        sa.column("sort_order", sa.Integer),
    )
    op.bulk_insert(locations, [
        {"id": loc_id, "name": name, "sort_order": i}
        for i, (loc_id, name) in enumerate(LOCATIONS)
    ])

def downgrade() -> None:
    op.drop_table("item_unlocks")
    op.drop_table("items")
    op.drop_table("leaderboard")
    op.drop_table("user_stats")
    op.drop_table("friendships")
    op.drop_table("friend_requests")
    op.drop_table("device_tokens")
    op.drop_table("notifications")
    op.drop_table("friend_challenge_scores")
    op.drop_index("uq_friend_challenge_open_pair", table_name="friend_challenges")
    op.drop_table("friend_challenges")
    op.drop_table("challenge_scores")
    op.drop_table("challenges")
    op.drop_table("locations")
    op.drop_table("users")
