"""Initial migration: create tournament, contestant, round, matchup, vote tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("allow_byes", sa.Boolean(), nullable=False),
        sa.Column("quadrant_names", sa.JSON(), nullable=True),
        sa.Column("champion_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "contestant",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("seed", sa.Integer(), nullable=False),
        sa.Column("quadrant", sa.String(length=1), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "quadrant", "seed", name="uq_contestant_quadrant_seed"),
        sa.UniqueConstraint("tournament_id", "name", name="uq_contestant_name"),
    )
    op.create_index("ix_contestant_tournament_id", "contestant", ["tournament_id"])

    op.create_table(
        "round",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "round_number", name="uq_round_tournament_number"),
    )
    op.create_index("ix_round_tournament_id", "round", ["tournament_id"])

    op.create_table(
        "matchup",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("contestant1_id", sa.Integer(), nullable=True),
        sa.Column("contestant2_id", sa.Integer(), nullable=True),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("is_bye", sa.Boolean(), nullable=False),
        sa.Column("contestant1_votes", sa.Integer(), nullable=False),
        sa.Column("contestant2_votes", sa.Integer(), nullable=False),
        sa.Column("total_votes", sa.Integer(), nullable=False),
        sa.Column("is_tie", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["round_id"], ["round.id"]),
        sa.ForeignKeyConstraint(["contestant1_id"], ["contestant.id"]),
        sa.ForeignKeyConstraint(["contestant2_id"], ["contestant.id"]),
        sa.ForeignKeyConstraint(["winner_id"], ["contestant.id"]),
        sa.UniqueConstraint("round_id", "position", name="uq_matchup_round_position"),
    )
    op.create_index("ix_matchup_tournament_id", "matchup", ["tournament_id"])
    op.create_index("ix_matchup_round_id", "matchup", ["round_id"])

    op.create_table(
        "vote",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("voter_id", sa.String(), nullable=False),
        sa.Column("matchup_id", sa.Integer(), nullable=False),
        sa.Column("contestant_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("requested_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["matchup_id"], ["matchup.id"]),
        sa.ForeignKeyConstraint(["contestant_id"], ["contestant.id"]),
        sa.UniqueConstraint("voter_id", "matchup_id", "kind", name="uq_vote_voter_matchup_kind"),
    )
    op.create_index("ix_vote_voter_id", "vote", ["voter_id"])
    op.create_index("ix_vote_matchup_id", "vote", ["matchup_id"])


def downgrade() -> None:
    op.drop_index("ix_vote_matchup_id", table_name="vote")
    op.drop_index("ix_vote_voter_id", table_name="vote")
    op.drop_table("vote")
    op.drop_index("ix_matchup_round_id", table_name="matchup")
    op.drop_index("ix_matchup_tournament_id", table_name="matchup")
    op.drop_table("matchup")
    op.drop_index("ix_round_tournament_id", table_name="round")
    op.drop_table("round")
    op.drop_index("ix_contestant_tournament_id", table_name="contestant")
    op.drop_table("contestant")
    op.drop_table("tournament")
