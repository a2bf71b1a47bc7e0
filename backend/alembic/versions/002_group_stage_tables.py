"""Add group stages: groupstage, groupstagecategory, group, groupslot

Revision ID: 002_group_stages
Revises: 001_initial
Create Date: 2026-01-12 00:00:00.000000

Categories live in their own (stage, category) table instead of a JSON
column; the composite primary key collapses duplicates.
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_group_stages"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "groupstage",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("config_groups", sa.Integer(), nullable=False),
        sa.Column("config_slots", sa.Integer(), nullable=False),
        sa.Column("auto_fill", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_groupstage_tournament_id"), "groupstage", ["tournament_id"], unique=False)

    op.create_table(
        "groupstagecategory",
        sa.Column("group_stage_id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(["group_stage_id"], ["groupstage.id"]),
        sa.PrimaryKeyConstraint("group_stage_id", "category"),
    )

    op.create_table(
        "group",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_stage_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["group_stage_id"], ["groupstage.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_stage_id", "order", name="uq_group_stage_order"),
    )
    op.create_index(op.f("ix_group_group_stage_id"), "group", ["group_stage_id"], unique=False)

    op.create_table(
        "groupslot",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_stage_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=True),  # NULL = reserve slot
        sa.Column("slot_index", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=True),  # NULL = empty slot
        sa.ForeignKeyConstraint(["group_stage_id"], ["groupstage.id"]),
        sa.ForeignKeyConstraint(["group_id"], ["group.id"]),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_stage_id", "group_id", "slot_index", name="uq_groupslot_stage_group_index"),
        sa.UniqueConstraint("group_stage_id", "team_id", name="uq_groupslot_stage_team"),
    )
    op.create_index(op.f("ix_groupslot_group_stage_id"), "groupslot", ["group_stage_id"], unique=False)
    op.create_index(op.f("ix_groupslot_group_id"), "groupslot", ["group_id"], unique=False)
    op.create_index(op.f("ix_groupslot_team_id"), "groupslot", ["team_id"], unique=False)


def downgrade() -> None:
    # Children before parents
    op.drop_index(op.f("ix_groupslot_team_id"), table_name="groupslot")
    op.drop_index(op.f("ix_groupslot_group_id"), table_name="groupslot")
    op.drop_index(op.f("ix_groupslot_group_stage_id"), table_name="groupslot")
    op.drop_table("groupslot")
    op.drop_index(op.f("ix_group_group_stage_id"), table_name="group")
    op.drop_table("group")
    op.drop_table("groupstagecategory")
    op.drop_index(op.f("ix_groupstage_tournament_id"), table_name="groupstage")
    op.drop_table("groupstage")
