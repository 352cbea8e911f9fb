"""Initial Player schema: entitlements, views, memberships and webhooks.

Constraint names follow the naming convention in ``player_api.db.base`` so
that autogenerate comparisons stay quiet.
"""

from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from alembic import op

from player_api.db.types import UTCDateTime, UUIDType

# Revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision: Optional[str] = None
branch_labels: Optional[str] = None
depends_on: Optional[str] = None

PRIMARY_TEAM_FK = "view_memberships_primary_team_membership_id_fkey"


# ---------------------------------------------------------------------------
# Types / enums
# ---------------------------------------------------------------------------


VIEW_STATUS = sa.Enum(
    "Active",
    "Inactive",
    name="view_status",
    native_enum=False,
    length=20,
)

WEBHOOK_EVENT_TYPE = sa.Enum(
    "ViewCreated",
    "ViewDeleted",
    name="webhook_event_type",
    native_enum=False,
    length=50,
)


def _dialect_name() -> Optional[str]:
    """Return the current dialect name if available (handles offline mode)."""

    try:
        bind = op.get_bind()
    except Exception:
        return None
    if bind is None:
        return None
    return bind.dialect.name


def _id(table: str) -> tuple[sa.Column, sa.PrimaryKeyConstraint]:
    return (
        sa.Column("id", UUIDType(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=f"{table}_pkey"),
    )


def _timestamps() -> tuple[sa.Column, sa.Column]:
    return (
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
    )


def _fk(table: str, column: str, target: str, *, ondelete: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column], [f"{target}.id"], name=f"{table}_{column}_fkey", ondelete=ondelete
    )


def _flag(name: str) -> sa.Column:
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.false())


def _index(table: str, *columns: str) -> None:
    op.create_index(f"{table}_{'_'.join(columns)}_idx", table, list(columns))


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # Entitlement store
    _create_catalog("permissions")
    _create_bundle("roles")
    _create_link("role_permissions", ("role_id", "roles"), ("permission_id", "permissions"))
    _create_users()
    _create_link("user_permissions", ("user_id", "users"), ("permission_id", "permissions"))
    _create_catalog("team_permissions")
    _create_bundle("team_roles")
    _create_link(
        "team_role_permissions",
        ("team_role_id", "team_roles"),
        ("team_permission_id", "team_permissions"),
    )

    # Views and memberships
    _create_views()
    _create_teams()
    _create_link(
        "team_permission_assignments",
        ("team_id", "teams"),
        ("team_permission_id", "team_permissions"),
    )
    _create_memberships()

    # Applications
    _create_applications()

    # Webhooks
    _create_webhooks()


def downgrade() -> None:
    for table in (
        "pending_events",
        "webhook_subscription_event_types",
        "webhook_subscriptions",
        "application_instances",
        "applications",
    ):
        op.drop_table(table)

    if _dialect_name() != "sqlite":
        op.drop_constraint(PRIMARY_TEAM_FK, "view_memberships", type_="foreignkey")
    op.drop_table("team_memberships")
    op.drop_table("view_memberships")

    for table in (
        "team_permission_assignments",
        "teams",
        "views",
        "team_role_permissions",
        "team_roles",
        "team_permissions",
        "user_permissions",
        "users",
        "role_permissions",
        "roles",
        "permissions",
    ):
        op.drop_table(table)


# ---------------------------------------------------------------------------
# Entitlement store
# ---------------------------------------------------------------------------


def _create_catalog(table: str) -> None:
    id_column, pk = _id(table)
    op.create_table(
        table,
        id_column,
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _flag("immutable"),
        pk,
        sa.UniqueConstraint("name", name=f"{table}_name_key"),
    )


def _create_bundle(table: str) -> None:
    id_column, pk = _id(table)
    op.create_table(
        table,
        id_column,
        sa.Column("name", sa.String(100), nullable=False),
        _flag("all_permissions"),
        _flag("immutable"),
        pk,
        sa.UniqueConstraint("name", name=f"{table}_name_key"),
    )


def _create_link(table: str, left: tuple[str, str], right: tuple[str, str]) -> None:
    (left_column, left_target), (right_column, right_target) = left, right
    id_column, pk = _id(table)
    op.create_table(
        table,
        id_column,
        sa.Column(left_column, UUIDType(), nullable=False),
        sa.Column(right_column, UUIDType(), nullable=False),
        pk,
        _fk(table, left_column, left_target, ondelete="CASCADE"),
        _fk(table, right_column, right_target, ondelete="CASCADE"),
        sa.UniqueConstraint(
            left_column, right_column, name=f"{table}_{left_column}_{right_column}_key"
        ),
    )


def _create_users() -> None:
    id_column, pk = _id("users")
    op.create_table(
        "users",
        id_column,
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("role_id", UUIDType(), nullable=True),
        *_timestamps(),
        pk,
        _fk("users", "role_id", "roles", ondelete="SET NULL"),
    )


# ---------------------------------------------------------------------------
# Views and memberships
# ---------------------------------------------------------------------------


def _create_views() -> None:
    id_column, pk = _id("views")
    op.create_table(
        "views",
        id_column,
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", VIEW_STATUS, nullable=False),
        sa.Column("parent_view_id", UUIDType(), nullable=True),
        *_timestamps(),
        pk,
        _fk("views", "parent_view_id", "views", ondelete="SET NULL"),
    )
    _index("views", "parent_view_id")


def _create_teams() -> None:
    id_column, pk = _id("teams")
    op.create_table(
        "teams",
        id_column,
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("view_id", UUIDType(), nullable=False),
        sa.Column("role_id", UUIDType(), nullable=True),
        *_timestamps(),
        pk,
        _fk("teams", "view_id", "views", ondelete="CASCADE"),
        _fk("teams", "role_id", "team_roles", ondelete="SET NULL"),
    )
    _index("teams", "view_id")


def _create_memberships() -> None:
    # view_memberships and team_memberships reference each other. SQLite
    # accepts a forward reference inline; elsewhere the primary-team FK is
    # added once both tables exist.
    inline_primary_fk = _dialect_name() == "sqlite"

    id_column, pk = _id("view_memberships")
    constraints: list[sa.Constraint] = [
        pk,
        _fk("view_memberships", "view_id", "views", ondelete="CASCADE"),
        _fk("view_memberships", "user_id", "users", ondelete="CASCADE"),
        sa.UniqueConstraint("view_id", "user_id", name="view_memberships_view_id_user_id_key"),
    ]
    if inline_primary_fk:
        constraints.append(
            _fk(
                "view_memberships",
                "primary_team_membership_id",
                "team_memberships",
                ondelete="RESTRICT",
            )
        )
    op.create_table(
        "view_memberships",
        id_column,
        sa.Column("view_id", UUIDType(), nullable=False),
        sa.Column("user_id", UUIDType(), nullable=False),
        sa.Column("primary_team_membership_id", UUIDType(), nullable=True),
        *constraints,
    )
    _index("view_memberships", "user_id")

    id_column, pk = _id("team_memberships")
    op.create_table(
        "team_memberships",
        id_column,
        sa.Column("team_id", UUIDType(), nullable=False),
        sa.Column("user_id", UUIDType(), nullable=False),
        sa.Column("view_membership_id", UUIDType(), nullable=False),
        sa.Column("role_id", UUIDType(), nullable=True),
        pk,
        _fk("team_memberships", "team_id", "teams", ondelete="CASCADE"),
        _fk("team_memberships", "user_id", "users", ondelete="CASCADE"),
        _fk("team_memberships", "view_membership_id", "view_memberships", ondelete="CASCADE"),
        _fk("team_memberships", "role_id", "team_roles", ondelete="SET NULL"),
        sa.UniqueConstraint("team_id", "user_id", name="team_memberships_team_id_user_id_key"),
    )
    _index("team_memberships", "user_id")
    _index("team_memberships", "view_membership_id")

    if not inline_primary_fk:
        op.create_foreign_key(
            PRIMARY_TEAM_FK,
            "view_memberships",
            "team_memberships",
            ["primary_team_membership_id"],
            ["id"],
            ondelete="RESTRICT",
        )


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


def _create_applications() -> None:
    id_column, pk = _id("applications")
    op.create_table(
        "applications",
        id_column,
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("url", sa.String(2048), nullable=True),
        _flag("embeddable"),
        sa.Column("view_id", UUIDType(), nullable=False),
        pk,
        _fk("applications", "view_id", "views", ondelete="CASCADE"),
    )
    _index("applications", "view_id")

    id_column, pk = _id("application_instances")
    op.create_table(
        "application_instances",
        id_column,
        sa.Column("application_id", UUIDType(), nullable=False),
        sa.Column("team_id", UUIDType(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        pk,
        _fk("application_instances", "application_id", "applications", ondelete="CASCADE"),
        _fk("application_instances", "team_id", "teams", ondelete="CASCADE"),
    )
    _index("application_instances", "team_id")


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


def _create_webhooks() -> None:
    id_column, pk = _id("webhook_subscriptions")
    op.create_table(
        "webhook_subscriptions",
        id_column,
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("callback_uri", sa.String(2048), nullable=False),
        sa.Column("client_id", sa.String(255), nullable=False),
        sa.Column("client_secret", sa.String(1024), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        pk,
    )

    id_column, pk = _id("webhook_subscription_event_types")
    op.create_table(
        "webhook_subscription_event_types",
        id_column,
        sa.Column("subscription_id", UUIDType(), nullable=False),
        sa.Column("event_type", WEBHOOK_EVENT_TYPE, nullable=False),
        pk,
        _fk(
            "webhook_subscription_event_types",
            "subscription_id",
            "webhook_subscriptions",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "subscription_id",
            "event_type",
            name="webhook_subscription_event_types_subscription_id_event_type_key",
        ),
    )

    id_column, pk = _id("pending_events")
    op.create_table(
        "pending_events",
        id_column,
        sa.Column("event_type", WEBHOOK_EVENT_TYPE, nullable=False),
        sa.Column("timestamp", UTCDateTime(), nullable=False),
        sa.Column("subscription_id", UUIDType(), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        pk,
        _fk("pending_events", "subscription_id", "webhook_subscriptions", ondelete="CASCADE"),
    )
    op.create_index("pending_events_timestamp_idx", "pending_events", ["timestamp"])
    _index("pending_events", "subscription_id")
