"""Create journal tables with encrypted columns, membership roles and row-level security."""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261001_0001"
down_revision = None
branch_labels = None
depends_on = None

_FORCED_RLS_TABLES = ("users", "tradebooks", "trades", "exit_legs")


def upgrade() -> None:
    """
    Apply journal storage schema and tenant isolation policies.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Migrations run as the table owner; the API connects as a separate non-owner role,
        so `tradebook_members` policies apply to it without FORCE.
    Raises:
        Exception: Postgres execution errors from Alembic runtime.
    Side Effects:
        Creates tables, enum type, helper functions, indexes and RLS policies.
    """
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS tradebooks (
            id UUID PRIMARY KEY,
            owner_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            title BYTEA NULL,
            wrapped_dek BYTEA NULL,
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL
        )
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_tradebooks_owner
            ON tradebooks (owner_id)
        """
    )
    op.execute(
        """
        DO $$
        BEGIN
            CREATE TYPE tradebook_role AS ENUM ('owner', 'editor', 'reader');
        EXCEPTION
            WHEN duplicate_object THEN NULL;
        END
        $$
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS tradebook_members (
            tradebook_id UUID NOT NULL REFERENCES tradebooks (id) ON DELETE CASCADE,
            user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            role tradebook_role NOT NULL,
            created_at TIMESTAMPTZ NOT NULL,
            PRIMARY KEY (tradebook_id, user_id)
        )
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_tradebook_members_user
            ON tradebook_members (user_id, tradebook_id)
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS trades (
            id UUID PRIMARY KEY,
            tradebook_id UUID NOT NULL REFERENCES tradebooks (id) ON DELETE CASCADE,
            asset_class TEXT NOT NULL,
            purchase_type TEXT NOT NULL,
            order_type TEXT NOT NULL,
            symbol BYTEA NULL,
            entry_date TIMESTAMPTZ NOT NULL,
            entry_quantity BYTEA NOT NULL,
            entry_price BYTEA NOT NULL,
            entry_fees BYTEA NULL,
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT trades_asset_class_chk
                CHECK (
                    asset_class IN (
                        'equities',
                        'fixed_income',
                        'commodities',
                        'etfs',
                        'forex',
                        'derivatives',
                        'crypto'
                    )
                ),
            CONSTRAINT trades_purchase_type_chk
                CHECK (purchase_type IN ('cash', 'margin')),
            CONSTRAINT trades_order_type_chk
                CHECK (order_type IN ('market', 'limit', 'stop', 'stop_limit'))
        )
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_trades_tradebook_entry
            ON trades (tradebook_id, entry_date DESC, id)
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS exit_legs (
            id UUID PRIMARY KEY,
            trade_id UUID NOT NULL REFERENCES trades (id) ON DELETE CASCADE,
            exit_date TIMESTAMPTZ NOT NULL,
            exit_quantity BYTEA NOT NULL,
            exit_price BYTEA NOT NULL,
            exit_fees BYTEA NULL,
            created_at TIMESTAMPTZ NOT NULL
        )
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_exit_legs_trade
            ON exit_legs (trade_id, exit_date, id)
        """
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION journal_current_user_id() RETURNS TEXT
        LANGUAGE sql
        STABLE
        AS $$
            SELECT NULLIF(current_setting('app.current_user_id', true), '')
        $$
        """
    )
    # Runs as the owner so membership lookups inside policies do not re-enter RLS.
    op.execute(
        """
        CREATE OR REPLACE FUNCTION journal_member_role(target_tradebook UUID)
        RETURNS tradebook_role
        LANGUAGE sql
        STABLE
        SECURITY DEFINER
        SET search_path = public
        AS $$
            SELECT m.role
            FROM tradebook_members m
            WHERE m.tradebook_id = target_tradebook
              AND m.user_id = journal_current_user_id()
        $$
        """
    )

    for table in _FORCED_RLS_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE tradebook_members ENABLE ROW LEVEL SECURITY")

    _create_users_policies()
    _create_tradebooks_policies()
    _create_members_policies()
    _create_trades_policies()
    _create_exit_legs_policies()


def downgrade() -> None:
    """
    Revert journal storage schema.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Downgrade order drops dependent tables first; policies go with their tables.
    Raises:
        Exception: Postgres execution errors from Alembic runtime.
    Side Effects:
        Drops journal tables, helper functions and enum type.
    """
    op.execute("DROP TABLE IF EXISTS exit_legs")
    op.execute("DROP TABLE IF EXISTS trades")
    op.execute("DROP TABLE IF EXISTS tradebook_members")
    op.execute("DROP FUNCTION IF EXISTS journal_member_role(UUID)")
    op.execute("DROP FUNCTION IF EXISTS journal_current_user_id()")
    op.execute("DROP TABLE IF EXISTS tradebooks")
    op.execute("DROP TABLE IF EXISTS users")
    op.execute("DROP TYPE IF EXISTS tradebook_role")


def _create_users_policies() -> None:
    op.execute(
        """
        CREATE POLICY users_self ON users
            USING (id = journal_current_user_id())
            WITH CHECK (id = journal_current_user_id())
        """
    )


def _create_tradebooks_policies() -> None:
    op.execute(
        """
        CREATE POLICY tradebooks_select ON tradebooks
            FOR SELECT
            USING (
                owner_id = journal_current_user_id()
                OR journal_member_role(id) IS NOT NULL
            )
        """
    )
    op.execute(
        """
        CREATE POLICY tradebooks_insert ON tradebooks
            FOR INSERT
            WITH CHECK (owner_id = journal_current_user_id())
        """
    )
    op.execute(
        """
        CREATE POLICY tradebooks_update ON tradebooks
            FOR UPDATE
            USING (journal_member_role(id) IN ('owner', 'editor'))
            WITH CHECK (journal_member_role(id) IN ('owner', 'editor'))
        """
    )
    op.execute(
        """
        CREATE POLICY tradebooks_delete ON tradebooks
            FOR DELETE
            USING (
                owner_id = journal_current_user_id()
                AND journal_member_role(id) = 'owner'
            )
        """
    )


def _create_members_policies() -> None:
    op.execute(
        """
        CREATE POLICY tradebook_members_select ON tradebook_members
            FOR SELECT
            USING (
                user_id = journal_current_user_id()
                OR journal_member_role(tradebook_id) IS NOT NULL
            )
        """
    )
    op.execute(
        """
        CREATE POLICY tradebook_members_insert ON tradebook_members
            FOR INSERT
            WITH CHECK (
                (
                    role = 'owner'
                    AND user_id = journal_current_user_id()
                    AND EXISTS (
                        SELECT 1
                        FROM tradebooks t
                        WHERE t.id = tradebook_id
                          AND t.owner_id = journal_current_user_id()
                    )
                )
                OR (
                    role <> 'owner'
                    AND journal_member_role(tradebook_id) = 'owner'
                )
            )
        """
    )
    op.execute(
        """
        CREATE POLICY tradebook_members_update ON tradebook_members
            FOR UPDATE
            USING (role <> 'owner' AND journal_member_role(tradebook_id) = 'owner')
            WITH CHECK (role <> 'owner' AND journal_member_role(tradebook_id) = 'owner')
        """
    )
    op.execute(
        """
        CREATE POLICY tradebook_members_delete ON tradebook_members
            FOR DELETE
            USING (role <> 'owner' AND journal_member_role(tradebook_id) = 'owner')
        """
    )


def _create_trades_policies() -> None:
    op.execute(
        """
        CREATE POLICY trades_select ON trades
            FOR SELECT
            USING (journal_member_role(tradebook_id) IS NOT NULL)
        """
    )
    op.execute(
        """
        CREATE POLICY trades_write ON trades
            FOR INSERT
            WITH CHECK (journal_member_role(tradebook_id) IN ('owner', 'editor'))
        """
    )
    op.execute(
        """
        CREATE POLICY trades_update ON trades
            FOR UPDATE
            USING (journal_member_role(tradebook_id) IN ('owner', 'editor'))
            WITH CHECK (journal_member_role(tradebook_id) IN ('owner', 'editor'))
        """
    )
    op.execute(
        """
        CREATE POLICY trades_delete ON trades
            FOR DELETE
            USING (journal_member_role(tradebook_id) IN ('owner', 'editor'))
        """
    )


def _create_exit_legs_policies() -> None:
    op.execute(
        """
        CREATE POLICY exit_legs_select ON exit_legs
            FOR SELECT
            USING (EXISTS (SELECT 1 FROM trades tr WHERE tr.id = trade_id))
        """
    )
    op.execute(
        """
        CREATE POLICY exit_legs_insert ON exit_legs
            FOR INSERT
            WITH CHECK (
                EXISTS (
                    SELECT 1
                    FROM trades tr
                    WHERE tr.id = trade_id
                      AND journal_member_role(tr.tradebook_id) IN ('owner', 'editor')
                )
            )
        """
    )
    op.execute(
        """
        CREATE POLICY exit_legs_delete ON exit_legs
            FOR DELETE
            USING (
                EXISTS (
                    SELECT 1
                    FROM trades tr
                    WHERE tr.id = trade_id
                      AND journal_member_role(tr.tradebook_id) IN ('owner', 'editor')
                )
            )
        """
    )
