from __future__ import annotations

from typing import Sequence

from tradebook.contexts.journal.domain.value_objects import TradebookRole

WRITE_ROLES = (TradebookRole.OWNER, TradebookRole.EDITOR)
MANAGE_ROLES = (TradebookRole.OWNER,)


def member_role_predicate(
    *,
    tradebook_column: str,
    roles: Sequence[TradebookRole] | None = None,
    user_parameter: str = "user_id",
    members_table: str = "tradebook_members",
) -> str:
    """
    Build explicit membership predicate applied on top of row-level security.

    Args:
        tradebook_column: SQL expression holding the tradebook id.
        roles: Required roles; `None` means any membership.
        user_parameter: Bind parameter name of the acting user id.
        members_table: Membership table name.
    Returns:
        str: `EXISTS (...)` SQL fragment.
    Assumptions:
        Role literals come from `TradebookRole` only, never from user input.
    Raises:
        None.
    Side Effects:
        None.
    """
    roles_clause = ""
    if roles is not None:
        role_literals = ", ".join(f"'{role.value}'" for role in roles)
        roles_clause = f" AND m.role IN ({role_literals})"
    return (
        f"EXISTS (SELECT 1 FROM {members_table} m "
        f"WHERE m.tradebook_id = {tradebook_column} "
        f"AND m.user_id = %({user_parameter})s{roles_clause})"
    )
