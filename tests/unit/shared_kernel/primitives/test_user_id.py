from __future__ import annotations

import pytest

from tradebook.shared_kernel.primitives import UserId


def test_user_id_normalizes_surrounding_whitespace() -> None:
    """
    Verify UserId keeps provider subjects opaque and only strips whitespace.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Identity provider subjects are not required to be UUIDs.
    Raises:
        AssertionError: If normalization changes the subject.
    Side Effects:
        None.
    """
    user_id = UserId("  user_2aXk9Qp  ")

    assert str(user_id) == "user_2aXk9Qp"
    assert user_id == UserId("user_2aXk9Qp")


@pytest.mark.parametrize("raw", [" ", "", "x" * 256, "alice\nbob"])
def test_user_id_rejects_invalid_values(raw: str) -> None:
    with pytest.raises(ValueError):
        UserId(raw)


def test_user_id_accepts_maximum_length() -> None:
    assert len(str(UserId("u" * 255))) == 255
