import pytest

from plotdesk.services.key_rotator import KeyRotator


def test_advance_returns_old_position_and_wraps():
    rotator = KeyRotator(["a", "b", "c"], name="test")

    assert [rotator.advance() for _ in range(5)] == [0, 1, 2, 0, 1]
    assert rotator.position == 2


def test_attempt_order_is_pool_rotated_left():
    rotator = KeyRotator(["a", "b", "c", "d"])

    assert rotator.attempt_order(0) == [(0, "a"), (1, "b"), (2, "c"), (3, "d")]
    assert rotator.attempt_order(2) == [(2, "c"), (3, "d"), (0, "a"), (1, "b")]
    assert rotator.attempt_order(3) == [(3, "d"), (0, "a"), (1, "b"), (2, "c")]


def test_single_key_pool_always_starts_at_zero():
    rotator = KeyRotator(["only"])

    assert [rotator.advance() for _ in range(3)] == [0, 0, 0]
    assert rotator.attempt_order(0) == [(0, "only")]


def test_empty_pool_rejected():
    with pytest.raises(ValueError, match="at least one API key"):
        KeyRotator([], name="Gemini")


def test_pool_is_a_snapshot():
    keys = ["a", "b"]
    rotator = KeyRotator(keys)
    keys.append("c")

    assert rotator.keys == ("a", "b")
    assert rotator.key_count == 2
