"""
Tests for settings validation.
"""

import pytest

from hours_bank.config import Settings


@pytest.mark.parametrize("target", ["available_balance", "baseline"])
def test_known_deficit_carry_targets_load(monkeypatch, target):
    monkeypatch.setattr(Settings, "DEFICIT_CARRY_TARGET", target)
    assert Settings().DEFICIT_CARRY_TARGET == target


def test_unknown_deficit_carry_target_is_rejected(monkeypatch):
    monkeypatch.setattr(Settings, "DEFICIT_CARRY_TARGET", "next_cycle")
    with pytest.raises(ValueError, match="DEFICIT_CARRY_TARGET"):
        Settings()
