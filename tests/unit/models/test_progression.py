"""Tests for level progression."""

from __future__ import annotations

import pytest

from rpg_combat.models.progression import apply_experience, xp_for_next_level


class TestXpCurve:
    """Tests for the XP curve."""

    @pytest.mark.parametrize(("level", "needed"), [(1, 100), (2, 282), (3, 519), (4, 800), (10, 3162)])
    def test_xp_for_next_level(self, level: int, needed: int) -> None:
        """Test floor(100 * level ** 1.5)."""
        assert xp_for_next_level(level) == needed

    def test_level_below_one_rejected(self) -> None:
        """Test that level 0 has no curve entry."""
        with pytest.raises(ValueError):
            xp_for_next_level(0)


class TestApplyExperience:
    """Tests for apply_experience."""

    def test_no_level_up(self) -> None:
        """Test gaining XP below the threshold."""
        progress = apply_experience(1, 20, 50)

        assert progress.level == 1
        assert progress.xp == 70
        assert not progress.leveled_up

    def test_exact_threshold(self) -> None:
        """Test that reaching the threshold exactly levels up."""
        progress = apply_experience(1, 50, 50)

        assert progress.level == 2
        assert progress.xp == 0

    def test_multiple_level_ups(self) -> None:
        """Test carrying excess XP over several levels."""
        progress = apply_experience(1, 90, 300)

        assert progress.level == 3
        assert progress.xp == 8
        assert progress.levels_gained == 2

    def test_level_cap(self) -> None:
        """Test that XP accumulates without levelling past the cap."""
        progress = apply_experience(2, 0, 10_000, max_level=3)

        assert progress.level == 3
        assert progress.xp == 10_000 - 282

    def test_negative_gain_rejected(self) -> None:
        """Test that XP cannot be taken away."""
        with pytest.raises(ValueError):
            apply_experience(1, 0, -5)
