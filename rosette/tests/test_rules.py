"""
Tests for rulesets.

Tests:
- Preset boards
- Capture map queries
- Validation of custom configurations
- Lookup by name
"""

import pytest

from ..engine_core.rules import (
    BLITZ,
    FINKEL,
    MASTERS,
    PRESETS,
    SIMPLE,
    TOURNAMENT,
    RuleSet,
    resolve_ruleset,
)


class TestPresets:
    """Tests for the preset rulesets."""

    def test_finkel_board(self):
        """Finkel: 7 pieces, 15-square track, three rosettes."""
        assert FINKEL.pieces_per_side == 7
        assert FINKEL.path_length == 15
        assert FINKEL.rosettes == frozenset({4, 8, 14})
        assert FINKEL.dice_count == 4
        assert FINKEL.safe_rosettes
        assert FINKEL.rosette_extra_turn
        assert not FINKEL.capture_extra_turn
        assert FINKEL.zero_roll_value is None

    def test_simple_drops_last_rosette(self):
        """Simple has no rosette on the home stretch."""
        assert SIMPLE.rosettes == frozenset({4, 8})
        assert SIMPLE.path_length == FINKEL.path_length

    def test_masters_variant(self):
        """Masters: 16 squares, three dice, zero counts as four, no safe rosettes."""
        assert MASTERS.path_length == 16
        assert MASTERS.dice_count == 3
        assert MASTERS.zero_roll_value == 4
        assert not MASTERS.safe_rosettes
        assert MASTERS.rosettes == frozenset({3, 7, 11, 15})

    def test_blitz_and_tournament_share_masters_board(self):
        """Blitz and Tournament reuse the Masters track with five pieces."""
        for rules in (BLITZ, TOURNAMENT):
            assert rules.pieces_per_side == 5
            assert rules.rosettes == MASTERS.rosettes
            assert dict(rules.capture_map) == dict(MASTERS.capture_map)

        assert BLITZ.capture_extra_turn
        assert TOURNAMENT.allow_stacking
        assert TOURNAMENT.allow_backward_moves
        assert TOURNAMENT.allow_voluntary_skip
        assert not TOURNAMENT.rosette_extra_turn

    def test_presets_indexed_by_lowercase_name(self):
        assert set(PRESETS) == {"finkel", "simple", "masters", "blitz", "tournament"}


class TestCaptureMap:
    """Tests for shared lane and capture target queries."""

    def test_default_map_is_identity_over_shared_lane(self):
        """Without an explicit map every shared square aliases itself."""
        for pos in range(5, 13):
            assert FINKEL.is_shared_lane(pos)
            assert FINKEL.capture_target(pos) == pos

    def test_private_squares_are_not_shared(self):
        assert not FINKEL.is_shared_lane(4)
        assert not FINKEL.is_shared_lane(13)
        assert FINKEL.capture_target(2) == 2

    def test_masters_tail_folds_back(self):
        """On the Masters board 11 threatens the opponent's 15 and 12 threatens 14."""
        assert MASTERS.capture_target(11) == 15
        assert MASTERS.capture_target(12) == 14
        assert MASTERS.capture_target(13) == 13
        assert MASTERS.capture_target(15) == 11
        assert MASTERS.capture_target(7) == 7
        assert not MASTERS.is_shared_lane(3)

    def test_capture_map_is_read_only(self):
        with pytest.raises(TypeError):
            FINKEL.capture_map[5] = 6

    def test_explicit_map_copied(self):
        """Mutating the source dict afterwards does not change the ruleset."""
        source = {2: 3, 3: 2}
        rules = RuleSet(
            rosettes=frozenset(),
            pieces_per_side=2,
            path_length=6,
            shared_lane_start=2,
            shared_lane_end=3,
            capture_map=source,
        )
        source[2] = 5
        assert rules.capture_target(2) == 3


class TestValidation:
    """Tests for rejecting inconsistent configurations."""

    def test_rosette_outside_track(self):
        with pytest.raises(ValueError):
            RuleSet(
                rosettes=frozenset({20}),
                pieces_per_side=7,
                path_length=15,
                shared_lane_start=5,
                shared_lane_end=12,
            )

    def test_non_positive_sizes(self):
        with pytest.raises(ValueError):
            RuleSet(rosettes=frozenset(), pieces_per_side=0, path_length=15,
                    shared_lane_start=5, shared_lane_end=12)
        with pytest.raises(ValueError):
            RuleSet(rosettes=frozenset(), pieces_per_side=7, path_length=0,
                    shared_lane_start=0, shared_lane_end=0)

    def test_capture_map_outside_track(self):
        with pytest.raises(ValueError):
            RuleSet(
                rosettes=frozenset(),
                pieces_per_side=2,
                path_length=6,
                shared_lane_start=2,
                shared_lane_end=3,
                capture_map={2: 9},
            )

    def test_custom_name_default(self):
        rules = RuleSet(rosettes=frozenset(), pieces_per_side=1, path_length=4,
                        shared_lane_start=1, shared_lane_end=2)
        assert rules.name == "Custom"
        assert rules.borne_off == 4


class TestResolve:
    """Tests for looking presets up by name."""

    def test_case_insensitive(self):
        assert resolve_ruleset("masters") is MASTERS
        assert resolve_ruleset("  Blitz ") is BLITZ

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown ruleset"):
            resolve_ruleset("Senet")
