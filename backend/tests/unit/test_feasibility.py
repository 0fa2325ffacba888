"""
Unit tests for feasibility scoring.

WHAT: Test the weighted feasibility blend and its clamping
WHY: Recommendation ranking depends entirely on this score
HOW: Known corner values plus monotonicity sweeps
"""

import pytest

from freight_exchange.services.feasibility import compute_feasibility


@pytest.mark.unit
class TestComputeFeasibility:
    """Test compute_feasibility scoring."""

    def test_perfect_match_scores_one(self):
        """Full truck, no detour, no idle time, compliant → 1.0."""
        assert compute_feasibility(capacity_match=1, detour_km=0, idle_hours=0, failed_rules=0) == pytest.approx(1.0)

    def test_worst_case_scores_zero(self):
        """Every sub-score floors at zero."""
        assert compute_feasibility(capacity_match=0, detour_km=300, idle_hours=24, failed_rules=4) == pytest.approx(0.0)

    def test_weighted_blend(self):
        """0.4*0.8 + 0.2*0.6 + 0.2*0.75 + 0.2*0.75."""
        score = compute_feasibility(capacity_match=0.8, detour_km=120, idle_hours=6, failed_rules=1)
        assert score == pytest.approx(0.32 + 0.12 + 0.15 + 0.15)

    def test_detour_and_idle_beyond_caps_contribute_nothing(self):
        """Detours past 300 km and idle past 24 h are treated as the cap."""
        at_cap = compute_feasibility(capacity_match=0.5, detour_km=300, idle_hours=24, failed_rules=0)
        beyond = compute_feasibility(capacity_match=0.5, detour_km=900, idle_hours=100, failed_rules=0)
        assert beyond == pytest.approx(at_cap)
        assert at_cap == pytest.approx(0.2 + 0.2)

    def test_compliance_penalty_per_rule(self):
        """Each failed rule costs 25% of the compliance component."""
        scores = [
            compute_feasibility(capacity_match=0, detour_km=300, idle_hours=24, failed_rules=n)
            for n in range(6)
        ]
        assert scores == pytest.approx([0.2, 0.15, 0.1, 0.05, 0.0, 0.0])

    def test_negative_inputs_are_clamped_not_rejected(self):
        """Malformed inputs still yield a score in [0, 1]."""
        score = compute_feasibility(capacity_match=1, detour_km=-50, idle_hours=-10, failed_rules=0)
        assert score == 1.0

    def test_out_of_range_capacity_is_clamped(self):
        assert compute_feasibility(capacity_match=5, detour_km=0, idle_hours=0, failed_rules=0) == 1.0
        assert compute_feasibility(capacity_match=-5, detour_km=300, idle_hours=24, failed_rules=4) == 0.0

    @pytest.mark.parametrize("capacity", [0, 0.25, 0.5, 1])
    @pytest.mark.parametrize("detour", [0, 75, 150, 300, 450])
    @pytest.mark.parametrize("idle", [0, 6, 24, 48])
    @pytest.mark.parametrize("rules", [0, 1, 2, 5])
    def test_score_always_in_unit_interval(self, capacity, detour, idle, rules):
        score = compute_feasibility(capacity_match=capacity, detour_km=detour, idle_hours=idle, failed_rules=rules)
        assert 0.0 <= score <= 1.0


@pytest.mark.unit
class TestFeasibilityMonotonicity:
    """Score moves in the right direction as each input changes."""

    BASE = {"capacity_match": 0.6, "detour_km": 100, "idle_hours": 8, "failed_rules": 1}

    def _sweep(self, field, values):
        return [compute_feasibility(**{**self.BASE, field: value}) for value in values]

    def test_non_decreasing_in_capacity(self):
        scores = self._sweep("capacity_match", [0, 0.2, 0.4, 0.6, 0.8, 1.0])
        assert scores == sorted(scores)

    def test_non_increasing_in_detour(self):
        scores = self._sweep("detour_km", [0, 50, 100, 200, 300, 400])
        assert scores == sorted(scores, reverse=True)

    def test_non_increasing_in_idle_hours(self):
        scores = self._sweep("idle_hours", [0, 4, 12, 24, 36])
        assert scores == sorted(scores, reverse=True)

    def test_non_increasing_in_failed_rules(self):
        scores = self._sweep("failed_rules", [0, 1, 2, 3, 4, 5])
        assert scores == sorted(scores, reverse=True)
