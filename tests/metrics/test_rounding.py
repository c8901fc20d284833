"""Tests for half-up rounding."""

from training_engine.metrics.rounding import round_half_up


class TestRoundHalfUp:
    """Ties go up, everything else rounds to nearest."""

    def test_whole_number_ties(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(256.5) == 257

    def test_negative_ties_go_up(self):
        assert round_half_up(-2.5) == -2
        assert round_half_up(-0.25, 1) == -0.2

    def test_non_ties(self):
        assert round_half_up(2.49) == 2
        assert round_half_up(2.51) == 3
        assert round_half_up(-2.51) == -3

    def test_returns_int_for_whole_numbers(self):
        assert isinstance(round_half_up(3.7), int)

    def test_one_decimal(self):
        assert round_half_up(0.25, 1) == 0.3
        assert round_half_up(12.34, 1) == 12.3
        assert round_half_up(12.36, 1) == 12.4
