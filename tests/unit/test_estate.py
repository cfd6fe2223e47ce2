"""
Unit tests for estate.py module.
"""

import pytest

from perpetuity.estate import estate_exemption, estate_tax, net_estate
from perpetuity.exceptions import ValidationError


class TestExemption:
    """Test exemption indexing."""

    def test_base_year(self):
        assert estate_exemption("single", 2026) == 13_990_000
        assert estate_exemption("married", 2026) == 27_980_000

    def test_before_base_year_not_indexed(self):
        assert estate_exemption("single", 2020) == 13_990_000

    def test_indexed_after_base_year(self):
        assert estate_exemption("single", 2036) == pytest.approx(13_990_000 * 1.026 ** 10)

    def test_unknown_status(self):
        with pytest.raises(ValidationError, match="marital_status"):
            estate_exemption("widowed", 2026)


class TestEstateTax:
    """Test tax owed."""

    def test_below_exemption(self):
        assert estate_tax(5_000_000) == 0.0

    def test_at_exemption(self):
        assert estate_tax(13_990_000) == 0.0

    def test_above_exemption(self):
        assert estate_tax(23_990_000) == pytest.approx(4_000_000)

    def test_married_exemption(self):
        assert estate_tax(23_990_000, "married") == 0.0

    def test_extend_flag_does_not_change_result(self):
        assert estate_tax(50_000_000, "single", 2030, False) == estate_tax(50_000_000, "single", 2030, True)

    def test_nan_rejected(self):
        with pytest.raises(ValidationError):
            estate_tax(float("nan"))

    def test_net_estate(self):
        assert net_estate(23_990_000) == pytest.approx(19_990_000)
