"""
Tests for canonical form, digest and tax computation.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from services.chain_hash import (
    SENTINEL_HASH,
    canonicalize,
    compute_chain_hash,
    compute_tax,
    format_amount,
    format_issue_date,
    format_sequence_number,
)

ISSUED = datetime(2025, 3, 14, 10, 0, 0)

# sha256("v1|FAC-2025-001-00000001|2025-03-14T10:00:00|100.00|21.00|121.00|")
GOLDEN_HASH = "0833f08fa79d16a3b463879631b067fa27656117436a39ec549bd1dfa452376f"


class TestTax:

    def test_standard_vat(self):
        breakdown = compute_tax(Decimal("100.00"), 21)
        assert breakdown.tax_amount == Decimal("21.00")
        assert breakdown.total == Decimal("121.00")
        assert breakdown.tax_rate == Decimal("21.00")

    def test_rounds_half_up(self):
        # 10.50 * 21% = 2.205
        breakdown = compute_tax(Decimal("10.50"), Decimal("21"))
        assert breakdown.tax_amount == Decimal("2.21")
        assert breakdown.total == Decimal("12.71")

    def test_float_input_is_not_binary_noise(self):
        breakdown = compute_tax(0.1, 21)
        assert breakdown.taxable_base == Decimal("0.10")
        assert breakdown.tax_amount == Decimal("0.02")

    def test_zero_rate(self):
        breakdown = compute_tax(Decimal("50"), 0)
        assert breakdown.tax_amount == Decimal("0.00")
        assert breakdown.total == Decimal("50.00")


class TestCanonicalForm:

    def test_field_order_and_formatting(self):
        payload = canonicalize(
            "FAC-2025-001-00000001", ISSUED, Decimal("100"), Decimal("21"), Decimal("121"), SENTINEL_HASH
        )
        assert payload == "v1|FAC-2025-001-00000001|2025-03-14T10:00:00|100.00|21.00|121.00|"

    def test_issue_date_drops_microseconds(self):
        assert format_issue_date(datetime(2025, 1, 2, 3, 4, 5, 678901)) == "2025-01-02T03:04:05"

    def test_amounts_fixed_point(self):
        assert format_amount(Decimal("1E+2")) == "100.00"
        assert format_amount(Decimal("-30.255")) == "-30.26"

    def test_sequence_number_format(self):
        assert format_sequence_number("FAC", 2025, "001", 1) == "FAC-2025-001-00000001"
        assert format_sequence_number("ABO", 2026, "R1", 1234) == "ABO-2026-R1-00001234"

    def test_unknown_version_rejected(self):
        with pytest.raises(ValueError):
            canonicalize("FAC-2025-001-00000001", ISSUED, 1, 0, 1, "", version="v0")


class TestDigest:

    def test_golden_value(self):
        digest = compute_chain_hash(
            "FAC-2025-001-00000001", ISSUED, Decimal("100.00"), Decimal("21.00"), Decimal("121.00"), ""
        )
        assert digest == GOLDEN_HASH

    def test_deterministic(self):
        args = ("FAC-2025-001-00000002", ISSUED, Decimal("50.00"), Decimal("10.50"), Decimal("60.50"), GOLDEN_HASH)
        assert compute_chain_hash(*args) == compute_chain_hash(*args)
        assert len(compute_chain_hash(*args)) == 64

    def test_numeric_representation_does_not_matter(self):
        a = compute_chain_hash("FAC-2025-001-00000001", ISSUED, Decimal("100"), Decimal("21.0"), 121, "")
        assert a == GOLDEN_HASH

    @pytest.mark.parametrize("field, value", [
        ("sequence_number", "FAC-2025-001-00000009"),
        ("issue_date", datetime(2025, 3, 14, 10, 0, 1)),
        ("taxable_base", Decimal("100.01")),
        ("tax_amount", Decimal("21.01")),
        ("total", Decimal("121.01")),
        ("previous_hash", "0" * 64),
    ])
    def test_every_field_is_covered(self, field, value):
        fields = {
            "sequence_number": "FAC-2025-001-00000001",
            "issue_date": ISSUED,
            "taxable_base": Decimal("100.00"),
            "tax_amount": Decimal("21.00"),
            "total": Decimal("121.00"),
            "previous_hash": "",
        }
        fields[field] = value
        assert compute_chain_hash(**fields) != GOLDEN_HASH
