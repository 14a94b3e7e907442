from decimal import Decimal

import pytest
from shared.storage import Money, to_money


class TestToMoney:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("10", "10.00"),
            ("0.005", "0.01"),
            ("0.004", "0.00"),
            ("2.675", "2.68"),
            (3, "3.00"),
            (0.1, "0.10"),
            (Decimal("1.2345"), "1.23"),
        ],
    )
    def test_quantizes_half_up(self, value, expected):
        assert to_money(value) == Decimal(expected)
        assert str(to_money(value)) == expected


class TestMoneyType:
    def test_binds_cents(self):
        assert Money().process_bind_param(Decimal("25.00"), None) == 2500
        assert Money().process_bind_param(Decimal("0.10"), None) == 10

    def test_reads_decimal(self):
        assert Money().process_result_value(2500, None) == Decimal("25.00")
        assert str(Money().process_result_value(7, None)) == "0.07"

    def test_none_passes_through(self):
        assert Money().process_bind_param(None, None) is None
        assert Money().process_result_value(None, None) is None
