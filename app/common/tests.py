"""
Tests para utilidades comunes: aritmética monetaria y máquina de estados
"""

import pytest
from decimal import Decimal

from app.common.exceptions import InvalidTransitionError, ValidationError
from app.common.money import (
    to_decimal, quantize_money, line_amount, percentage, sum_money, compute_tax, totals_with_tax,
    require_quantity, require_price
)
from app.common.state_machine import StateMachine


class TestMoney:
    """Aritmética con Decimal"""

    def test_to_decimal_from_float_uses_string_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(0.1) + to_decimal(0.2) == Decimal("0.3")

    def test_to_decimal_rejects_garbage(self):
        with pytest.raises(ValidationError):
            to_decimal("doce pesos")
        with pytest.raises(ValidationError):
            to_decimal(True)

    def test_quantize_rounds_half_up(self):
        assert quantize_money("2.345") == Decimal("2.35")
        assert quantize_money("2.344") == Decimal("2.34")
        assert quantize_money("-2.345") == Decimal("-2.35")

    def test_line_amount_keeps_full_precision(self):
        assert line_amount("3.333", "1.5") == Decimal("4.9995")
        assert line_amount(100, "50.00") == Decimal("5000.00")

    def test_percentage(self):
        assert percentage("2000", 10) == Decimal("200")
        assert percentage("2000", "5") == Decimal("100")

    def test_sum_of_many_lines_is_exact(self):
        """1000 líneas de 0.10 suman exactamente 100.00"""
        total = sum_money(Decimal("0.10") for _ in range(1000))
        assert total == Decimal("100.00")

    def test_sum_rounds_once_at_the_end(self):
        # Redondear cada línea daría 0.03; la suma exacta 0.015 redondea a 0.02
        values = [Decimal("0.005"), Decimal("0.005"), Decimal("0.005")]
        assert quantize_money(sum_money(values)) == Decimal("0.02")

    def test_compute_tax_default_rate(self):
        assert compute_tax("3000") == Decimal("480")

    def test_totals_with_tax(self):
        subtotal, tax, total = totals_with_tax("1000", rate=16)
        assert subtotal == Decimal("1000")
        assert tax == Decimal("160")
        assert total == Decimal("1160")

    def test_require_scale_accepts_column_precision(self):
        assert require_quantity("2.5000") == Decimal("2.5000")
        assert require_quantity("0.0001") == Decimal("0.0001")
        assert require_price("10.50") == Decimal("10.50")
        assert require_price("1E+3") == Decimal("1000")

    def test_require_scale_rejects_extra_decimals(self):
        with pytest.raises(ValidationError) as exc:
            require_quantity("0.99999")
        assert exc.value.details["max_decimal_places"] == 4

        with pytest.raises(ValidationError):
            require_price("10.005", "unit_price")
        with pytest.raises(ValidationError):
            require_price("NaN")


class _Doc:
    def __init__(self, status):
        self.id = "doc-1"
        self.status = status


class TestStateMachine:
    """Tabla de transiciones genérica"""

    @pytest.fixture
    def machine(self):
        return StateMachine("documento", {
            "A": {"B", "C"},
            "B": {"C"},
            "C": set(),
        })

    def test_valid_transition_changes_status(self, machine):
        doc = _Doc("A")
        machine.transition(doc, "B")
        assert doc.status == "B"

    def test_invalid_transition_raises_and_keeps_status(self, machine):
        doc = _Doc("B")
        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.transition(doc, "A")

        assert doc.status == "B"
        assert exc_info.value.details == {"entity": "documento", "from_state": "B", "to_state": "A"}
        assert exc_info.value.status_code == 409

    def test_terminal_state_has_no_transitions(self, machine):
        assert machine.allowed("C") == []
        assert not machine.can_transition("C", "A")

    def test_allowed_is_sorted(self, machine):
        assert machine.allowed("A") == ["B", "C"]
