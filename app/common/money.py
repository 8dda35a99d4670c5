"""
Aritmética monetaria con Decimal

- Los cálculos intermedios conservan la precisión completa.
- El redondeo a 2 decimales (ROUND_HALF_UP) sólo se aplica al presentar o
  almacenar un importe.
- Los porcentajes se expresan en base 100 (16 = 16%).
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Optional, Tuple, Union

from app.core.config import settings
from app.common.exceptions import ValidationError

Number = Union[int, float, str, Decimal]

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Decimales que guardan las columnas Numeric(14, 4) y Numeric(15, 2)
QUANTITY_PLACES = 4
MONEY_PLACES = 2


def to_decimal(value: Number) -> Decimal:
    """
    Convierte cualquier valor numérico a Decimal sin redondear.
    Los float pasan por str() para no arrastrar el error binario.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"Valor numérico inválido: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"Valor numérico inválido: {value!r}")
    raise ValidationError(f"No se puede convertir {type(value).__name__} a Decimal")


def quantize_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def require_scale(value: Number, places: int, field: str) -> Decimal:
    """
    Convierte a Decimal y rechaza valores con más decimales de los que
    admite la columna donde se guardarán.
    """
    value = to_decimal(value)
    if not value.is_finite():
        raise ValidationError(f"Valor numérico inválido en {field}", {field: str(value)})
    if value.normalize().as_tuple().exponent < -places:
        raise ValidationError(
            f"El campo {field} admite a lo más {places} decimales",
            {field: str(value), "max_decimal_places": places}
        )
    return value


def require_quantity(value: Number, field: str = "quantity") -> Decimal:
    return require_scale(value, QUANTITY_PLACES, field)


def require_price(value: Number, field: str = "unit_price") -> Decimal:
    return require_scale(value, MONEY_PLACES, field)


def line_amount(quantity: Number, unit_price: Number) -> Decimal:
    """Importe de una línea: cantidad × precio unitario, sin redondeo"""
    return to_decimal(quantity) * to_decimal(unit_price)


def percentage(amount: Number, pct: Number) -> Decimal:
    """amount × (pct / 100)"""
    return to_decimal(amount) * to_decimal(pct) / Decimal(100)


def sum_money(values: Iterable[Number]) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def compute_tax(subtotal: Number, rate: Optional[Number] = None) -> Decimal:
    """IVA sobre el subtotal (tasa fija configurada, 16% por defecto)"""
    if rate is None:
        rate = settings.IVA_RATE
    return percentage(subtotal, rate)


def totals_with_tax(subtotal: Number, rate: Optional[Number] = None) -> Tuple[Decimal, Decimal, Decimal]:
    """Regresa (subtotal, iva, total)"""
    subtotal = to_decimal(subtotal)
    tax = compute_tax(subtotal, rate)
    return subtotal, tax, subtotal + tax
