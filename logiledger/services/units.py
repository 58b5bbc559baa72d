"""
Unit Conversion - normalize quantities to tons

Tons are the canonical unit for every ledger calculation. Kilograms divide by
1000; containers multiply by the order's tons-per-container. Conversion never
rounds; only the display helpers at the bottom do.
"""
import enum
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Optional, Union

from logiledger.core import settings
from logiledger.core.exceptions import InvalidUnit, InvalidQuantity

Number = Union[Decimal, int, str]


class QuantityUnit(str, enum.Enum):
    TON = "t"
    KILOGRAM = "kg"
    CONTAINER = "container"


# Input aliases, including the Russian labels used on order forms
UNIT_ALIASES = {
    "t": QuantityUnit.TON,
    "т": QuantityUnit.TON,
    "ton": QuantityUnit.TON,
    "tons": QuantityUnit.TON,
    "mt": QuantityUnit.TON,
    "kg": QuantityUnit.KILOGRAM,
    "кг": QuantityUnit.KILOGRAM,
    "kilogram": QuantityUnit.KILOGRAM,
    "kilograms": QuantityUnit.KILOGRAM,
    "container": QuantityUnit.CONTAINER,
    "containers": QuantityUnit.CONTAINER,
    "cont": QuantityUnit.CONTAINER,
    "контейнер": QuantityUnit.CONTAINER,
}

KG_PER_TON = Decimal("1000")


def to_decimal(value: Number, field: str = "quantity") -> Decimal:
    """Coerce user input to Decimal without passing through float"""
    if isinstance(value, Decimal):
        result = value
    else:
        if isinstance(value, float):
            value = repr(value)
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidQuantity(f"Invalid {field}: {value!r}")
    # NaN and Infinity parse, but are not quantities
    if not result.is_finite():
        raise InvalidQuantity(f"Invalid {field}: {value!r}")
    return result


def normalize_unit(unit: Union[str, QuantityUnit]) -> QuantityUnit:
    if isinstance(unit, QuantityUnit):
        return unit
    key = str(unit or "").strip().lower()
    try:
        return UNIT_ALIASES[key]
    except KeyError:
        raise InvalidUnit(f"Unknown unit: {unit!r}", details={"unit": unit})


def to_canonical(
    quantity: Number,
    unit: Union[str, QuantityUnit],
    container_tonnage: Optional[Number] = None,
) -> Decimal:
    """Convert a quantity in any supported unit to tons"""
    qty = to_decimal(quantity)
    if qty < 0:
        raise InvalidQuantity(f"Quantity must not be negative: {qty}", details={"quantity": str(qty)})

    normalized = normalize_unit(unit)
    if normalized is QuantityUnit.KILOGRAM:
        return qty / KG_PER_TON
    if normalized is QuantityUnit.CONTAINER:
        tonnage = to_decimal(container_tonnage, "container tonnage") if container_tonnage is not None \
            else settings.DEFAULT_CONTAINER_TONNAGE
        if tonnage <= 0:
            raise InvalidQuantity(f"Container tonnage must be positive: {tonnage}")
        return qty * tonnage
    return qty


def containers_for(quantity_in_tons: Number, container_tonnage: Optional[Number] = None) -> Decimal:
    """How many containers a tonnage fills. Display only."""
    tonnage = to_decimal(container_tonnage, "container tonnage") if container_tonnage is not None \
        else settings.DEFAULT_CONTAINER_TONNAGE
    if tonnage <= 0:
        raise InvalidQuantity(f"Container tonnage must be positive: {tonnage}")
    return to_decimal(quantity_in_tons) / tonnage


# ===================== DISPLAY =====================

def format_number(value: Number) -> str:
    """Truncate to 3 decimals and drop trailing zeros: 1.23456 -> '1.234', 2.000 -> '2'"""
    truncated = to_decimal(value).quantize(Decimal("0.001"), rounding=ROUND_DOWN)
    text = format(truncated, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_quantity(
    quantity: Number,
    unit: Union[str, QuantityUnit],
    quantity_in_tons: Number,
) -> str:
    normalized = normalize_unit(unit)
    tons = format_number(quantity_in_tons)
    if normalized is QuantityUnit.CONTAINER:
        return f"{format_number(quantity)} cont. ({tons} t)"
    if normalized is QuantityUnit.KILOGRAM:
        return f"{format_number(quantity)} kg ({tons} t)"
    return f"{tons} t"


def format_currency(value: Number, currency: str = "USD") -> str:
    amount = to_decimal(value, "amount")
    if currency == "UZS":
        # Whole sums, space as thousands separator
        whole = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return f"{whole:,.0f}".replace(",", " ") + " UZS"
    cents = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"${cents:,.2f}"
