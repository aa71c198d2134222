"""Stay pricing shared by quotes and persisted bookings."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from ..core.errors import ValidationError
from . import dates

CENT = Decimal("0.01")


class PricedDay(Protocol):
    """Anything carrying an optional nightly price override."""

    price: Decimal | None


@dataclass(slots=True)
class NightlyRate:
    night: date
    price: Decimal
    overridden: bool = False


@dataclass(slots=True)
class PriceQuote:
    """Per-night breakdown and total for a stay."""

    check_in: date
    check_out: date
    nightly: list[NightlyRate] = field(default_factory=list)
    total: Decimal = Decimal("0.00")

    @property
    def nights(self) -> int:
        return len(self.nightly)


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Convert a stored or user-supplied amount to Decimal without float drift."""

    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def resolve_night_price(override: PricedDay | None, default_price: Decimal) -> Decimal:
    """Return the override's price when it carries one, else the room default."""

    if override is not None and override.price is not None:
        return to_money(override.price)
    return to_money(default_price)


def round_total(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def quote_stay(
    check_in: date,
    check_out: date,
    *,
    default_price: Decimal,
    overrides: Mapping[date, PricedDay],
) -> PriceQuote:
    """Price each night of ``[check_in, check_out)`` and total the stay.

    Rounding is applied once, to the total.
    """

    dates.validate_stay(check_in, check_out)
    quote = PriceQuote(check_in=check_in, check_out=check_out)
    running = Decimal("0")
    for night in dates.iter_nights(check_in, check_out):
        override = overrides.get(night)
        price = resolve_night_price(override, default_price)
        overridden = override is not None and override.price is not None
        quote.nightly.append(NightlyRate(night=night, price=price, overridden=overridden))
        running += price
    quote.total = round_total(running)
    return quote


def total_from_map(check_in: date, check_out: date, availability_map: Mapping[str, PricedDay]) -> Decimal:
    """Total a stay from a reconciled availability map.

    Every night of the stay must be present in the map.
    """

    dates.validate_stay(check_in, check_out)
    running = Decimal("0")
    for night in dates.iter_nights(check_in, check_out):
        entry = availability_map.get(dates.date_key(night))
        if entry is None or entry.price is None:
            raise ValidationError(f"No price available for {dates.date_key(night)}")
        running += to_money(entry.price)
    return round_total(running)
