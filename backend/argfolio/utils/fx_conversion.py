# backend/argfolio/utils/fx_conversion.py
"""
FX Quote Conversion Utilities

This module fixes the exchange rate convention used across the engine.
Every quote is expressed as "1 hard currency (USD) = X local currency (ARS)"
and carries both sides of the market:

1. BID ("Compra"):
   What you RECEIVE when selling hard currency.
   Usage: hard → local conversion MULTIPLIES by bid.

2. ASK ("Venta"):
   What you PAY when buying hard currency.
   Usage: local → hard conversion DIVIDES by ask.

3. MID:
   (bid + ask) / 2. Only used in MARKET mode.

Valuation modes:
    LIQUIDATION (default): always the realizable side (ask when buying USD,
                           bid when selling USD). Never mid.
    MARKET:                mid in both directions.

A caller picks one mode per evaluation and passes it to every conversion.
The two modes are never mixed inside one computation.

Example (LIQUIDATION, quote bid=1000 ask=1050):
    to_hard_from_local(105000, quote) → 100 USD   (105000 / 1050)
    to_local_from_hard(100, quote)    → 100000 ARS (100 × 1000)

Round-tripping loses exactly the spread; with bid == ask it is lossless.
"""

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
TWO = Decimal("2")


class FxKey(str, enum.Enum):
    """Named FX benchmarks."""

    MEP = "mep"  # Equity-implied (benchmark A)
    OFICIAL = "oficial"  # Official (benchmark B)
    CRIPTO = "cripto"  # Crypto-implied (benchmark C)


FX_LABELS: dict[FxKey, str] = {
    FxKey.MEP: "Dólar MEP",
    FxKey.OFICIAL: "Dólar Oficial",
    FxKey.CRIPTO: "Dólar Cripto",
}


class ValuationMode(str, enum.Enum):
    LIQUIDATION = "liquidation"
    MARKET = "market"


class ConversionDirection(str, enum.Enum):
    LOCAL_TO_HARD = "local-to-hard"
    HARD_TO_LOCAL = "hard-to-local"


@dataclass(frozen=True)
class FxQuote:
    """
    Normalized two-sided exchange rate.

    Attributes:
        bid: Local currency received per unit of hard currency sold
        ask: Local currency paid per unit of hard currency bought
        mid: Midpoint of bid and ask
    """

    bid: Decimal = ZERO
    ask: Decimal = ZERO
    mid: Decimal = ZERO

    @property
    def is_empty(self) -> bool:
        return self.bid == ZERO and self.ask == ZERO


@dataclass(frozen=True)
class FxQuotes:
    """One quote per FX benchmark."""

    mep: FxQuote = FxQuote()
    oficial: FxQuote = FxQuote()
    cripto: FxQuote = FxQuote()

    def get(self, key: FxKey) -> FxQuote:
        return getattr(self, FxKey(key).value)


# =============================================================================
# NUMERIC COERCION
# =============================================================================

def to_decimal(value: Any) -> Decimal | None:
    """
    Coerce a number to a finite Decimal.

    Returns None for None, booleans, unparseable strings, NaN and Infinity.
    Floats go through str() so 0.1 becomes Decimal("0.1").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


# =============================================================================
# QUOTE CONSTRUCTION
# =============================================================================

def fx_mid(bid: Any, ask: Any) -> Decimal:
    """
    Midpoint of bid and ask, falling back to whichever side is nonzero.

    Returns 0 when both sides are missing or zero.
    """
    b = to_decimal(bid) or ZERO
    a = to_decimal(ask) or ZERO

    if b == ZERO and a == ZERO:
        return ZERO
    if b == ZERO:
        return a
    if a == ZERO:
        return b
    return (b + a) / TWO


def _pair_side(pair: Any, name: str) -> Decimal | None:
    if isinstance(pair, Mapping):
        return to_decimal(pair.get(name))
    return to_decimal(getattr(pair, name, None))


def build_quote(pair: Any) -> FxQuote:
    """
    Build an FxQuote from a raw buy/sell rate pair.

    The pair may be a mapping or an object exposing ``buy``/``sell``.
    A missing side is filled from the other one:
        bid = buy ?? sell ?? 0
        ask = sell ?? buy ?? 0

    Args:
        pair: Raw rate pair, or None

    Returns:
        FxQuote; FxQuote(0, 0, 0) when the pair is missing
    """
    if pair is None:
        return FxQuote()

    buy = _pair_side(pair, "buy")
    sell = _pair_side(pair, "sell")

    bid = buy if buy is not None else (sell if sell is not None else ZERO)
    ask = sell if sell is not None else (buy if buy is not None else ZERO)

    return FxQuote(bid=bid, ask=ask, mid=fx_mid(bid, ask))


def build_quotes(pairs: Mapping[str, Any] | None) -> FxQuotes:
    """Build the full benchmark set from raw pairs keyed by benchmark name."""
    pairs = pairs or {}
    return FxQuotes(
        mep=build_quote(pairs.get(FxKey.MEP.value)),
        oficial=build_quote(pairs.get(FxKey.OFICIAL.value)),
        cripto=build_quote(pairs.get(FxKey.CRIPTO.value)),
    )


# =============================================================================
# CONVERSIONS
# =============================================================================

def effective_rate(
        quote: FxQuote,
        direction: ConversionDirection,
        mode: ValuationMode = ValuationMode.LIQUIDATION,
) -> Decimal:
    """
    Rate actually applied for a conversion direction.

    LIQUIDATION:
        local → hard: ask (buying hard currency)
        hard → local: bid (selling hard currency)
    MARKET:
        mid in both directions
    """
    if ValuationMode(mode) is ValuationMode.MARKET:
        return quote.mid
    if ConversionDirection(direction) is ConversionDirection.LOCAL_TO_HARD:
        return quote.ask
    return quote.bid


def rate_label(
        direction: ConversionDirection,
        mode: ValuationMode = ValuationMode.LIQUIDATION,
) -> str:
    """Display label for the side used by effective_rate()."""
    if ValuationMode(mode) is ValuationMode.MARKET:
        return "Mid"
    if ConversionDirection(direction) is ConversionDirection.LOCAL_TO_HARD:
        return "Venta"
    return "Compra"


def to_hard_from_local(
        amount: Any,
        quote: FxQuote,
        mode: ValuationMode = ValuationMode.LIQUIDATION,
) -> Decimal | None:
    """
    Convert local currency to hard currency.

    hard = local ÷ rate, where rate is the ask (or mid in MARKET mode).

    Returns:
        Converted amount, or None if the amount is missing/non-finite or
        the rate is zero/non-finite
    """
    value = to_decimal(amount)
    if value is None:
        return None

    rate = to_decimal(effective_rate(quote, ConversionDirection.LOCAL_TO_HARD, mode))
    if rate is None or rate == ZERO:
        return None

    return value / rate


def to_local_from_hard(
        amount: Any,
        quote: FxQuote,
        mode: ValuationMode = ValuationMode.LIQUIDATION,
) -> Decimal | None:
    """
    Convert hard currency to local currency.

    local = hard × rate, where rate is the bid (or mid in MARKET mode).

    Returns:
        Converted amount, or None if the amount is missing/non-finite or
        the rate is zero/non-finite
    """
    value = to_decimal(amount)
    if value is None:
        return None

    rate = to_decimal(effective_rate(quote, ConversionDirection.HARD_TO_LOCAL, mode))
    if rate is None or rate == ZERO:
        return None

    return value * rate


def trade_snapshot_rate(side: str, quote: FxQuote) -> tuple[Decimal, str]:
    """
    FX rate to stamp on a new trade.

    Buying an asset means converting local into hard currency, so the
    seller's price (ask) applies; selling gets the buyer's price (bid).
    Either side falls back to mid when missing.

    Args:
        side: "BUY", "SELL" or anything else
        quote: Benchmark quote at trade time

    Returns:
        Tuple of (rate, side_label) where side_label is "sell", "buy" or "mid"
    """
    side = side.upper()
    if side == "BUY":
        return (quote.ask or quote.mid), "sell"
    if side == "SELL":
        return (quote.bid or quote.mid), "buy"
    return quote.mid, "mid"
