from __future__ import annotations

from statistics import fmean, pstdev
from typing import List, Optional, Sequence

from hos_research.models import (
    BollingerBands,
    HistoricalBar,
    MACD,
    MovingAverages,
    TechnicalIndicators,
)


def _round(value: float) -> float:
    return round(value, 4)


def sma(closes: Sequence[float], period: int) -> Optional[float]:
    if period <= 0 or len(closes) < period:
        return None
    return fmean(closes[-period:])


def ema_series(values: Sequence[float], period: int) -> List[float]:
    """EMA seeded with the SMA of the first ``period`` values.

    The returned list starts at index ``period - 1`` of the input.
    """
    if period <= 0 or len(values) < period:
        return []
    k = 2.0 / (period + 1)
    current = fmean(values[:period])
    out = [current]
    for value in values[period:]:
        current = value * k + current * (1 - k)
        out.append(current)
    return out


def rsi(closes: Sequence[float], period: int = 14) -> Optional[float]:
    """Wilder's relative strength index over the whole series."""
    if len(closes) <= period:
        return None
    deltas = [b - a for a, b in zip(closes, closes[1:])]
    avg_gain = fmean(max(d, 0.0) for d in deltas[:period])
    avg_loss = fmean(max(-d, 0.0) for d in deltas[:period])
    for delta in deltas[period:]:
        avg_gain = (avg_gain * (period - 1) + max(delta, 0.0)) / period
        avg_loss = (avg_loss * (period - 1) + max(-delta, 0.0)) / period
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> Optional[MACD]:
    slow_ema = ema_series(closes, slow)
    fast_ema = ema_series(closes, fast)
    if not slow_ema:
        return None
    # Align the fast EMA to the slow one before differencing.
    fast_ema = fast_ema[slow - fast:]
    line = [f - s for f, s in zip(fast_ema, slow_ema)]
    signal_line = ema_series(line, signal)
    if not signal_line:
        return None
    value = line[-1]
    sig = signal_line[-1]
    return MACD(value=_round(value), signal=_round(sig), histogram=_round(value - sig))


def bollinger(closes: Sequence[float], period: int = 20, width: float = 2.0) -> Optional[BollingerBands]:
    if len(closes) < period:
        return None
    window = closes[-period:]
    middle = fmean(window)
    spread = pstdev(window) * width
    return BollingerBands(upper=_round(middle + spread), middle=_round(middle), lower=_round(middle - spread))


def compute_indicators(bars: Sequence[HistoricalBar]) -> TechnicalIndicators:
    closes = [bar.close for bar in bars]
    rsi_value = rsi(closes)

    moving_averages = None
    if len(closes) >= 20:
        sma50 = sma(closes, 50)
        sma200 = sma(closes, 200)
        moving_averages = MovingAverages(
            sma20=_round(sma(closes, 20)),
            sma50=_round(sma50) if sma50 is not None else None,
            sma200=_round(sma200) if sma200 is not None else None,
        )

    return TechnicalIndicators(
        rsi=_round(rsi_value) if rsi_value is not None else None,
        macd=macd(closes),
        moving_averages=moving_averages,
        bollinger=bollinger(closes),
    )
