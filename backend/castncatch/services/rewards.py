from __future__ import annotations
import math
from typing import Iterable, Sequence
import structlog
from castncatch.records import ScoreRecord

log = structlog.get_logger()

# ---------- reward arithmetic ----------

def _as_number(value: object) -> float:
    """Scores may have been stored as strings by older clients."""
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return math.nan


def high_score(values: Iterable[object]) -> float:
    """Best value across all scores, floored at 1 so the ratio never divides by zero."""
    best = 1.0
    for v in values:
        n = _as_number(v)
        if not math.isnan(n) and n > best:
            best = n
    return best


def reward_ratio(value: object, high: float, **context) -> float:
    """value / high clamped to [0, 1]. NaN and negatives count as 0."""
    ratio = _as_number(value) / high
    if math.isnan(ratio) or ratio < 0:
        return 0.0
    if ratio > 1:
        log.error("reward_ratio_clamped", ratio=ratio, value=value, high_score=high, **context)
        return 1.0
    return ratio


def compute_reward(ratio: float, max_reward: int) -> int:
    # half-up, not Python's banker's rounding
    return int(math.floor(ratio * max_reward + 0.5))

# ---------- ranking ----------

def rank_scores(scores: Sequence[ScoreRecord], goal: str) -> list[ScoreRecord]:
    """Best first; ties go to whoever submitted earlier."""
    return sorted(scores, key=lambda s: (-s.metric(goal), s.date))


def rank_string(rank: int) -> str:
    if 10 <= rank % 100 <= 13:
        return f"{rank}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(rank % 10, "th")
    return f"{rank}{suffix}"
