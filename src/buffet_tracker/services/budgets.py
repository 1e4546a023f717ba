"""Dining windows and budget progress for a buffet visit."""

import math
from dataclasses import dataclass
from datetime import datetime, time

from buffet_tracker.domain.plates import Totals

URGENT_MINUTES = 30
PAYBACK_STEP = 150
MAX_PAYBACK_SCORE = 10
LUNCH_BUDGET_START_HOUR = 11
LUNCH_BUDGET_END_HOUR = 16


@dataclass(frozen=True)
class DiningWindow:
    """Opening hours of one buffet service."""

    name: str
    start: time
    end: time


LUNCH = DiningWindow("lunch", time(11, 30), time(15, 0))
DINNER = DiningWindow("dinner", time(17, 30), time(21, 30))
WINDOWS = (LUNCH, DINNER)


@dataclass(frozen=True)
class WindowStatus:
    """Where a moment falls relative to the dining windows."""

    window: str | None
    minutes_remaining: int | None
    percent_elapsed: float
    urgent: bool


@dataclass(frozen=True)
class BudgetTargets:
    """Per-visit targets a diner measures against."""

    lunch_price: float = 1380
    dinner_price: float = 1580
    calorie_goal: float = 2500
    liquid_goal: float = 4


@dataclass(frozen=True)
class BudgetProgress:
    """Totals expressed as percentages of the active targets."""

    budget: float
    price_percent: float
    calorie_percent: float
    liquid_percent: float
    payback_score: int


def current_window(now: datetime) -> WindowStatus:
    """Return the active dining window and time left, or an idle status."""
    minutes = now.hour * 60 + now.minute
    for window in WINDOWS:
        start = window.start.hour * 60 + window.start.minute
        end = window.end.hour * 60 + window.end.minute
        if start <= minutes < end:
            remaining = end - minutes
            elapsed = (minutes - start) / (end - start) * 100
            return WindowStatus(
                window=window.name,
                minutes_remaining=remaining,
                percent_elapsed=min(100.0, max(0.0, elapsed)),
                urgent=remaining <= URGENT_MINUTES,
            )
    return WindowStatus(
        window=None, minutes_remaining=None, percent_elapsed=0.0, urgent=False
    )


def budget_for(now: datetime, targets: BudgetTargets) -> float:
    """Return the lunch budget late morning to mid afternoon, else dinner."""
    if LUNCH_BUDGET_START_HOUR <= now.hour < LUNCH_BUDGET_END_HOUR:
        return targets.lunch_price
    return targets.dinner_price


def payback_score(price: float) -> int:
    """Score value eaten on a 0-10 scale, one point per step of price."""
    return min(MAX_PAYBACK_SCORE, math.floor(max(price, 0) / PAYBACK_STEP))


def budget_progress(
    totals: Totals, targets: BudgetTargets, now: datetime
) -> BudgetProgress:
    """Compare totals against the targets active at now."""
    budget = budget_for(now, targets)
    return BudgetProgress(
        budget=budget,
        price_percent=_percent(totals.price, budget),
        calorie_percent=_percent(totals.calories, targets.calorie_goal),
        liquid_percent=_percent(totals.liquid, targets.liquid_goal),
        payback_score=payback_score(totals.price),
    )


def _percent(current: float, target: float) -> float:
    if target <= 0:
        return 0.0
    return current / target * 100
