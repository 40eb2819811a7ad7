# earnings/progression.py
"""
Progression engine: reward scaling, XP accrual and level transitions.

Pure functions of the account's current numbers; nothing here touches the
database. Level-ups are evaluated one task-completion event at a time.
"""
import math
from typing import NamedTuple

PREMIUM_MULTIPLIER = 1.5
XP_PER_LEVEL = 100
XP_REWARD_DIVISOR = 10
SUCCESS_RATE_CAP = 95
SUCCESS_RATE_OFFSET = 5


class XpUpdate(NamedTuple):
    xp: int
    level: int
    leveled_up: bool


def compute_reward(base_reward: int, is_premium: bool, multiplier: float = PREMIUM_MULTIPLIER) -> int:
    """Premium accounts earn floor(base * 1.5); everyone else earns the base."""
    if is_premium:
        return math.floor(base_reward * multiplier)
    return base_reward


def level_up_threshold(level: int) -> int:
    return level * XP_PER_LEVEL


def accrue_xp(current_xp: int, current_level: int, reward: int) -> XpUpdate:
    """
    Add floor(reward / 10) XP. Reaching the level threshold moves up exactly
    one level and resets XP to 0; the overflow is dropped.
    """
    new_xp = current_xp + math.floor(reward / XP_REWARD_DIVISOR)
    if new_xp >= level_up_threshold(current_level):
        return XpUpdate(xp=0, level=current_level + 1, leveled_up=True)
    return XpUpdate(xp=new_xp, level=current_level, leveled_up=False)


def compute_success_rate(tasks_completed: int) -> int:
    # Display-only curve, approaches but never passes the cap
    if tasks_completed <= 0:
        return 0
    rate = math.floor(tasks_completed / (tasks_completed + SUCCESS_RATE_OFFSET) * 100)
    return min(SUCCESS_RATE_CAP, rate)


def compute_progress_percent(xp: int, xp_needed: int) -> int:
    if xp_needed <= 0:
        return 100
    return min(100, math.floor(xp / xp_needed * 100))
