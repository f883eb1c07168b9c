"""Fate dice mechanics: d6 pools judged by a d20.

A character spends one d6 from their daily pool on an action. The d6 face,
shifted by skill, free-form and challenge modifiers, picks a band on the
d20 that decides the outcome.
"""

import random
from typing import Optional

from sleeper.models.enums import Outcome

D6_MIN, D6_MAX = 1, 6
D20_MIN, D20_MAX = 1, 20


class RandomDiceSource:
    """Uniform dice backed by ``random.Random``."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def d6(self) -> int:
        return self.rng.randint(D6_MIN, D6_MAX)

    def d20(self) -> int:
        return self.rng.randint(D20_MIN, D20_MAX)


class ScriptedDiceSource:
    """Dice that return pre-set faces in order. Used by tests and replays."""

    def __init__(self, d6: list[int] = None, d20: list[int] = None):
        self._d6 = list(d6 or [])
        self._d20 = list(d20 or [])

    def d6(self) -> int:
        if not self._d6:
            raise RuntimeError("Scripted d6 faces exhausted")
        return self._d6.pop(0)

    def d20(self) -> int:
        if not self._d20:
            raise RuntimeError("Scripted d20 faces exhausted")
        return self._d20.pop(0)

    def queue_d6(self, *faces: int):
        self._d6.extend(faces)

    def queue_d20(self, *faces: int):
        self._d20.extend(faces)


def roll_d6(count: int = 1, source=None) -> list[int]:
    """Roll one or more d6s."""
    source = source or RandomDiceSource()
    return [source.d6() for _ in range(count)]


def clamp_d6(value: int) -> int:
    """Clamp a modified d6 into [1, 6]."""
    return max(D6_MIN, min(D6_MAX, value))


def modified_d6(
    die_result: int,
    skill_modifier: int = 0,
    skill_applied: bool = False,
    other_modifiers: int = 0,
    difficulty_modifier: int = 0,
) -> int:
    """
    Apply roll modifiers to a pool die.

    Args:
        die_result: Face of the pool die (1-6)
        skill_modifier: Character's skill modifier
        skill_applied: Whether the player invoked their skill
        other_modifiers: Free-form situational modifiers
        difficulty_modifier: Challenge difficulty (-3 to +2), 0 without a challenge

    Returns:
        The modified d6, always in [1, 6]
    """
    total = die_result + other_modifiers + difficulty_modifier
    if skill_applied:
        total += skill_modifier
    return clamp_d6(total)


def calculate_outcome(modified: int, d20: int) -> Outcome:
    """
    Judge a d20 roll against the band picked by the modified d6.

    Rules:
        - 6: always success
        - 5: d20 above 10 succeeds, otherwise neutral
        - 3-4: above 15 succeeds, above 5 is neutral, otherwise failure
        - 1-2: above 10 is neutral, otherwise failure
    """
    if modified >= 6:
        return Outcome.SUCCESS
    if modified == 5:
        return Outcome.SUCCESS if d20 > 10 else Outcome.NEUTRAL
    if modified >= 3:
        if d20 > 15:
            return Outcome.SUCCESS
        if d20 > 5:
            return Outcome.NEUTRAL
        return Outcome.FAILURE
    return Outcome.NEUTRAL if d20 > 10 else Outcome.FAILURE


def is_valid_d6(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and D6_MIN <= value <= D6_MAX


def is_valid_d20(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and D20_MIN <= value <= D20_MAX
