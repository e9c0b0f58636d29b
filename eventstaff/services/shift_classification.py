from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ShiftCredit:
    shifts: int = 0
    overtime_hours: float = 0.0

    def scaled(self, headcount: int) -> ShiftCredit:
        return ShiftCredit(shifts=self.shifts * headcount, overtime_hours=self.overtime_hours * headcount)

    def __add__(self, other: ShiftCredit) -> ShiftCredit:
        return ShiftCredit(
            shifts=self.shifts + other.shifts,
            overtime_hours=self.overtime_hours + other.overtime_hours,
        )


NO_CREDIT = ShiftCredit()


def classify(hours: float, shift_hours: float | None) -> ShiftCredit:
    """Express one person's hours as a shift count plus overtime.

    Exactly one shift is credited whenever a nominal shift length exists; anything
    beyond it is overtime, however many shift lengths it spans.
    """
    if shift_hours is None or shift_hours <= 0:
        return ShiftCredit(shifts=0, overtime_hours=hours)
    if hours <= shift_hours:
        return ShiftCredit(shifts=1, overtime_hours=0.0)
    return ShiftCredit(shifts=1, overtime_hours=hours - shift_hours)


def classify_people(person_hours: Iterable[float], shift_hours: float | None) -> ShiftCredit:
    """Classify each distinct per-person value once and scale it by how many people share it."""
    total = NO_CREDIT
    for hours, headcount in sorted(Counter(person_hours).items()):
        total = total + classify(hours, shift_hours).scaled(headcount)
    return total
