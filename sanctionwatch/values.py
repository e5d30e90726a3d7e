"""Distinct values of SDN fields, for populating user-interface filters."""

from __future__ import annotations

from collections.abc import Iterable

from .ofac import SDN

__all__ = ["Accumulator", "ui_values"]


class Accumulator:
    """Case-insensitive collector keeping the first-seen form of each value."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self._seen: dict[str, str] = {}

    def add(self, value: str) -> None:
        """Add ``value`` unless it is blank, already present, or the limit is reached."""
        if len(self._seen) >= self.limit:
            return
        norm = value.strip().lower()
        if norm and norm not in self._seen:
            self._seen[norm] = value

    def values(self) -> list[str]:
        """Return the collected values, sorted."""
        return sorted(self._seen.values())


def ui_values(key: str, sdns: Iterable[SDN], limit: int) -> list[str]:
    """Return up to ``limit`` distinct values of ``key`` (sdnType or ofacProgram)."""
    key = key.lower()
    acc = Accumulator(limit)
    if key == "sdntype":
        acc.add("entity")
    for sdn in sdns:
        if key == "sdntype":
            acc.add(sdn.sdn_type)
        elif key == "ofacprogram":
            for program in sdn.programs:
                acc.add(program)
        else:
            raise ValueError(f"unknown key: {key}")
    return acc.values()