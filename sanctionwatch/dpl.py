"""BIS Denied Persons List records and their reader."""

from __future__ import annotations

import csv
import os
from dataclasses import dataclass

__all__ = ["DPL", "read"]

_FIELD_COUNT = 12


@dataclass
class DPL:
    """A person or organisation on the BIS Denied Persons List."""

    name: str = ""
    street_address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""
    effective_date: str = ""
    expiration_date: str = ""
    standard_order: str = ""
    last_update: str = ""
    action: str = ""
    fr_citation: str = ""


def read(path: str | os.PathLike[str]) -> list[DPL]:
    """Parse a tab-separated Denied Persons List file."""
    with open(path, encoding="utf-8", errors="replace", newline="") as handle:
        try:
            rows = [row for row in csv.reader(handle, delimiter="\t", strict=True) if row]
        except csv.Error as err:
            raise ValueError(f"dpl: {err}") from err

    if rows:
        expected = len(rows[0])
        for line, row in enumerate(rows, start=1):
            if len(row) != expected:
                raise ValueError(f"dpl: record on line {line}: wrong number of fields")
        if expected < _FIELD_COUNT:
            raise ValueError(
                f"dpl: expected {_FIELD_COUNT} fields per record, found {expected}"
            )

    return [
        DPL(*row[:_FIELD_COUNT])
        for row in rows
        if row[1] != "Street_Address"
    ]