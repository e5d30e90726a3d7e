"""OFAC Specially Designated Nationals records and their CSV readers."""

from __future__ import annotations

import csv
import os
import re
from collections.abc import Iterator
from dataclasses import dataclass, field

__all__ = [
    "SDN",
    "Address",
    "AlternateIdentity",
    "SDNComments",
    "Results",
    "read",
    "replace_null",
    "clean_programs_list",
    "split_programs",
]


@dataclass
class SDN:
    """A Specially Designated National."""

    entity_id: str = ""
    sdn_name: str = ""
    sdn_type: str = ""
    programs: list[str] = field(default_factory=list)
    title: str = ""
    call_sign: str = ""
    vessel_type: str = ""
    tonnage: str = ""
    gross_registered_tonnage: str = ""
    vessel_flag: str = ""
    vessel_owner: str = ""
    remarks: str = ""


@dataclass
class Address:
    """An address of a Specially Designated National."""

    entity_id: str = ""
    address_id: str = ""
    address: str = ""
    city_state_province_postal_code: str = ""
    country: str = ""
    address_remarks: str = ""


@dataclass
class AlternateIdentity:
    """An alternate identity (aka, fka, nka) of a Specially Designated National."""

    entity_id: str = ""
    alternate_id: str = ""
    alternate_type: str = ""
    alternate_name: str = ""
    alternate_remarks: str = ""


@dataclass
class SDNComments:
    """Extended remarks on a Specially Designated National."""

    entity_id: str = ""
    remarks_extended: str = ""


@dataclass
class Results:
    """Records parsed from one OFAC file; only the matching list is filled."""

    addresses: list[Address] = field(default_factory=list)
    alternate_identities: list[AlternateIdentity] = field(default_factory=list)
    sdns: list[SDN] = field(default_factory=list)
    sdn_comments: list[SDNComments] = field(default_factory=list)


_PROGRAMS_PATTERN = re.compile(r"\] \[|\]|\[")


def replace_null(values: list[str]) -> list[str]:
    """Blank out the OFAC null marker ``-0-`` and trim each field."""
    return [value.replace("-0-", "").strip() for value in values]


def clean_programs_list(value: str) -> str:
    """Normalise a malformed programs list such as ``SDGT] [IFSR`` to ``SDGT; IFSR``."""
    cleaned = _PROGRAMS_PATTERN.sub(
        lambda match: "; " if match.group(0) == "] [" else "", value
    )
    return cleaned.strip()


def split_programs(value: str) -> list[str]:
    """Split a programs field into its individual programs."""
    return clean_programs_list(value).split("; ")


def _open(path: str | os.PathLike[str]):
    return open(path, encoding="utf-8", errors="replace", newline="")


def _records(path: str | os.PathLike[str], width: int) -> Iterator[list[str]]:
    """Yield cleaned rows that have exactly ``width`` fields."""
    with _open(path) as handle:
        for record in csv.reader(handle, strict=False):
            if len(record) == width:
                yield replace_null(record)


def _read_addresses(path: str | os.PathLike[str]) -> Results:
    return Results(addresses=[Address(*record) for record in _records(path, 6)])


def _read_alternate_identities(path: str | os.PathLike[str]) -> Results:
    return Results(
        alternate_identities=[AlternateIdentity(*record) for record in _records(path, 5)]
    )


def _read_sdns(path: str | os.PathLike[str]) -> Results:
    sdns = [
        SDN(
            entity_id=record[0],
            sdn_name=record[1],
            sdn_type=record[2],
            programs=split_programs(record[3]),
            title=record[4],
            call_sign=record[5],
            vessel_type=record[6],
            tonnage=record[7],
            gross_registered_tonnage=record[8],
            vessel_flag=record[9],
            vessel_owner=record[10],
            remarks=record[11],
        )
        for record in _records(path, 12)
    ]
    return Results(sdns=sdns)


def _read_sdn_comments(path: str | os.PathLike[str]) -> Results:
    with _open(path) as handle:
        rows = [row for row in csv.reader(handle, strict=False) if row]
    if rows:
        expected = len(rows[0])
        for line, row in enumerate(rows, start=1):
            if len(row) != expected:
                raise ValueError(f"record on line {line}: wrong number of fields")
    comments = [
        SDNComments(*replace_null(row)) for row in rows if len(row) == 2
    ]
    return Results(sdn_comments=comments)


_READERS = {
    "add.csv": _read_addresses,
    "alt.csv": _read_alternate_identities,
    "sdn.csv": _read_sdns,
    "sdn_comments.csv": _read_sdn_comments,
}


def read(path: str | os.PathLike[str]) -> Results:
    """Parse an OFAC CSV file, chosen by its file name."""
    name = os.path.basename(os.fspath(path))
    reader = _READERS.get(name)
    if reader is None:
        raise ValueError(f"unknown file {os.fspath(path)}")
    try:
        return reader(path)
    except (ValueError, csv.Error) as err:
        raise ValueError(f"{name}: {err}") from err