"""Consolidated Screening List records and their CSV reader."""

from __future__ import annotations

import csv
import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import IntEnum

__all__ = [
    "CSL",
    "EL",
    "SSI",
    "read",
    "unmarshal_ssi",
    "unmarshal_el",
    "expand_field",
    "expand_programs_list",
]

_SSI_SOURCE = "Sectoral Sanctions Identifications List (SSI) - Treasury Department"
_EL_SOURCE = "Entity List (EL) - Bureau of Industry and Security"


class _Column(IntEnum):
    """Column positions in a CSL row (before any leading identifier column)."""

    SOURCE = 0
    ENTITY_NUMBER = 1
    TYPE = 2
    PROGRAMS = 3
    NAME = 4
    TITLE = 5
    ADDRESSES = 6
    FR_NOTICE = 7
    START_DATE = 8
    END_DATE = 9
    STANDARD_ORDER = 10
    LICENSE_REQUIREMENT = 11
    LICENSE_POLICY = 12
    CALL_SIGN = 13
    VESSEL_TYPE = 14
    GROSS_TONNAGE = 15
    GROSS_REGISTERED_TONNAGE = 16
    VESSEL_FLAG = 17
    VESSEL_OWNER = 18
    REMARKS = 19
    SOURCE_LIST_URL = 20
    ALT_NAMES = 21
    CITIZENSHIPS = 22
    DATES_OF_BIRTH = 23
    NATIONALITIES = 24
    PLACES_OF_BIRTH = 25
    SOURCE_INFORMATION_URL = 26
    IDS = 27


@dataclass
class SSI:
    """An entry of the Sectoral Sanctions Identifications List."""

    entity_id: str = ""
    type: str = ""
    programs: list[str] = field(default_factory=list)
    name: str = ""
    addresses: list[str] = field(default_factory=list)
    remarks: list[str] = field(default_factory=list)
    alternate_names: list[str] = field(default_factory=list)
    ids_on_record: list[str] = field(default_factory=list)
    source_list_url: str = ""
    source_info_url: str = ""


@dataclass
class EL:
    """An entry of the Bureau of Industry and Security Entity List."""

    id: str = ""
    name: str = ""
    alternate_names: list[str] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)
    start_date: str = ""
    license_requirement: str = ""
    license_policy: str = ""
    fr_notice: str = ""
    source_list_url: str = ""
    source_info_url: str = ""


@dataclass
class CSL:
    """Records of the Consolidated Screening List, grouped by their source list."""

    ssis: list[SSI] = field(default_factory=list)
    els: list[EL] = field(default_factory=list)


def expand_field(value: str) -> list[str]:
    """Split a ';'-delimited field into its trimmed, non-empty parts."""
    return [part.strip() for part in value.split(";") if part.strip()]


def expand_programs_list(programs: str) -> list[str]:
    """Split a programs field, accepting the malformed ``A] [B`` form too."""
    programs = programs.replace("] [", ";")
    programs = programs.replace("]", "").replace("[", "")
    return expand_field(programs)


def unmarshal_ssi(record: list[str], offset: int) -> SSI:
    """Build an SSI from a CSL row whose columns start at ``offset``."""

    def column(col: _Column) -> str:
        return record[col + offset]

    return SSI(
        entity_id=column(_Column.ENTITY_NUMBER),
        type=column(_Column.TYPE),
        programs=expand_programs_list(column(_Column.PROGRAMS)),
        name=column(_Column.NAME),
        addresses=expand_field(column(_Column.ADDRESSES)),
        remarks=expand_field(column(_Column.REMARKS)),
        alternate_names=expand_field(column(_Column.ALT_NAMES)),
        ids_on_record=expand_field(column(_Column.IDS)),
        source_list_url=column(_Column.SOURCE_LIST_URL),
        source_info_url=column(_Column.SOURCE_INFORMATION_URL),
    )


def unmarshal_el(row: list[str], offset: int) -> EL:
    """Build an EL from a CSL row whose columns start at ``offset``."""

    def column(col: _Column) -> str:
        return row[col + offset]

    return EL(
        id=row[0] if offset == 1 else "",
        name=column(_Column.NAME),
        addresses=expand_field(column(_Column.ADDRESSES)),
        alternate_names=expand_field(column(_Column.ALT_NAMES)),
        start_date=column(_Column.START_DATE),
        license_requirement=column(_Column.LICENSE_REQUIREMENT),
        license_policy=column(_Column.LICENSE_POLICY),
        fr_notice=column(_Column.FR_NOTICE),
        source_list_url=column(_Column.SOURCE_LIST_URL),
        source_info_url=column(_Column.SOURCE_INFORMATION_URL),
    )


def _records(path: str | os.PathLike[str]) -> Iterator[list[str]]:
    """Yield well-formed rows; malformed rows and rows of the wrong width are skipped."""
    with open(path, encoding="utf-8", errors="replace", newline="") as handle:
        reader = csv.reader(handle, strict=True)
        expected: int | None = None
        while True:
            try:
                record = next(reader)
            except StopIteration:
                return
            except csv.Error:
                continue
            if not record:
                continue
            if expected is None:
                expected = len(record)
            elif len(record) != expected:
                continue
            yield record


def read(path: str | os.PathLike[str]) -> CSL:
    """Parse a Consolidated Screening List CSV file."""
    ssis: list[SSI] = []
    els: list[EL] = []
    for record in _records(path):
        # Newer files carry a unique identifier as the first column, so the
        # source name sits in either column 0 or column 1.
        for offset, value in enumerate(record[:2]):
            if value == _SSI_SOURCE:
                ssis.append(unmarshal_ssi(record, offset))
            elif value == _EL_SOURCE:
                els.append(unmarshal_el(record, offset))
    return CSL(ssis=ssis, els=els)