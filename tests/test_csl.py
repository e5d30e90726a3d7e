import csv

import pytest

from sanctionwatch import csl
from sanctionwatch.csl import CSL, EL, SSI

SSI_SOURCE = "Sectoral Sanctions Identifications List (SSI) - Treasury Department"
EL_SOURCE = "Entity List (EL) - Bureau of Industry and Security"


def _row(source, name, *, entity_id="", width=28, unique_id=None):
    row = [""] * width
    row[0] = source
    row[1] = entity_id
    row[4] = name
    if unique_id is not None:
        row = [unique_id] + row
    return row


def _write(path, rows):
    with open(path, "w", encoding="utf-8", newline="") as handle:
        csv.writer(handle).writerows(rows)
    return path


def test_unmarshal_ssi():
    record = [
        SSI_SOURCE, "17254", "Entity", "UKRAINE-EO13662]; SYRIA", "AK TRANSNEFT OAO",
        "", "57 B. Polyanka ul., Moscow, 119180, RU; 57 Bolshaya. Polyanka, Moscow, 119180, RU",
        "", "", "", "", "", "", "", "", "", "", "", "",
        "For more information on directives, please visit the following link: https://example.com/programs/ukraine#directives.",
        "https://example.com/list",
        "OAO AK TRANSNEFT; AKTSIONERNAYA KOMPANIYA PO TRANSPORTUNEFTI TRANSNEFT OAO; OIL TRANSPORTING JOINT-STOCK COMPANY TRANSNEFT; TRANSNEFT, JSC; TRANSNEFT OJSC; TRANSNEFT",
        "", "", "", "", "https://example.com/info",
        "1027700049486, Registration ID; 00044463, Government Gazette Number; 7706061801, Tax ID No.; [email], Email Address; www.example.com, Website; Subject to Directive 2, Executive Order 13662 Directive Determination -",
    ]
    expected = SSI(
        entity_id="17254",
        type="Entity",
        programs=["UKRAINE-EO13662", "SYRIA"],
        name="AK TRANSNEFT OAO",
        addresses=[
            "57 B. Polyanka ul., Moscow, 119180, RU",
            "57 Bolshaya. Polyanka, Moscow, 119180, RU",
        ],
        remarks=[
            "For more information on directives, please visit the following link: https://example.com/programs/ukraine#directives."
        ],
        alternate_names=[
            "OAO AK TRANSNEFT",
            "AKTSIONERNAYA KOMPANIYA PO TRANSPORTUNEFTI TRANSNEFT OAO",
            "OIL TRANSPORTING JOINT-STOCK COMPANY TRANSNEFT",
            "TRANSNEFT, JSC",
            "TRANSNEFT OJSC",
            "TRANSNEFT",
        ],
        ids_on_record=[
            "1027700049486, Registration ID",
            "00044463, Government Gazette Number",
            "7706061801, Tax ID No.",
            "[email], Email Address",
            "www.example.com, Website",
            "Subject to Directive 2, Executive Order 13662 Directive Determination -",
        ],
        source_list_url="https://example.com/list",
        source_info_url="https://example.com/info",
    )
    assert csl.unmarshal_ssi(record, 0) == expected


def test_unmarshal_el():
    record = [
        EL_SOURCE, "", "", "", "GBNTT", "", "No. 34 Mansour Street, Tehran, IR", "73 FR 54506",
        "2008-09-22", "", "", "For all items subject to the EAR (See §744.11 of the EAR)",
        "Presumption of denial", "", "", "", "", "", "", "", "https://example.com/el",
        "", "", "", "", "", "https://example.com/el", "",
    ]
    expected = EL(
        name="GBNTT",
        alternate_names=[],
        addresses=["No. 34 Mansour Street, Tehran, IR"],
        start_date="2008-09-22",
        license_requirement="For all items subject to the EAR (See §744.11 of the EAR)",
        license_policy="Presumption of denial",
        fr_notice="73 FR 54506",
        source_list_url="https://example.com/el",
        source_info_url="https://example.com/el",
    )
    assert csl.unmarshal_el(record, 0) == expected


def test_issue326_el(tmp_path):
    path = tmp_path / "csl.csv"
    path.write_text(
        '764ecc9bd00a36930e6bfba2e65ffe3f8e96a123,Entity List (EL) - Bureau of Industry and Security,,,,'
        'Huawei Cloud Beijing,,"Beijing, CN",85 FR 51603,2020-08-20,,,'
        '"For all items subject to the EAR, see §§ 736.2(b)(3)(vi), and 744.11 of the EAR, EXCEPT for '
        'technology subject to the EAR that is designated as EAR99, or controlled on the Commerce Control '
        'List for anti-terrorism reasons only, when released to members of a standards organization '
        '(see §772.1) for the purpose of contributing to the revision or development of a standard '
        '(see §772.1).",Presumption of denial.,,,,,,,,https://example.com/el,"",,,,,https://example.com/el,',
        encoding="utf-8",
    )
    result = csl.read(path)
    assert len(result.els) == 1
    el = result.els[0]
    assert el.id == "764ecc9bd00a36930e6bfba2e65ffe3f8e96a123"
    assert el.name == "Huawei Cloud Beijing"
    assert el.alternate_names == []
    assert el.addresses == ["Beijing, CN"]
    assert el.start_date == "2020-08-20"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("", []),
        (
            "1021100731190, Registration ID     ; 00159025, Government Gazette Number; 1102024468, Tax ID No.; ukhta-tr.example.com, Website; [email], Email Address; Subject to Directive 4, Executive Order 13662 Directive Determination -",
            [
                "1021100731190, Registration ID",
                "00159025, Government Gazette Number",
                "1102024468, Tax ID No.",
                "ukhta-tr.example.com, Website",
                "[email], Email Address",
                "Subject to Directive 4, Executive Order 13662 Directive Determination -",
            ],
        ),
        (
            "Yakimanka B. Street, Building 39, Moscow, 119049, RU; 27-29/1, building 6, Smolenskaya-Sennaya st., Moscow, 119121, RU",
            [
                "Yakimanka B. Street, Building 39, Moscow, 119049, RU",
                "27-29/1, building 6, Smolenskaya-Sennaya st., Moscow, 119121, RU",
            ],
        ),
    ],
)
def test_expand_field(value, expected):
    assert csl.expand_field(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("", []),
        ("IFSR] [SDGT", ["IFSR", "SDGT"]),
        ("IFSR; SDGT", ["IFSR", "SDGT"]),
        ("CYBER2; CAATSA - RUSSIA", ["CYBER2", "CAATSA - RUSSIA"]),
    ],
)
def test_expand_programs_list(value, expected):
    assert csl.expand_programs_list(value) == expected


def test_read_old_format(tmp_path):
    path = _write(
        tmp_path / "csl.csv",
        [
            _row("source", "name"),
            _row(SSI_SOURCE, "SSI ONE", entity_id="100"),
            _row(EL_SOURCE, "EL ONE"),
            _row("Some Other List", "OTHER"),
            _row(SSI_SOURCE, "SSI TWO", entity_id="101"),
        ],
    )
    result = csl.read(path)
    assert [s.entity_id for s in result.ssis] == ["100", "101"]
    assert [s.name for s in result.ssis] == ["SSI ONE", "SSI TWO"]
    assert [e.name for e in result.els] == ["EL ONE"]
    assert result.els[0].id == ""


def test_read_unique_ids(tmp_path):
    path = _write(
        tmp_path / "csl.csv",
        [
            _row(SSI_SOURCE, "SSI ONE", entity_id="200", unique_id="abc123"),
            _row(EL_SOURCE, "EL ONE", unique_id="def456"),
        ],
    )
    result = csl.read(path)
    assert len(result.ssis) == 1
    assert result.ssis[0].entity_id == "200"
    assert result.ssis[0].name == "SSI ONE"
    assert len(result.els) == 1
    assert result.els[0].id == "def456"
    assert result.els[0].name == "EL ONE"


def test_read_skips_rows_of_wrong_width(tmp_path):
    path = _write(
        tmp_path / "csl.csv",
        [
            _row("source", "name"),
            _row(EL_SOURCE, "SHORT", width=20),
            _row(SSI_SOURCE, "SSI", entity_id="1"),
            _row(EL_SOURCE, "EL"),
            _row(SSI_SOURCE, "LONG", entity_id="2", width=30),
        ],
    )
    result = csl.read(path)
    assert [s.name for s in result.ssis] == ["SSI"]
    assert [e.name for e in result.els] == ["EL"]


def test_read_empty_file(tmp_path):
    path = tmp_path / "csl.csv"
    path.write_text("", encoding="utf-8")
    assert csl.read(path) == CSL()


def test_read_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        csl.read(tmp_path / "missing.csv")