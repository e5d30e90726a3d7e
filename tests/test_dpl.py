import pytest

from sanctionwatch import dpl

HEADER = "\t".join(
    [
        "Name",
        "Street_Address",
        "City",
        "State",
        "Country",
        "Postal_Code",
        "Effective_Date",
        "Expiration_Date",
        "Standard_Order",
        "Last_Update",
        "Action",
        "FR_Citation",
    ]
)

ROW_ONE = "\t".join(
    [
        "AL NASER WINGS AIRLINES",
        "P.O. BOX 28360",
        "DUBAI",
        "",
        "AE",
        "",
        "06/05/2019",
        "12/03/2019",
        "Y",
        "06/14/2019",
        "FR NOTICE ADDED",
        "84 F.R. 27233 6/12/2019",
    ]
)

ROW_TWO = "\t".join(
    [
        "EXAMPLE TRADING CO",
        "1 MAIN ST",
        "SPRINGFIELD",
        "IL",
        "US",
        "62701",
        "01/01/2020",
        "",
        "N",
        "01/02/2020",
        "FR NOTICE ADDED",
        "85 F.R. 1 1/2/2020",
    ]
)


def test_read(tmp_path):
    path = tmp_path / "dpl.txt"
    path.write_text("\n".join([HEADER, ROW_ONE, ROW_TWO]) + "\n", encoding="utf-8")
    records = dpl.read(path)
    assert len(records) == 2
    first = records[0]
    assert first.name == "AL NASER WINGS AIRLINES"
    assert first.street_address == "P.O. BOX 28360"
    assert first.country == "AE"
    assert first.expiration_date == "12/03/2019"
    assert first.fr_citation == "84 F.R. 27233 6/12/2019"
    assert records[1].postal_code == "62701"
    assert records[1].expiration_date == ""


def test_read_skips_only_header(tmp_path):
    path = tmp_path / "dpl.txt"
    path.write_text(HEADER + "\n", encoding="utf-8")
    assert dpl.read(path) == []


def test_read_sdn_file_is_error(tmp_path):
    path = tmp_path / "sdn.csv"
    path.write_text(
        '36,"AEROCARIBBEAN AIRLINES",-0- ,"CUBA",-0- ,-0- ,-0- ,-0- ,-0- ,-0- ,-0- ,-0- \n',
        encoding="utf-8",
    )
    with pytest.raises(ValueError):
        dpl.read(path)


def test_read_inconsistent_fields(tmp_path):
    path = tmp_path / "dpl.txt"
    path.write_text(HEADER + "\n" + "a\tb\tc\n", encoding="utf-8")
    with pytest.raises(ValueError, match="wrong number of fields"):
        dpl.read(path)


def test_read_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        dpl.read(tmp_path / "missing.txt")