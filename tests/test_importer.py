import pytest

from leads import (
    FileRejectedError,
    ImportConfig,
    InvalidRow,
    LeadImporter,
    ReferenceData,
    ValidRow,
    map_headers,
    parse_row,
    parse_score,
)

SCENARIO_CSV = (
    "Vendor Name,Country,Email,Lead Score\n"
    "Acme Inc,India,acme@example.com,85\n"
    ",Germany,bad-email,999\n"
    "Beta LLC,Narnia,beta@example.co,oops\n"
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("150", 100),
        ("0", 1),
        ("-20", 1),
        ("abc", 50),
        (None, 50),
        ("", 50),
        (" 42 ", 42),
        ("85.9", 85),
        ("70 points", 70),
        # Full-width digits are not ASCII digits
        ("\uff18\uff15", 50),
    ],
)
def test_parse_score(value, expected):
    assert parse_score(value) == expected


def test_parse_score_uses_configured_default():
    assert parse_score("n/a", default=30) == 30


def test_end_to_end_scenario(make_store):
    references = ReferenceData.from_records(
        countries=[{"id": "c1", "name": "India", "code": "IN"}],
        statuses=[{"id": "s1", "name": "New"}],
        owners=[],
    )
    store = make_store()
    session = LeadImporter(references).parse_text(SCENARIO_CSV, file_name="scenario.csv")

    assert len(session.results) == 3
    acme, missing, beta = session.results

    assert isinstance(acme, ValidRow)
    assert acme.row.country_id == "c1"
    assert acme.row.lead_score == 85
    assert acme.row.status_id == "s1"

    assert isinstance(missing, InvalidRow)
    assert missing.reason == "Company name is required"
    assert missing.row.error == "Company name is required"
    assert missing.row.company_name == "(Unknown)"
    assert missing.row.country_id is None
    assert missing.row.email is None

    assert isinstance(beta, ValidRow)
    assert beta.row.country_id is None
    assert beta.row.lead_score == 50

    assert [p["company_name"] for p in session.payloads("me")] == ["Acme Inc", "Beta LLC"]

    result = session.submit(store, default_owner_id="me")

    assert result.inserted == 2
    assert result.skipped == 1
    assert [lead["company_name"] for lead in store.committed] == ["Acme Inc", "Beta LLC"]
    assert all(lead["owner_id"] == "me" for lead in store.committed)


def test_invalid_email_is_flagged_and_discarded_but_row_kept(references):
    headers = map_headers(["Company", "Email", "Phone"])

    result = parse_row(headers, ["Acme", "not an email@x.com", "12345"], references)

    assert isinstance(result, InvalidRow)
    assert result.reason == "Invalid email"
    assert result.row.email is None
    assert result.row.phone == "12345"
    assert result.row.company_name == "Acme"


def test_placeholder_email_is_rejected(references):
    headers = map_headers(["Company", "Contact Mail"])

    result = parse_row(headers, ["Acme", "???@acme.com"], references)

    assert isinstance(result, InvalidRow)
    assert result.reason == "Invalid email (placeholder)"


def test_company_error_takes_priority_over_email_error(references):
    headers = map_headers(["Company", "Email"])

    result = parse_row(headers, ["", "broken"], references)

    assert result.reason == "Company name is required"
    assert result.row.email is None


def test_notes_are_composed_from_followup_and_call_columns(references):
    headers = map_headers(["Vendor Name", "Followup Stage", "Call Booked", "Notes"])

    full = parse_row(headers, ["Acme", "Second email", "Yes", "Prefers mornings"], references)
    only_call = parse_row(headers, ["Acme", "", "No", ""], references)
    nothing = parse_row(headers, ["Acme", "", "", ""], references)

    assert full.row.notes == "Follow-up: Second email\nCall: Yes\nPrefers mornings"
    assert only_call.row.notes == "Call: No"
    assert nothing.row.notes is None


def test_short_rows_and_unknown_columns_are_tolerated(references):
    headers = map_headers(["Company", "Favourite Colour", "Website", "Phone"])

    result = parse_row(headers, ["Acme", "teal"], references)

    assert isinstance(result, ValidRow)
    assert result.row.website is None
    assert result.row.phone is None


def test_duplicate_columns_only_first_is_read(references):
    headers = map_headers(["Company", "Vendor Name"])

    result = parse_row(headers, ["First Co", "Second Co"], references)

    assert result.row.company_name == "First Co"


def test_status_defaults_to_first_in_sort_order():
    references = ReferenceData.from_records(
        countries=[],
        statuses=[
            {"id": "s2", "name": "Won", "sort_order": 1},
            {"id": "s1", "name": "New", "sort_order": 0},
        ],
        owners=[],
    )
    session = LeadImporter(references).parse_text(
        "Company,Status\nAcme,Mystery\nBeta,\nGamma,won\n"
    )

    assert [row.status_id for row in session.rows] == ["s1", "s1", "s2"]


def test_references_resolved_case_insensitively(references):
    headers = map_headers(["Company", "Country", "Lead Owner"])

    by_code = parse_row(headers, ["Acme", "de", "ravi kumar"], references)
    by_name = parse_row(headers, ["Beta", "united states", "Ravi  Kumar"], references)

    assert by_code.row.country_id == "c2"
    assert by_code.row.owner_id == "u1"
    assert by_name.row.country_id == "c3"
    # No fuzzy matching on owner names
    assert by_name.row.owner_id is None


def test_preview_limits_rows_and_renders_labels(references):
    lines = ["Company,Country,Status,Owner,Email"]
    lines.append("Acme,India,Contacted,Anna Schmidt,acme@example.com")
    lines.extend(f"Vendor {i},Atlantis,,," for i in range(40))
    config = ImportConfig(preview_limit=30)

    session = LeadImporter(references, config=config).parse_text("\n".join(lines))
    preview = session.preview()

    assert len(session.results) == 41
    assert len(preview) == 30
    assert list(preview.columns) == ["Company", "Country", "Status", "Owner", "Email", "Score", "Result"]
    first = preview.iloc[0]
    assert first["Country"] == "India"
    assert first["Status"] == "Contacted"
    assert first["Owner"] == "Anna Schmidt"
    assert first["Result"] == "OK"
    second = preview.iloc[1]
    assert second["Country"] == "—"
    assert second["Status"] == "New"
    assert second["Owner"] == "—"
    assert second["Email"] == "—"
    assert session.preview_footer() == "Showing first 30 rows. All 41 rows will be processed on import."


def test_preview_footer_absent_for_small_files(references):
    session = LeadImporter(references).parse_text("Company\nAcme\n")

    assert session.preview_footer() is None
    assert session.summary() == "upload.csv: 1 row(s), 1 valid, 0 with errors"


def test_header_only_file_is_rejected(references):
    with pytest.raises(FileRejectedError):
        LeadImporter(references).parse_text("Company,Email\n\n")


def test_empty_file_is_rejected(references):
    with pytest.raises(FileRejectedError):
        LeadImporter(references).parse_text("  \n")


@pytest.mark.parametrize(
    "file_name, content_type",
    [
        ("leads.csv", None),
        ("LEADS.CSV", None),
        ("export", "text/csv"),
        ("export.bin", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    ],
)
def test_check_file_accepts_csv_like_files(references, file_name, content_type):
    LeadImporter(references).check_file(file_name, content_type)


def test_check_file_rejects_other_files(references):
    with pytest.raises(FileRejectedError):
        LeadImporter(references).check_file("leads.pdf", "application/pdf")


def test_import_file_reads_utf8_with_bom(references, tmp_path):
    path = tmp_path / "leads.csv"
    path.write_text("\ufeffVendor Name,Country\nMüller GmbH,Germany\n", encoding="utf-8")

    session = LeadImporter(references).import_file(path)

    assert session.file_name == "leads.csv"
    assert session.rows[0].company_name == "Müller GmbH"
    assert session.rows[0].country_id == "c2"


def test_import_file_missing(references, tmp_path):
    with pytest.raises(FileRejectedError):
        LeadImporter(references).import_file(tmp_path / "missing.csv")


def test_from_store_loads_reference_tables(store):
    importer = LeadImporter.from_store(store)

    assert importer.references.default_status_id == "s1"
    assert len(importer.references.owners) == 3


def test_sample_template_imports_cleanly(references):
    from pathlib import Path

    import leads

    sample = Path(leads.__file__).parent / "leads-import-sample.csv"

    session = LeadImporter(references).import_file(sample)

    assert len(session.results) == 3
    assert session.invalid_rows == []
    assert session.ignored_columns == []
    blue_harbor = session.rows[2]
    assert blue_harbor.company_name == "Blue Harbor Packaging, LLC"
    assert blue_harbor.lead_score == 50
    assert blue_harbor.status_id == "s1"
    assert session.rows[1].country_id == "c2"
    assert session.rows[1].notes == "Call: Yes, 12 March\nWarehouse partner, prefers email"


def test_import_config_from_env(monkeypatch):
    monkeypatch.setenv("LEAD_IMPORT_BATCH_SIZE", "10")
    monkeypatch.delenv("LEAD_IMPORT_PREVIEW_LIMIT", raising=False)

    config = ImportConfig.from_env()

    assert config.batch_size == 10
    assert config.preview_limit == 30
    assert config.default_score == 50


def test_import_config_rejects_non_positive_batch_size():
    with pytest.raises(ValueError):
        ImportConfig(batch_size=0)


def test_submit_refuses_when_no_rows_are_valid(references, make_store):
    store = make_store()
    session = LeadImporter(references).parse_text("Company,Email\n,a@b.co\nAcme,oops\n")

    with pytest.raises(FileRejectedError, match="No valid rows"):
        session.submit(store)

    assert store.insert_calls == []


@pytest.mark.parametrize("default_score", [0, 101])
def test_import_config_rejects_out_of_range_default_score(default_score):
    with pytest.raises(ValueError, match="default_score"):
        ImportConfig(default_score=default_score)


def test_import_config_from_env_rejects_out_of_range_default_score(monkeypatch):
    monkeypatch.setenv("LEAD_IMPORT_DEFAULT_SCORE", "500")

    with pytest.raises(ValueError, match="default_score"):
        ImportConfig.from_env()
