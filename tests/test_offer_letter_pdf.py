import re
from datetime import date
from decimal import Decimal
from pathlib import Path

from app.core.config import settings
from app.core.offer_letter_pdf import (
    OfferLetterData,
    build_file_name,
    fmt_date,
    fmt_money,
    generate_offer_letter,
    render_body,
    resolve_letter_path,
)


def _letter_data(**overrides) -> OfferLetterData:
    values = dict(
        reference_number="APP-2001",
        student_number="w2026001",
        verification_code="3f2b8c1e-6a0d-4d8e-9b7a-1c2d3e4f5a6b",
        title="Ms",
        first_names="Rudo",
        surname="Moyo",
        programme_name="BSc Honours in Psychology",
        programme_duration="4 years",
        programme_start_date=date(2026, 8, 3),
        programme_fee=Decimal("1200"),
        down_payment=300,
        year_of_commencement="2026",
    )
    values.update(overrides)
    return OfferLetterData(**values)


def test_render_body_fills_placeholders() -> None:
    body = render_body(
        "Dear {{fullName}}, {{ programmeName }} starts {{programmeStartDate}}; fee {{programmeFee}}.",
        _letter_data(),
    )
    assert body == "Dear Ms Rudo Moyo, BSc Honours in Psychology starts 03 August 2026; fee 1200.00."


def test_render_body_keeps_unknown_placeholders_and_defaults_missing_dates() -> None:
    body = render_body("{{registrationStartDate}} {{notAField}}", _letter_data())
    assert body == "TBA {{notAField}}"


def test_formatting_helpers() -> None:
    assert fmt_money(None) == "N/A"
    assert fmt_money("250") == "250.00"
    assert fmt_money("about 250") == "about 250"
    assert fmt_date(None) == "TBA"
    assert fmt_date("next week") == "next week"


def test_build_file_name_is_filesystem_safe() -> None:
    name = build_file_name("APP/2001 x", "w2026001", "3f2b8c1e-6a0d-4d8e")
    assert name == "APP-2001-x-w2026001-3f2b8c1e.pdf"


def test_resolve_letter_path_ignores_directories(letter_dir: Path) -> None:
    assert resolve_letter_path("/uploads/offer-letters/a.pdf") == letter_dir / "a.pdf"
    assert resolve_letter_path("../../etc/passwd") == letter_dir / "passwd"


def test_generate_offer_letter_writes_pdf(letter_dir: Path) -> None:
    letter = generate_offer_letter(_letter_data())

    assert letter.file_name == "APP-2001-w2026001-3f2b8c1e.pdf"
    assert letter.disk_path == letter_dir / letter.file_name
    assert letter.public_path.endswith("/" + letter.file_name)
    assert letter.disk_path.read_bytes().startswith(b"%PDF")


def test_generate_offer_letter_with_sparse_data(tmp_path: Path) -> None:
    sparse = OfferLetterData(reference_number="APP-2002", student_number="w7", verification_code="abcdef0123")
    letter = generate_offer_letter(sparse, output_dir=tmp_path / "out")
    assert letter.disk_path.is_file()


def test_long_body_template_spans_pages(tmp_path: Path, monkeypatch) -> None:
    template = tmp_path / "body.txt"
    template.write_text("\n".join(["{{programmeName}} " * 20] * 120), encoding="utf-8")
    monkeypatch.setattr(settings, "offer_letter_template_path", str(template))

    letter = generate_offer_letter(_letter_data())
    page_counts = [int(n) for n in re.findall(rb"/Count (\d+)", letter.disk_path.read_bytes())]
    assert max(page_counts) >= 2
