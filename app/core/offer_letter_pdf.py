"""
Module: core.offer_letter_pdf

Purpose:
    Render provisional admission offer letters to A4 PDF files with ReportLab.
    The renderer only knows about plain data (OfferLetterData); looking up the
    applicant, programme, signature and intake settings is done by the caller.

Key Functions:
    - generate_offer_letter(): write the PDF and return its file name and paths
    - render_body(): fill the letter body template placeholders
    - resolve_letter_path(): map a stored file name back to the file on disk

Dependencies:
    - reportlab: PDF generation
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from app.core.config import settings

logger = logging.getLogger(__name__)

MARGIN_PT = 50
BODY_FONT = "Times-Roman"
BOLD_FONT = "Times-Bold"
BODY_SIZE = 12
LINE_HEIGHT = 16

DEFAULT_BODY_TEMPLATE = """\
Following your application, we are pleased to offer you a place on the {{programmeName}} \
programme commencing in {{yearOfCommencement}}. The programme runs for {{programmeDuration}} \
from {{programmeStartDate}} to {{programmeEndDate}}.

Your student number is {{studentNumber}}. Please quote it in all correspondence and payments.

The programme fee is {{programmeFee}}. A down payment of {{downPayment}} is due by \
{{downPaymentDueDate}} and the balance of fees by {{totalFeesDueDate}}.

Registration opens on {{registrationStartDate}} and closes on {{registrationEndDate}}. \
Orientation runs from {{orientationStartDate}} to {{orientationEndDate}} at {{orientationTime}}.

The programme will only run if the minimum number of applicants is reached by \
{{minApplicantsByDate}}. This offer is valid until {{offerValidUntilDate}}."""

MoneyLike = Union[Decimal, float, int, str, None]
DateLike = Union[date, datetime, str, None]

_PLACEHOLDER_RE = re.compile(r"{{\s*(\w+)\s*}}")
_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class OfferLetterData:
    reference_number: str
    student_number: str
    verification_code: str
    title: Optional[str] = None
    first_names: Optional[str] = None
    surname: Optional[str] = None
    programme_name: Optional[str] = None
    programme_duration: Optional[str] = None
    programme_start_date: DateLike = None
    programme_end_date: DateLike = None
    programme_fee: MoneyLike = None
    down_payment: MoneyLike = None
    down_payment_due_date: DateLike = None
    total_fees_due_date: DateLike = None
    registration_start_date: DateLike = None
    registration_end_date: DateLike = None
    orientation_start_date: DateLike = None
    orientation_end_date: DateLike = None
    orientation_time: Optional[str] = None
    min_applicants_by_date: DateLike = None
    offer_valid_until_date: DateLike = None
    year_of_commencement: Optional[str] = None
    satellite_campus: Optional[str] = None
    postal_address: Optional[str] = None
    residential_address: Optional[str] = None
    signature_name: Optional[str] = None
    signature_title: Optional[str] = None
    signature_file_path: Optional[str] = None
    logo_file_path: Optional[str] = None

    @property
    def full_name(self) -> str:
        parts = [self.title, self.first_names, self.surname]
        return " ".join(p.strip() for p in parts if p and p.strip())


@dataclass(frozen=True)
class GeneratedLetter:
    file_name: str
    disk_path: Path
    public_path: str


def fmt_money(value: MoneyLike) -> str:
    if value is None or value == "":
        return "N/A"
    try:
        return f"{Decimal(str(value)):.2f}"
    except InvalidOperation:
        return str(value)


def fmt_date(value: DateLike, default: str = "TBA") -> str:
    if value is None or value == "":
        return default
    if isinstance(value, (date, datetime)):
        return value.strftime("%d %B %Y")
    return str(value)


def render_body(template: str, data: OfferLetterData) -> str:
    """
    Replace {{placeholder}} tokens in the body template. Unknown placeholders are left as-is.
    """
    year = data.year_of_commencement or str(datetime.now().year)
    values = {
        "fullName": data.full_name or "Applicant",
        "programmeName": data.programme_name or "the programme",
        "programmeDuration": data.programme_duration or "",
        "programmeStartDate": fmt_date(data.programme_start_date),
        "programmeEndDate": fmt_date(data.programme_end_date),
        "programmeFee": fmt_money(data.programme_fee),
        "downPayment": fmt_money(data.down_payment),
        "downPaymentDueDate": fmt_date(data.down_payment_due_date),
        "totalFeesDueDate": fmt_date(data.total_fees_due_date),
        "registrationStartDate": fmt_date(data.registration_start_date),
        "registrationEndDate": fmt_date(data.registration_end_date),
        "orientationStartDate": fmt_date(data.orientation_start_date),
        "orientationEndDate": fmt_date(data.orientation_end_date),
        "orientationTime": data.orientation_time or "TBA",
        "minApplicantsByDate": fmt_date(data.min_applicants_by_date),
        "offerValidUntilDate": fmt_date(data.offer_valid_until_date),
        "yearOfCommencement": year,
        "studentNumber": data.student_number,
        "referenceNumber": data.reference_number,
        "satelliteCampus": data.satellite_campus or "",
    }

    def _sub(match: re.Match) -> str:
        key = match.group(1)
        return values.get(key, match.group(0))

    return _PLACEHOLDER_RE.sub(_sub, template)


def build_file_name(reference_number: str, student_number: str, verification_code: str) -> str:
    """<reference>-<student number>-<first 8 chars of the code>.pdf; each regeneration gets its own file."""
    stem = f"{reference_number}-{student_number}-{verification_code[:8]}"
    return _UNSAFE_FILENAME_RE.sub("-", stem) + ".pdf"


def resolve_letter_path(file_name: str) -> Path:
    return Path(settings.offer_letter_dir) / Path(file_name).name


def _load_template() -> str:
    path = Path(settings.offer_letter_template_path)
    if path.is_file():
        return path.read_text(encoding="utf-8")
    return DEFAULT_BODY_TEMPLATE


class _LetterWriter:
    """Top-down text cursor over a ReportLab canvas with automatic page breaks."""

    def __init__(self, c: canvas.Canvas) -> None:
        self.c = c
        self.width, self.height = A4
        self.y = self.height - MARGIN_PT

    @property
    def text_width(self) -> float:
        return self.width - 2 * MARGIN_PT

    def _ensure_space(self, needed: float) -> None:
        if self.y - needed < MARGIN_PT:
            self.c.showPage()
            self.y = self.height - MARGIN_PT

    def line(self, text: str, font: str = BODY_FONT, size: int = BODY_SIZE, align: str = "left") -> None:
        self._ensure_space(LINE_HEIGHT)
        self.c.setFont(font, size)
        if align == "right":
            self.c.drawRightString(self.width - MARGIN_PT, self.y, text)
        else:
            self.c.drawString(MARGIN_PT, self.y, text)
        self.y -= LINE_HEIGHT if size >= BODY_SIZE else LINE_HEIGHT - 3

    def paragraph(self, text: str, font: str = BODY_FONT, size: int = BODY_SIZE) -> None:
        for raw_line in text.splitlines() or [""]:
            if not raw_line.strip():
                self.gap(0.5)
                continue
            for wrapped in simpleSplit(raw_line, font, size, self.text_width):
                self.line(wrapped, font=font, size=size)

    def gap(self, lines: float = 1.0) -> None:
        self.y -= LINE_HEIGHT * lines

    def image(self, path: str, width: float, x: Optional[float] = None, top: Optional[float] = None) -> None:
        reader = ImageReader(path)
        img_w, img_h = reader.getSize()
        height = width * img_h / img_w
        if top is None:
            self._ensure_space(height)
            top = self.y
            self.y -= height
        self.c.drawImage(reader, x if x is not None else MARGIN_PT, top - height, width=width, height=height, mask="auto")


def generate_offer_letter(data: OfferLetterData, output_dir: Optional[Path] = None) -> GeneratedLetter:
    """
    Render an offer letter PDF.

    Args:
        data: Applicant, programme and intake values printed on the letter
        output_dir: Target directory (default: OFFER_LETTER_DIR)

    Returns:
        GeneratedLetter with the file name, the path on disk and the public path

    Raises:
        OSError: If the directory or the file cannot be written
    """
    target_dir = output_dir or Path(settings.offer_letter_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    file_name = build_file_name(data.reference_number, data.student_number, data.verification_code)
    disk_path = target_dir / file_name
    public_path = f"{settings.offer_letter_public_prefix.rstrip('/')}/{file_name}"

    full_name = data.full_name or "Applicant"
    programme_name = data.programme_name or "the programme"
    year = data.year_of_commencement or str(datetime.now().year)

    c = canvas.Canvas(str(disk_path), pagesize=A4)
    c.setTitle(f"Offer letter {data.student_number}")
    w = _LetterWriter(c)

    # Header: institution name left, logo top right
    w.line(settings.institution_name.upper(), font=BOLD_FONT, size=16)
    if data.logo_file_path and Path(data.logo_file_path).is_file():
        w.image(data.logo_file_path, width=110, x=w.width - MARGIN_PT - 110, top=w.height - 40)

    w.gap(0.5)
    w.line(datetime.now().strftime("%d %B %Y"), size=11)
    w.line(f"Ref: {data.reference_number}", size=11)
    w.gap()

    w.line(f"Dear {full_name}", font=BODY_FONT)
    if data.postal_address:
        w.paragraph(data.postal_address, size=10)
    w.gap(0.5)
    w.paragraph(
        f"RE: PROVISIONAL ADMISSION INTO THE {programme_name.upper()} ACADEMIC YEAR {year}",
        font=BOLD_FONT,
    )
    w.gap(0.5)
    w.paragraph(render_body(_load_template(), data))

    # Signature block
    w.gap()
    w.line("Yours faithfully", font=BODY_FONT)
    if data.signature_file_path and Path(data.signature_file_path).is_file():
        w.image(data.signature_file_path, width=120)
    w.line(data.signature_name or settings.default_signatory_name, font=BOLD_FONT)
    w.line(data.signature_title or settings.signatory_role, font=BODY_FONT)

    # Acceptance slip
    w.gap()
    w.line("I accept / do not accept this offer:")
    w.gap(0.5)
    w.line("Signature: ________________________________")
    w.gap(0.5)
    w.line("Date: ________________________________")

    # Verification footer on the last page
    c.setFont(BODY_FONT, 8)
    footer = f"Verification code: {data.verification_code}"
    if settings.verification_base_url:
        footer += f"  |  Verify at {settings.verification_base_url}"
    c.drawString(MARGIN_PT, MARGIN_PT / 2, footer)

    c.save()
    logger.info("Rendered offer letter %s for %s", file_name, data.reference_number)
    return GeneratedLetter(file_name=file_name, disk_path=disk_path, public_path=public_path)
