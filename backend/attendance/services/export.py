"""Attendee exports (CSV and PDF).

The whole attendee list is materialized per call; exports are sized for a
single meeting, not paginated.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from PIL import Image
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image as RLImage
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlmodel import Session

from attendance.errors import ValidationFailedError
from attendance.models.attendee import Attendee
from attendance.models.meeting import Meeting, as_utc
from attendance.repositories.attendees import AttendeesRepository
from attendance.services.lifecycle import get_authorized_meeting
from attendance.services.signature import load_signature_image

logger = logging.getLogger("attendance.export")

CSV_HEADER = ["name", "timestamp"]

# Leading characters spreadsheet apps treat as the start of a formula
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")

SIGNATURE_BOX = (50 * mm, 15 * mm)


@dataclass
class ExportResult:
    content: bytes
    media_type: str
    filename: str


def format_timestamp(value: datetime) -> str:
    return as_utc(value).isoformat().replace("+00:00", "Z")


def export_filename(meeting: Meeting, extension: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", meeting.title).strip("_").lower() or "meeting"
    return f"attendance_{slug[:60]}.{extension}"


def csv_cell(value: str) -> str:
    if value.startswith(_FORMULA_PREFIXES):
        return "'" + value
    return value


def render_csv(attendees: Sequence[Attendee]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)
    for attendee in attendees:
        writer.writerow([csv_cell(attendee.name), format_timestamp(attendee.timestamp)])
    return buffer.getvalue().encode("utf-8")


def _signature_flowable(signature: str) -> Optional[RLImage]:
    img = load_signature_image(signature)
    if img is None:
        return None
    # Flatten transparent canvas strokes onto white for print
    rgba = img.convert("RGBA")
    flattened = Image.new("RGB", rgba.size, (255, 255, 255))
    flattened.paste(rgba, mask=rgba.getchannel("A"))
    png = io.BytesIO()
    flattened.save(png, format="PNG")
    png.seek(0)

    box_w, box_h = SIGNATURE_BOX
    scale = min(box_w / flattened.width, box_h / flattened.height)
    return RLImage(png, width=flattened.width * scale, height=flattened.height * scale)


def render_pdf(
    meeting: Meeting,
    attendees: Sequence[Attendee],
    embed_signatures: bool = True,
    generated_at: Optional[datetime] = None,
) -> bytes:
    generated_at = generated_at or datetime.now(timezone.utc)
    styles = getSampleStyleSheet()
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=f"Attendance - {meeting.title}",
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
    )

    story: List = [
        Paragraph(f"Attendance Report: {_escape(meeting.title)}", styles["Title"]),
        Paragraph(f"Meeting ID: {_escape(meeting.id)}", styles["Normal"]),
        Paragraph(f"Status: {meeting.status}", styles["Normal"]),
        Paragraph(f"Generated: {format_timestamp(generated_at)}", styles["Normal"]),
        Paragraph(f"Total attendees: {len(attendees)}", styles["Normal"]),
        Spacer(1, 6 * mm),
    ]

    if not attendees:
        story.append(Paragraph("No attendees recorded.", styles["Italic"]))
    else:
        rows: List[list] = [["#", "Name", "Time (UTC)", "Signature"]]
        for index, attendee in enumerate(attendees, start=1):
            signature_cell = _signature_flowable(attendee.signature) if embed_signatures else None
            rows.append([
                str(index),
                Paragraph(_escape(attendee.name), styles["Normal"]),
                as_utc(attendee.timestamp).strftime("%Y-%m-%d %H:%M:%S"),
                signature_cell if signature_cell is not None else "",
            ])
        table = Table(rows, colWidths=[10 * mm, 60 * mm, 42 * mm, 60 * mm], repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#e5e7eb")),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#9ca3af")),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]))
        story.append(table)

    doc.build(story)
    return buffer.getvalue()


def _escape(text: str) -> str:
    # Paragraph parses a mini-markup language
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def export_attendees(
    session: Session,
    meeting_id: str,
    admin_secret: Optional[str],
    fmt: str,
    embed_signatures: bool = True,
) -> ExportResult:
    meeting = get_authorized_meeting(session, meeting_id, admin_secret)
    kind = (fmt or "").strip().lower()
    if kind not in ("csv", "pdf"):
        raise ValidationFailedError(f"Unsupported export type '{fmt}'. Expected csv or pdf")

    attendees = AttendeesRepository(session).list_by_meeting(meeting.id)
    logger.info("Exporting %d attendees of meeting %s as %s", len(attendees), meeting.id, kind)
    if kind == "csv":
        return ExportResult(render_csv(attendees), "text/csv; charset=utf-8", export_filename(meeting, "csv"))
    return ExportResult(
        render_pdf(meeting, attendees, embed_signatures=embed_signatures),
        "application/pdf",
        export_filename(meeting, "pdf"),
    )
