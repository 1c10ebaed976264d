"""Export service history to CSV and PDF."""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import IO, Iterable, List, Optional, Union

from fpdf import FPDF

from .service_record import ServiceRecord

logger = logging.getLogger("fleet.export")

CSV_COLUMNS = ["Service Date", "Scooter", "Current KM", "Next Service KM", "Details"]


def filter_by_date_range(
    records: Iterable[ServiceRecord],
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[ServiceRecord]:
    """Records dated within [start, end] (inclusive ISO dates), oldest first."""
    selected = [
        r
        for r in records
        if (start is None or r.service_date >= start)
        and (end is None or r.service_date <= end)
    ]
    return sorted(selected, key=lambda r: (r.service_date, r.scooter_id))


def format_report_date(iso_date: Optional[str]) -> str:
    """DD/MM/YYYY for report headers; '-' when open-ended."""
    if not iso_date:
        return "-"
    return datetime.strptime(iso_date, "%Y-%m-%d").strftime("%d/%m/%Y")


def write_csv(records: Iterable[ServiceRecord], fp: IO[str]) -> int:
    """Write records as CSV rows to an open text file. Returns rows written."""
    writer = csv.writer(fp)
    writer.writerow(CSV_COLUMNS)
    count = 0
    for r in records:
        writer.writerow(
            [r.service_date, r.scooter_id, r.current_km, r.next_km, r.service_details]
        )
        count += 1
    return count


def export_csv(records: Iterable[ServiceRecord], path: Union[str, Path]) -> int:
    with open(path, "w", newline="", encoding="utf-8") as fp:
        count = write_csv(records, fp)
    logger.info("CSV exported: %s (%d records)", path, count)
    return count


class _ReportPDF(FPDF):
    def footer(self):
        self.set_y(-12)
        self.set_font("Helvetica", "", 9)
        self.set_text_color(128)
        self.cell(0, 6, f"Page {self.page_no()} of {{nb}}", align="C")


def _latin1(text: str) -> str:
    # Core PDF fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def render_pdf(
    records: List[ServiceRecord],
    category_name: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
    title: str = "LA RENTALS",
) -> bytes:
    """
    Render a service history report for one category.

    Layout: company title, report title, category and period, a table of
    services, then a summary with the total count.
    """
    pdf = _ReportPDF()
    pdf.add_page()
    pdf.set_auto_page_break(auto=True, margin=15)

    # --- Header ---
    pdf.set_font("Helvetica", "B", 22)
    pdf.set_text_color(41, 128, 185)
    pdf.cell(0, 10, _latin1(title), new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.set_text_color(0)
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 9, "Service History Report", new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.ln(3)

    pdf.set_font("Helvetica", "", 11)
    pdf.cell(0, 6, _latin1(f"Category: {category_name}"), new_x="LMARGIN", new_y="NEXT")
    period = f"Period: {format_report_date(start)} - {format_report_date(end)}"
    pdf.cell(0, 6, period, new_x="LMARGIN", new_y="NEXT")
    pdf.set_draw_color(41, 128, 185)
    pdf.line(10, pdf.get_y() + 2, pdf.w - 10, pdf.get_y() + 2)
    pdf.ln(6)

    # --- Services Table ---
    widths = [26, 28, 26, 30, 80]
    pdf.set_font("Helvetica", "B", 9)
    pdf.set_fill_color(41, 128, 185)
    pdf.set_text_color(255)
    headers = ["Date", "Scooter", "Current KM", "Next Service", "Details"]
    for width, header in zip(widths, headers):
        pdf.cell(width, 7, header, border=1, fill=True, align="C")
    pdf.ln()

    pdf.set_text_color(0)
    pdf.set_font("Helvetica", "", 9)
    for r in records:
        details = r.service_details
        if len(details) > 55:
            details = details[:52] + "..."
        pdf.cell(widths[0], 6, format_report_date(r.service_date), border=1)
        pdf.cell(widths[1], 6, _latin1(r.scooter_id), border=1)
        pdf.cell(widths[2], 6, f"{r.current_km:,}", border=1, align="R")
        pdf.cell(widths[3], 6, f"{r.next_km:,}", border=1, align="R")
        pdf.cell(widths[4], 6, _latin1(details), border=1, new_x="LMARGIN", new_y="NEXT")

    # --- Summary ---
    pdf.ln(8)
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(0, 7, "Summary", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 6, f"Total Services: {len(records)}", new_x="LMARGIN", new_y="NEXT")
    generated = datetime.now().strftime("%Y-%m-%d %H:%M")
    pdf.cell(0, 6, f"Report generated: {generated}", new_x="LMARGIN", new_y="NEXT")

    return bytes(pdf.output())


def export_pdf(
    records: List[ServiceRecord],
    path: Union[str, Path],
    category_name: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> str:
    with open(path, "wb") as fp:
        fp.write(render_pdf(records, category_name, start, end))
    logger.info("PDF exported: %s (%d records)", path, len(records))
    return str(path)
