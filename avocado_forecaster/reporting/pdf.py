"""
PDF analysis report.

``render_pdf_report`` lays out the same tables as the Markdown report
(``reporting.report.report_tables``) on letter pages with the reportlab
canvas, followed by one page per figure.  Figures that are missing or empty
on disk are left out.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from avocado_forecaster.reporting.report import REPORT_TITLE, ReportInputs, report_tables, split_summary

log = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = letter
MARGIN = 50
LINE = 14
FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
BODY_SIZE = 9


class _PageWriter:
    """Top-down text cursor over a canvas; starts a new page when full."""

    def __init__(self, pdf: canvas.Canvas) -> None:
        self.pdf = pdf
        self.y = PAGE_HEIGHT - MARGIN

    def new_page(self) -> None:
        self.pdf.showPage()
        self.y = PAGE_HEIGHT - MARGIN

    def _reserve(self, height: float) -> None:
        if self.y - height < MARGIN:
            self.new_page()

    def text(self, value: str, font: str = FONT, size: int = BODY_SIZE) -> None:
        for line in simpleSplit(value, font, size, PAGE_WIDTH - 2 * MARGIN) or [""]:
            self._reserve(LINE)
            self.pdf.setFont(font, size)
            self.pdf.drawString(MARGIN, self.y, line)
            self.y -= LINE

    def gap(self) -> None:
        self.y -= LINE / 2

    def table(self, caption: str, table: pd.DataFrame) -> None:
        self._reserve(3 * LINE)
        self.text(caption, font=FONT_BOLD, size=11)
        col_width = (PAGE_WIDTH - 2 * MARGIN) / max(len(table.columns), 1)
        self._row([str(c) for c in table.columns], col_width, FONT_BOLD)
        for values in table.itertuples(index=False):
            self._row([str(v) for v in values], col_width, FONT)
        self.gap()

    def _row(self, cells: list[str], col_width: float, font: str) -> None:
        self._reserve(LINE)
        self.pdf.setFont(font, BODY_SIZE)
        for i, cell in enumerate(cells):
            self.pdf.drawString(MARGIN + i * col_width, self.y, _fit(cell, font, col_width - 4))
        self.y -= LINE


def _fit(text: str, font: str, width: float) -> str:
    """Truncate ``text`` with an ellipsis so it fits ``width`` points."""
    if stringWidth(text, font, BODY_SIZE) <= width:
        return text
    while text and stringWidth(text + "...", font, BODY_SIZE) > width:
        text = text[:-1]
    return text + "..."


def _draw_figure(pdf: canvas.Canvas, title: str, path: Path) -> None:
    pdf.showPage()
    pdf.setFont(FONT_BOLD, 12)
    pdf.drawString(MARGIN, PAGE_HEIGHT - MARGIN, title)
    pdf.drawImage(
        str(path),
        MARGIN,
        MARGIN,
        width=PAGE_WIDTH - 2 * MARGIN,
        height=PAGE_HEIGHT - 2 * MARGIN - 2 * LINE,
        preserveAspectRatio=True,
        anchor="n",
    )


def render_pdf_report(inputs: ReportInputs, path: Path) -> Path:
    """Write the PDF report to ``path`` and return it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    generated = datetime.now(tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")

    pdf = canvas.Canvas(str(path), pagesize=letter)
    pdf.setTitle(REPORT_TITLE)
    page = _PageWriter(pdf)
    page.text(REPORT_TITLE, font=FONT_BOLD, size=14)
    page.gap()
    page.text(f"Generated {generated}")
    page.text(f"Source: {inputs.dataset_path}")
    if inputs.manifest is not None:
        page.text(split_summary(inputs.manifest))
    else:
        page.text("No comparison run found; run `avocado-forecaster compare` first.")
    page.gap()

    for caption, table in report_tables(inputs):
        page.table(caption, table)

    n_figures = 0
    for title, figure in inputs.figures.items():
        if not figure.exists() or figure.stat().st_size == 0:
            log.debug("Figure %s missing at %s; left out of PDF", title, figure)
            continue
        _draw_figure(pdf, title, figure)
        n_figures += 1

    pdf.save()
    log.info("PDF report written: %s (%d figures)", path, n_figures)
    return path
