"""Printable service orders and order-relation reports, rendered with reportlab."""
from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .config import PdfConfig
from .validation import date_from_db, format_document

logger = logging.getLogger(__name__)

HEADER_BG = colors.HexColor("#f2f2f2")
INVOICED_BG = colors.HexColor("#e6ffe6")
NOT_INVOICED_BG = colors.HexColor("#fff6e6")


class PdfError(Exception):
    pass


def _text(value) -> str:
    return escape("" if value is None else str(value))


def _plain(value) -> str:
    return "" if value is None else str(value)


def _yes_no(value) -> str:
    return "Sim" if value == "S" else "Não"


class PdfRenderer:
    def __init__(self, cfg: PdfConfig) -> None:
        self.cfg = cfg
        self.output_dir = Path(cfg.output_dir)
        styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            "OsTitle", parent=styles["Heading1"], fontSize=18, alignment=1, spaceAfter=8
        )
        self.body_style = ParagraphStyle("OsBody", parent=styles["Normal"], fontSize=10, leading=13)
        self.small_style = ParagraphStyle(
            "OsSmall", parent=styles["Normal"], fontSize=8, textColor=colors.grey, alignment=1
        )

    def path_for(self, filename: str) -> Path:
        return self.output_dir / filename

    def _build(self, filename: str, story: list, *, pagesize, title: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(filename)
        company = self.cfg.company_name

        def footer(canvas, doc):
            canvas.saveState()
            canvas.setFont("Helvetica", 8)
            canvas.setFillColor(colors.grey)
            canvas.drawCentredString(
                doc.pagesize[0] / 2,
                8 * mm,
                f"{company} - gerado em {datetime.now():%d/%m/%Y %H:%M:%S} - página {doc.page}",
            )
            canvas.restoreState()

        try:
            doc = SimpleDocTemplate(
                str(path),
                pagesize=pagesize,
                leftMargin=15 * mm,
                rightMargin=15 * mm,
                topMargin=16 * mm,
                bottomMargin=16 * mm,
                title=title,
                author=company,
                creator=company,
            )
            doc.build(story, onFirstPage=footer, onLaterPages=footer)
        except Exception as e:
            logger.error("PDF generation failed for %s: %s", filename, e)
            raise PdfError(f"Could not generate {filename}: {e}") from e

        logger.info("Generated PDF %s", path)
        return path

    def render_order(self, order: dict) -> Path:
        if order.get("id") is None:
            raise PdfError("Order without id cannot be rendered.")

        number = str(order["id"]).zfill(4)
        story: list = [
            Paragraph(f"ORDEM DE SERVIÇO Nº {number}", self.title_style),
            Spacer(1, 4 * mm),
        ]

        info = [
            ["Cliente:", _plain(order.get("client_name"))],
            ["CNPJ/CPF:", _plain(format_document(order.get("client_document"), order.get("client_kind")))],
            ["Modalidade:", _plain(order.get("modality_description"))],
            ["Responsável:", _plain(order.get("on_site_contact"))],
            ["Consultor:", _plain(order.get("consultant_name"))],
            ["Data:", _plain(date_from_db(order.get("order_date")))],
            ["Serviço:", _plain(order.get("service_description"))],
        ]
        info_table = Table(info, colWidths=[35 * mm, 140 * mm])
        info_table.setStyle(
            TableStyle(
                [
                    ("FONT", (0, 0), (0, -1), "Helvetica-Bold", 10),
                    ("FONT", (1, 0), (1, -1), "Helvetica", 10),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ]
            )
        )
        story += [info_table, Spacer(1, 6 * mm)]

        times = [
            ["Hora Início", "Hora Fim", "Descontos", "Traslado", "Tempo Total"],
            [
                _plain(order.get("start_time")),
                _plain(order.get("end_time")),
                _plain(order.get("discount_time")),
                _plain(order.get("transfer_time")),
                _plain(order.get("total_time")),
            ],
        ]
        times_table = Table(times, colWidths=[35 * mm] * 5)
        times_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
                    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 10),
                    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
                ]
            )
        )
        story += [times_table, Spacer(1, 6 * mm)]

        detail = _text(order.get("detail")).replace("\n", "<br/>")
        story += [
            Paragraph("<b>Detalhamento do Serviço:</b>", self.body_style),
            Paragraph(detail or "-", self.body_style),
            Spacer(1, 25 * mm),
        ]

        signatures = Table(
            [
                [_plain(order.get("consultant_name")), _plain(order.get("on_site_contact"))],
                ["Consultor", "Cliente"],
            ],
            colWidths=[80 * mm, 80 * mm],
            spaceBefore=10 * mm,
        )
        signatures.setStyle(
            TableStyle(
                [
                    ("LINEABOVE", (0, 0), (0, 0), 0.8, colors.black),
                    ("LINEABOVE", (1, 0), (1, 0), 0.8, colors.black),
                    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                    ("LEFTPADDING", (0, 0), (-1, -1), 10 * mm),
                    ("RIGHTPADDING", (0, 0), (-1, -1), 10 * mm),
                ]
            )
        )
        story.append(signatures)

        return self._build(
            f"os_{order['id']}.pdf",
            story,
            pagesize=A4,
            title=f"Ordem de Serviço #{order['id']}",
        )

    def _filters_line(self, filters: dict) -> str:
        parts = []
        date_from, date_to = filters.get("date_from"), filters.get("date_to")
        if date_from and date_to:
            parts.append(f"<b>Período:</b> {_text(date_from)} até {_text(date_to)}")
        elif date_from:
            parts.append(f"<b>Período:</b> a partir de {_text(date_from)}")
        elif date_to:
            parts.append(f"<b>Período:</b> até {_text(date_to)}")
        if filters.get("client"):
            parts.append(f"<b>Cliente:</b> {_text(filters.get('client_name') or filters['client'])}")
        if filters.get("invoiced") in ("S", "N"):
            parts.append(f"<b>Faturado:</b> {_yes_no(filters['invoiced'])}")
        if filters.get("collected") in ("S", "N"):
            parts.append(f"<b>Cobrado:</b> {_yes_no(filters['collected'])}")
        return "&nbsp;&nbsp;&nbsp;".join(parts)

    def render_relation(self, rows: list[dict], summary: dict, filters: dict) -> Path:
        story: list = [Paragraph("Relação de Ordens de Serviço", self.title_style)]
        line = self._filters_line(filters)
        if line:
            story.append(Paragraph(line, self.body_style))
        story.append(Spacer(1, 4 * mm))

        data = [["OS", "Data", "Cliente", "Serviço", "Consultor", "Tempo", "Faturado", "Cobrado"]]
        backgrounds = []
        for i, row in enumerate(rows, start=1):
            data.append(
                [
                    str(row.get("order_id", "")).zfill(4),
                    date_from_db(row.get("order_date")),
                    Paragraph(_text(row.get("client_name")), self.body_style),
                    Paragraph(_text(row.get("service_description")), self.body_style),
                    Paragraph(_text(row.get("consultant_name")), self.body_style),
                    _plain(row.get("total_time")),
                    _yes_no(row.get("invoiced")),
                    _yes_no(row.get("collected")),
                ]
            )
            bg = INVOICED_BG if row.get("invoiced") == "S" else NOT_INVOICED_BG
            backgrounds.append(("BACKGROUND", (0, i), (-1, i), bg))
        data.append(["", "", "", "", "Total", summary.get("total_time", "00:00"), "", ""])

        table = Table(
            data,
            colWidths=[16 * mm, 24 * mm, 70 * mm, 55 * mm, 45 * mm, 20 * mm, 18 * mm, 18 * mm],
            repeatRows=1,
        )
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
                    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
                    ("FONT", (0, 1), (-1, -1), "Helvetica", 9),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("FONT", (0, -1), (-1, -1), "Helvetica-Bold", 9),
                    ("BACKGROUND", (0, -1), (-1, -1), HEADER_BG),
                    *backgrounds,
                ]
            )
        )
        story += [table, Spacer(1, 6 * mm)]

        stats = [
            ["", "Quantidade", "Tempo", "%"],
            ["Total", summary.get("total_count", 0), summary.get("total_time", "00:00"), ""],
            ["Faturados", summary.get("invoiced_count", 0), summary.get("invoiced_time"), summary.get("invoiced_pct")],
            ["Não faturados", summary.get("not_invoiced_count", 0), summary.get("not_invoiced_time"),
             summary.get("not_invoiced_pct")],
            ["Cobrados", summary.get("collected_count", 0), summary.get("collected_time"), summary.get("collected_pct")],
            ["Não cobrados", summary.get("not_collected_count", 0), summary.get("not_collected_time"),
             summary.get("not_collected_pct")],
        ]
        stats_table = Table([[str(c) if c is not None else "" for c in r] for r in stats],
                            colWidths=[40 * mm, 30 * mm, 30 * mm, 20 * mm])
        stats_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
                    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
                    ("FONT", (0, 1), (0, -1), "Helvetica-Bold", 9),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
                    ("ALIGN", (1, 0), (-1, -1), "CENTER"),
                ]
            )
        )
        story.append(stats_table)

        clients = summary.get("clients") or []
        if clients:
            story.append(Spacer(1, 6 * mm))
            client_rows = [["Cliente", "Tempo"]] + [
                [Paragraph(_text(c.get("client_name")), self.body_style), c.get("total_time")]
                for c in clients
            ]
            client_table = Table(client_rows, colWidths=[100 * mm, 30 * mm], repeatRows=1)
            client_table.setStyle(
                TableStyle(
                    [
                        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
                        ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
                        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
                    ]
                )
            )
            story.append(client_table)

        return self._build(
            f"relacao_os_{datetime.now():%Y%m%d%H%M%S}.pdf",
            story,
            pagesize=landscape(A4),
            title="Relação de Ordens de Serviço",
        )

    def cleanup(self, max_age: int | None = None) -> int:
        """Remove generated PDFs older than ``max_age`` seconds."""
        max_age = self.cfg.max_age_seconds if max_age is None else max_age
        if not self.output_dir.exists():
            return 0
        cutoff = time.time() - max_age
        removed = 0
        for path in self.output_dir.glob("*.pdf"):
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        if removed:
            logger.info("Removed %d expired PDF(s) from %s", removed, self.output_dir)
        return removed
