"""
PDF payslip (recibo de nómina quincenal) rendered with reportlab.
Pure function of the snapshot: returns bytes, never touches storage.
"""
from __future__ import annotations

import io
from decimal import Decimal
from typing import Any
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from quincena_payroll.documents.snapshot import PayslipSnapshot
from quincena_payroll.models import LineItemType, PeriodHalf

_NAVY = colors.HexColor("#1E3A5F")
_LIGHT = colors.HexColor("#F0F4F8")
_WHITE = colors.white
_GRAY = colors.HexColor("#6B7280")
_GRID = colors.HexColor("#E5E7EB")

HALF_LABELS = {
    PeriodHalf.FIRST: "1-15",
    PeriodHalf.SECOND: "16-Fin",
}


def format_money(amount: Decimal | None, currency: str = "DOP") -> str:
    """'1234.5' -> 'DOP 1,234.50'."""
    value = amount if amount is not None else Decimal("0")
    return f"{currency} {value:,.2f}"


def _p(text: Any, style: ParagraphStyle) -> Paragraph:
    return Paragraph(escape("" if text is None else str(text)), style)


class PayslipPdfRenderer:
    """Default document renderer."""

    content_type = "application/pdf"
    file_extension = "pdf"

    def render(self, snapshot: dict[str, Any]) -> bytes:
        data = PayslipSnapshot.model_validate(snapshot)
        currency = data.summary.currency

        buf = io.BytesIO()
        doc = SimpleDocTemplate(
            buf,
            pagesize=A4,
            leftMargin=2 * cm,
            rightMargin=2 * cm,
            topMargin=2 * cm,
            bottomMargin=2 * cm,
            title=f"Recibo de nómina {data.employee.name}",
        )

        styles = getSampleStyleSheet()
        normal = ParagraphStyle("payslip_normal", parent=styles["Normal"], fontSize=9, leading=13)
        heading = ParagraphStyle(
            "payslip_heading",
            parent=normal,
            fontSize=11,
            fontName="Helvetica-Bold",
            textColor=_NAVY,
            spaceAfter=4,
        )
        small_gray = ParagraphStyle("payslip_small", parent=normal, fontSize=8, textColor=_GRAY)
        white_bold = ParagraphStyle(
            "payslip_header", parent=normal, fontSize=11, fontName="Helvetica-Bold", textColor=_WHITE
        )

        page_w = A4[0] - 4 * cm
        story: list[Any] = []

        # Header
        company_lines = [data.company.name]
        if data.company.tax_id:
            company_lines.append(f"RNC: {data.company.tax_id}")
        header_tbl = Table(
            [[
                _p("Recibo de Nómina (Quincenal)", white_bold),
                Paragraph(
                    "<br/>".join(escape(line) for line in company_lines),
                    ParagraphStyle("payslip_company", parent=white_bold, alignment=2),
                ),
            ]],
            colWidths=[page_w * 0.55, page_w * 0.45],
        )
        header_tbl.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, -1), _NAVY),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("TOPPADDING", (0, 0), (-1, -1), 8),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
            ("LEFTPADDING", (0, 0), (-1, -1), 10),
            ("RIGHTPADDING", (0, 0), (-1, -1), 10),
        ]))
        story.append(header_tbl)
        if data.company.address or data.company.phone:
            contact = " · ".join(x for x in (data.company.address, data.company.phone) if x)
            story.append(Spacer(1, 0.1 * cm))
            story.append(_p(contact, small_gray))
        story.append(Spacer(1, 0.4 * cm))

        # Employee and period
        period = data.period
        info_rows = [
            [_p("Empleado", heading), _p(data.employee.name, normal),
             _p("Año/Mes", heading), _p(f"{period.year}-{period.month:02d}", normal)],
            [_p("Email", heading), _p(data.employee.email or "-", normal),
             _p("Quincena", heading), _p(HALF_LABELS.get(period.half, period.half.value), normal)],
            [_p("Rol", heading), _p(data.employee.role or "-", normal),
             _p("Desde / Hasta", heading),
             _p(f"{period.date_from.isoformat()} / {period.date_to.isoformat()}", normal)],
        ]
        col_w = page_w / 4
        info_tbl = Table(info_rows, colWidths=[col_w * 0.7, col_w * 1.3, col_w * 0.8, col_w * 1.2])
        info_tbl.setStyle(TableStyle([
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ("ROWBACKGROUNDS", (0, 0), (-1, -1), [_WHITE, _LIGHT]),
        ]))
        story.append(info_tbl)
        story.append(Spacer(1, 0.4 * cm))

        # Summary
        story.append(_p("Resumen", heading))
        s = data.summary
        summary_rows = [
            ["Sueldo base", format_money(s.base_salary_amount, currency)],
            ["Comisiones", format_money(s.commissions_amount, currency)],
            ["Otros ingresos", format_money(s.other_earnings_amount, currency)],
            ["Bruto", format_money(s.gross_amount, currency)],
            ["Deducciones legales", format_money(s.statutory_deductions_amount, currency)],
            ["Otras deducciones", format_money(s.other_deductions_amount, currency)],
            ["Neto a pagar", format_money(s.net_amount, currency)],
        ]
        net_idx = len(summary_rows) - 1
        summary_tbl = Table(summary_rows, colWidths=[page_w * 0.7, page_w * 0.3])
        summary_tbl.setStyle(TableStyle([
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("ROWBACKGROUNDS", (0, 0), (-1, net_idx - 1), [_WHITE, _LIGHT]),
            ("BACKGROUND", (0, net_idx), (-1, net_idx), _LIGHT),
            ("FONTNAME", (0, net_idx), (-1, net_idx), "Helvetica-Bold"),
            ("LINEABOVE", (0, net_idx), (-1, net_idx), 0.5, _NAVY),
            ("GRID", (0, 0), (-1, -1), 0.25, _GRID),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]))
        story.append(summary_tbl)
        story.append(Spacer(1, 0.4 * cm))

        # Line items
        story.append(_p("Detalle", heading))
        detail_rows: list[list[Any]] = [["", "Concepto", "Código", "Monto"]]
        for li in data.line_items:
            sign = "-" if li.type == LineItemType.DEDUCTION else "+"
            detail_rows.append([
                sign,
                _p(li.concept_name, normal),
                li.concept_code,
                format_money(li.amount, currency),
            ])
        detail_tbl = Table(
            detail_rows,
            colWidths=[page_w * 0.05, page_w * 0.5, page_w * 0.2, page_w * 0.25],
            repeatRows=1,
        )
        detail_tbl.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), _NAVY),
            ("TEXTCOLOR", (0, 0), (-1, 0), _WHITE),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (3, 0), (3, -1), "RIGHT"),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [_WHITE, _LIGHT]),
            ("GRID", (0, 0), (-1, -1), 0.25, _GRID),
        ]))
        story.append(detail_tbl)

        # Footer
        story.append(Spacer(1, 0.5 * cm))
        story.append(HRFlowable(width="100%", thickness=0.5, color=_GRAY))
        story.append(Spacer(1, 0.15 * cm))
        story.append(_p(
            "Este recibo es un snapshot del cálculo al momento de la aprobación "
            f"({data.created_at.strftime('%Y-%m-%d %H:%M')} UTC).",
            small_gray,
        ))

        doc.build(story)
        return buf.getvalue()
