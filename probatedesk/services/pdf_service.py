"""PDF rendering for phase artifacts (reportlab).

render(kind, data) returns complete PDF bytes or raises; layout fidelity to
the official court forms is not attempted here.
"""

import io
from datetime import datetime, timezone
from typing import Any
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

TITLES: dict[str, str] = {
    "will_search_packet": "Wills Notice Search Request (VSA 532)",
    "probate_pack": "Probate Filing Package",
    "supplemental_schedule:EXECUTORS": "Schedule - Executors",
    "supplemental_schedule:BENEFICIARIES": "Schedule - Beneficiaries",
}


def _format_value(value: Any) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, dict):
        return ", ".join(f"{k}: {_format_value(v)}" for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return "; ".join(_format_value(v) for v in value)
    return str(value)


def _label(key: str) -> str:
    return key.replace("_", " ").replace("-", " ").strip().capitalize()


def render(kind: str, data: dict[str, Any]) -> bytes:
    """
    Render a document.

    Args:
        kind: Document kind (schedules use "supplemental_schedule:<KIND>")
        data: Header fields (case_code, deceased_name) plus "sections":
              {section title: {field: value}} or {section title: [rows]}

    Returns:
        PDF bytes
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=50,
        leftMargin=50,
        topMargin=50,
        bottomMargin=50,
        title=TITLES.get(kind, kind),
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "DocTitle",
        parent=styles["Heading1"],
        fontSize=18,
        spaceAfter=12,
        textColor=colors.HexColor("#1e293b"),
    )
    heading_style = ParagraphStyle(
        "DocHeading",
        parent=styles["Heading2"],
        fontSize=12,
        spaceBefore=12,
        spaceAfter=6,
        textColor=colors.HexColor("#334155"),
    )
    meta_style = ParagraphStyle(
        "DocMeta",
        parent=styles["Normal"],
        fontSize=9,
        textColor=colors.HexColor("#64748b"),
    )

    elements = [Paragraph(TITLES.get(kind, kind), title_style)]
    generated_at = datetime.now(timezone.utc).strftime("%B %d, %Y")
    elements.append(
        Paragraph(
            escape(
                f"Case {data.get('case_code') or '-'} | Estate of {data.get('deceased_name') or '-'} | Prepared {generated_at}"
            ),
            meta_style,
        )
    )
    elements.append(Spacer(1, 10))

    for section, content in (data.get("sections") or {}).items():
        elements.append(Paragraph(escape(str(section)), heading_style))
        if isinstance(content, dict):
            rows = [[_label(k), _format_value(v)] for k, v in content.items()]
        elif isinstance(content, list):
            rows = [[str(idx + 1), _format_value(item)] for idx, item in enumerate(content)]
        else:
            rows = [["", _format_value(content)]]
        if not rows:
            rows = [["", "None listed"]]
        table = Table(rows, colWidths=[2.0 * inch, 4.5 * inch])
        table.setStyle(
            TableStyle([
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("TEXTCOLOR", (0, 0), (0, -1), colors.HexColor("#475569")),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.HexColor("#e2e8f0")),
            ])
        )
        elements.append(table)

    doc.build(elements)
    return buffer.getvalue()
