"""
Cash register closing report (arqueo de caja) as PDF.
Opening float, income/expense totals, expected vs counted cash, and every movement.
"""
from io import BytesIO
from xml.sax.saxutils import escape
from datetime import datetime
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from sqlalchemy.orm import Session

from cannaclub.core.config import settings
from cannaclub.core.money import quantize
from cannaclub.services import cash_register_service


def _fmt(value) -> str:
    return f"{quantize(value):.2f} {settings.CURRENCY_SYMBOL}"


def _when(value) -> str:
    return value.strftime('%d/%m/%Y %H:%M') if value else "-"


def generate_register_report_pdf(db: Session, register_id: int) -> BytesIO:
    """
    Build the closing report for one register.

    Works for open registers too; counted cash and discrepancy are then shown
    as pending.
    """
    register = cash_register_service.get_register(db, register_id)
    totals = cash_register_service.register_totals(db, register)
    transactions = cash_register_service.list_transactions(db, register.id)

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.5*inch, bottomMargin=0.5*inch)

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=colors.HexColor('#166534'),
        alignment=TA_CENTER,
        spaceAfter=12
    )
    heading_style = ParagraphStyle(
        'ReportHeading',
        parent=styles['Heading2'],
        fontSize=13,
        textColor=colors.HexColor('#1f2937'),
        spaceAfter=6
    )
    normal_style = ParagraphStyle(
        'ReportNormal',
        parent=styles['Normal'],
        fontSize=9,
        textColor=colors.HexColor('#374151')
    )

    elements.append(Paragraph(f"ARQUEO DE CAJA #{register.id}", title_style))
    elements.append(Spacer(1, 0.2*inch))

    info_data = [
        [
            Paragraph(f"<b>Apertura:</b> {_when(register.opened_at)}<br/>"
                      f"<b>Cierre:</b> {_when(register.closed_at)}", normal_style),
            Paragraph(f"<b>Estado:</b> {register.status.upper()}<br/>"
                      f"<b>Movimientos:</b> {totals.transaction_count}", normal_style),
        ]
    ]
    info_table = Table(info_data, colWidths=[3.5*inch, 3*inch])
    info_table.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.2*inch))

    # Summary
    counted = register.closing_amount
    summary_data = [
        ["Importe de apertura", _fmt(totals.opening_amount)],
        ["Ingresos", _fmt(totals.income)],
        ["Gastos", _fmt(totals.expense)],
        ["Saldo calculado", _fmt(totals.balance)],
        ["Importe contado", _fmt(counted) if counted is not None else "pendiente"],
        ["Descuadre", _fmt(quantize(counted) - totals.balance) if counted is not None else "pendiente"],
    ]
    summary_table = Table(summary_data, colWidths=[3*inch, 2*inch])
    summary_table.setStyle(TableStyle([
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('FONTNAME', (0, 3), (-1, 3), 'Helvetica-Bold'),
        ('LINEABOVE', (0, 3), (-1, 3), 1, colors.black),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    elements.append(Paragraph("<b>Resumen</b>", heading_style))
    elements.append(summary_table)
    elements.append(Spacer(1, 0.3*inch))

    # Movements
    rows = [[
        Paragraph("<b>Fecha</b>", normal_style),
        Paragraph("<b>Tipo</b>", normal_style),
        Paragraph("<b>Concepto</b>", normal_style),
        Paragraph("<b>Método</b>", normal_style),
        Paragraph("<b>Importe</b>", normal_style),
    ]]
    for tx in transactions:
        sign = "+" if tx.type == "income" else "-"
        rows.append([
            Paragraph(_when(tx.created_at), normal_style),
            Paragraph("Ingreso" if tx.type == "income" else "Gasto", normal_style),
            Paragraph(escape(tx.concept), normal_style),
            Paragraph(tx.payment_method, normal_style),
            Paragraph(f"{sign}{_fmt(tx.amount)}", normal_style),
        ])
    movements_table = Table(rows, colWidths=[1.3*inch, 0.8*inch, 2.4*inch, 0.8*inch, 1.2*inch], repeatRows=1)
    movements_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f3f4f6')),
        ('ALIGN', (4, 0), (4, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#fafafa')]),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    elements.append(Paragraph("<b>Movimientos</b>", heading_style))
    elements.append(movements_table)

    if register.notes:
        elements.append(Spacer(1, 0.3*inch))
        elements.append(Paragraph("<b>Notas</b>", heading_style))
        elements.append(Paragraph(escape(register.notes).replace("\n", "<br/>"), normal_style))

    footer_style = ParagraphStyle(
        'Footer',
        parent=styles['Normal'],
        fontSize=8,
        textColor=colors.grey,
        alignment=TA_CENTER
    )
    elements.append(Spacer(1, 0.5*inch))
    elements.append(Paragraph(f"Generado el {datetime.now().strftime('%d/%m/%Y a las %H:%M')}", footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer
