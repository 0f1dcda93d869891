import csv
import io
import re
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError

from models import Trip, Summary
from utils import format_currency

HEADER_BACKGROUND = colors.HexColor('#e5e7eb')
HEADER_TEXT = colors.HexColor('#1f2937')
GRID_COLOR = colors.HexColor('#d1d5db')


def export_filename(trip: Trip, extension: str) -> str:
    safe_name = re.sub(r"[^A-Za-z0-9_-]+", "_", trip.name).strip("_")
    return f"settlement_{safe_name or trip.id}.{extension}"


def _expense_rows(trip: Trip):
    people = trip.people_index()
    for expense in trip.expenses:
        category = (trip.find_category(expense.category_id)
                    if expense.category_id else None)
        yield [
            expense.date.strftime('%Y-%m-%d'),
            expense.description,
            category.name if category else "Uncategorized",
            format_currency(expense.amount),
            people.get(expense.paid_by, "Unknown"),
            ", ".join(people[pid] for pid in expense.split_between
                      if pid in people),
        ]


def export_csv(trip: Trip, summary: Summary) -> str:
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(["Trip expenses - export"])
    writer.writerow([f"Trip: {trip.name}"])
    writer.writerow(
        [f"Created: {trip.created_at.strftime('%Y-%m-%d %H:%M')}"])
    writer.writerow([f"Total: {format_currency(summary.total_expenses)}"])
    writer.writerow([])

    writer.writerow(["PEOPLE"])
    writer.writerow(["Name", "Email"])
    for person in trip.people:
        writer.writerow([person.name, person.email or ""])
    writer.writerow([])

    writer.writerow(["EXPENSES"])
    writer.writerow(
        ["Date", "Description", "Category", "Amount", "Paid by", "Split between"])
    for row in _expense_rows(trip):
        writer.writerow(row)
    writer.writerow([])

    writer.writerow(["BALANCES"])
    writer.writerow(["Person", "Balance"])
    for balance in summary.balances:
        writer.writerow(
            [balance.person_name, format_currency(balance.balance)])
    writer.writerow([])

    writer.writerow(["SETTLEMENTS"])
    writer.writerow(["From", "To", "Amount"])
    for transfer in summary.settlements:
        writer.writerow([
            transfer.from_name, transfer.to_name,
            format_currency(transfer.amount)
        ])
    writer.writerow([])

    writer.writerow(["CATEGORIES"])
    writer.writerow(["Category", "Amount"])
    for total in summary.categories:
        writer.writerow([total.name, format_currency(total.amount)])

    return output.getvalue()


def _register_fonts():
    try:
        pdfmetrics.registerFont(
            TTFont('DejaVuSans',
                   '/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf'))
        pdfmetrics.registerFont(
            TTFont('DejaVuSans-Bold',
                   '/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf'))
        return 'DejaVuSans', 'DejaVuSans-Bold'
    except (TTFError, OSError):
        return 'Helvetica', 'Helvetica-Bold'


def _table(data, col_widths, font_name, font_name_bold, right_columns=()):
    table = Table(data, colWidths=[w * cm for w in col_widths])
    style = [
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_BACKGROUND),
        ('TEXTCOLOR', (0, 0), (-1, 0), HEADER_TEXT),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (-1, 0), font_name_bold),
        ('FONTNAME', (0, 1), (-1, -1), font_name),
        ('FONTSIZE', (0, 0), (-1, 0), 10),
        ('FONTSIZE', (0, 1), (-1, -1), 9),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ('TOPPADDING', (0, 0), (-1, 0), 8),
        ('GRID', (0, 0), (-1, -1), 0.5, GRID_COLOR),
    ]
    for col in right_columns:
        style.append(('ALIGN', (col, 0), (col, -1), 'RIGHT'))
    table.setStyle(TableStyle(style))
    return table


def export_pdf(trip: Trip, summary: Summary) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4)
    elements = []

    font_name, font_name_bold = _register_fonts()

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontSize=18,
        fontName=font_name_bold,
        textColor=HEADER_TEXT,
        spaceAfter=12,
    )
    heading_style = ParagraphStyle(
        'CustomHeading',
        parent=styles['Heading2'],
        fontSize=14,
        fontName=font_name_bold,
        textColor=colors.HexColor('#374151'),
        spaceAfter=10,
        spaceBefore=14,
    )
    normal_style = ParagraphStyle(
        'CustomNormal',
        parent=styles['Normal'],
        fontName=font_name,
    )

    elements.append(Paragraph(escape(trip.name), title_style))
    if trip.description:
        elements.append(Paragraph(escape(trip.description), normal_style))
    elements.append(
        Paragraph(f"Created: {trip.created_at.strftime('%Y-%m-%d %H:%M')}",
                  normal_style))
    elements.append(
        Paragraph(f"Total: {format_currency(summary.total_expenses)}",
                  normal_style))
    elements.append(Spacer(1, 0.5 * cm))

    elements.append(Paragraph("People", heading_style))
    people_data = [["Name", "Email"]]
    for person in trip.people:
        people_data.append([person.name, person.email or ""])
    elements.append(_table(people_data, [8, 8], font_name, font_name_bold))
    elements.append(Spacer(1, 0.5 * cm))

    elements.append(Paragraph("Expenses", heading_style))
    expense_data = [["Date", "Description", "Category", "Amount", "Paid by",
                     "Split between"]]
    expense_data.extend(_expense_rows(trip))
    elements.append(
        _table(expense_data, [2.2, 3.5, 2.5, 2.3, 2.5, 4], font_name,
               font_name_bold, right_columns=(3,)))
    elements.append(Spacer(1, 0.5 * cm))

    elements.append(Paragraph("Balances", heading_style))
    balance_data = [["Person", "Balance"]]
    for balance in summary.balances:
        balance_data.append(
            [balance.person_name, format_currency(balance.balance)])
    elements.append(
        _table(balance_data, [10, 5], font_name, font_name_bold,
               right_columns=(1,)))
    elements.append(Spacer(1, 0.5 * cm))

    elements.append(Paragraph("Suggested settlements", heading_style))
    settlement_data = [["From", "To", "Amount"]]
    for transfer in summary.settlements:
        settlement_data.append([
            transfer.from_name, transfer.to_name,
            format_currency(transfer.amount)
        ])
    if len(settlement_data) == 1:
        settlement_data.append(["All expenses are settled", "", ""])
    elements.append(
        _table(settlement_data, [5, 5, 5], font_name, font_name_bold,
               right_columns=(2,)))
    elements.append(Spacer(1, 0.5 * cm))

    elements.append(Paragraph("Expenses by category", heading_style))
    category_data = [["Category", "Amount"]]
    for total in summary.categories:
        category_data.append([total.name, format_currency(total.amount)])
    elements.append(
        _table(category_data, [10, 5], font_name, font_name_bold,
               right_columns=(1,)))

    doc.build(elements)
    return buffer.getvalue()
