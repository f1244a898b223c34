"""
PDF renderers for shift, daily and monthly sales reports.

Each function takes the dict produced by fuelpos.services.reports and
returns the PDF as bytes.
"""
from io import BytesIO

from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

HEADER_BLUE = colors.HexColor("#3B82F6")
HEADER_GREEN = colors.HexColor("#10B981")
ROW_ALT = colors.HexColor("#F3F4F6")


def _styles():
    styles = getSampleStyleSheet()
    title = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontSize=20,
        textColor=HEADER_BLUE,
        spaceAfter=20,
        alignment=TA_CENTER,
    )
    heading = ParagraphStyle(
        "ReportHeading",
        parent=styles["Heading2"],
        fontSize=13,
        textColor=colors.HexColor("#1F2937"),
        spaceAfter=10,
        spaceBefore=16,
    )
    return title, heading


def _money(value):
    return f"{settings.FUELPOS_CURRENCY} {value:,.2f}"


def _litres(value):
    return f"{value:,.2f}"


def _info_table(rows):
    table = Table(rows, colWidths=[2 * inch, 4 * inch])
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTNAME", (1, 0), (1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("TEXTCOLOR", (0, 0), (0, -1), colors.HexColor("#6B7280")),
        ("ALIGN", (0, 0), (-1, -1), "LEFT"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    return table


def _grid_table(rows, col_widths, header_color=HEADER_BLUE):
    table = Table(rows, colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), header_color),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 10),
        ("FONTSIZE", (0, 1), (-1, -1), 9),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
        ("ALIGN", (0, 0), (-1, -1), "LEFT"),
        ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, ROW_ALT]),
    ]))
    return table


def _summary_rows(summary):
    methods = summary["by_payment_method"]
    return [
        ["Metric", "Value"],
        ["Total Sales", str(summary["total_sales"])],
        ["Total Litres", _litres(summary["total_litres"])],
        ["Total Amount", _money(summary["total_amount"])],
        ["Cash", _money(methods["cash"]["amount"])],
        ["Card", _money(methods["card"]["amount"])],
        ["Credit", _money(methods["credit"]["amount"])],
    ]


def _sale_rows(sales):
    rows = [["Time", "Pump", "Fuel", "Litres", "Amount", "Payment"]]
    for sale in sales:
        rows.append([
            timezone.localtime(sale.created_at).strftime("%H:%M"),
            sale.nozzle.pump.pump_number,
            sale.nozzle.fuel_type.name,
            _litres(sale.litres_dispensed),
            _money(sale.total_amount),
            sale.payment_method,
        ])
    return rows


def _build(story):
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=settings.FUELPOS_STATION_NAME)
    doc.build(story)
    return buffer.getvalue()


def render_shift_report(report):
    title_style, heading_style = _styles()
    shift = report["shift"]
    story = [Paragraph(settings.FUELPOS_STATION_NAME, title_style), Paragraph("Shift Report", heading_style)]

    end = timezone.localtime(shift.end_time).strftime("%H:%M") if shift.end_time else "Open"
    story.append(_info_table([
        ["Shift Date:", shift.shift_date.strftime("%B %d, %Y")],
        ["Attendant:", shift.user.full_name or shift.user.username],
        ["Start Time:", timezone.localtime(shift.start_time).strftime("%H:%M")],
        ["End Time:", end],
        ["Opening Cash:", _money(shift.opening_cash)],
        ["Closing Cash:", _money(shift.closing_cash) if shift.closing_cash is not None else "-"],
    ]))

    if report["readings"]:
        story.append(Paragraph("Meter Readings", heading_style))
        rows = [["Pump / Nozzle", "Fuel", "Opening", "Closing", "Litres"]]
        for r in report["readings"]:
            rows.append([
                f"{r['pump']} / {r['nozzle']}",
                r["fuel_type"],
                _litres(r["opening"]) if r["opening"] is not None else "-",
                _litres(r["closing"]) if r["closing"] is not None else "-",
                _litres(r["metered_litres"]) if r["metered_litres"] is not None else "-",
            ])
        story.append(_grid_table(rows, [1.4 * inch, 1.4 * inch, 1.2 * inch, 1.2 * inch, 1.0 * inch], HEADER_GREEN))

    story.append(Paragraph("Sales Summary", heading_style))
    story.append(_grid_table(_summary_rows(report["totals"]), [3 * inch, 3 * inch]))

    if report["sales"]:
        story.append(Spacer(1, 0.2 * inch))
        story.append(Paragraph("Sales Details", heading_style))
        story.append(_grid_table(_sale_rows(report["sales"]), [0.8 * inch, 0.8 * inch, 1.2 * inch, 1.0 * inch, 1.6 * inch, 0.9 * inch]))
    return _build(story)


def render_daily_sales_report(report):
    title_style, heading_style = _styles()
    summary = report["summary"]
    story = [
        Paragraph(settings.FUELPOS_STATION_NAME, title_style),
        Paragraph("Daily Sales Report", heading_style),
        _info_table([
            ["Report Date:", report["date"].strftime("%B %d, %Y")],
            ["Shifts:", str(summary["total_shifts"])],
            ["Generated At:", timezone.localtime().strftime("%Y-%m-%d %H:%M")],
        ]),
        Paragraph("Sales Summary", heading_style),
        _grid_table(_summary_rows(summary), [3 * inch, 3 * inch]),
    ]

    if summary["by_fuel_type"]:
        story.append(Paragraph("By Fuel Type", heading_style))
        rows = [["Fuel", "Sales", "Litres", "Amount"]]
        for code, bucket in sorted(summary["by_fuel_type"].items()):
            rows.append([bucket["name"], str(bucket["count"]), _litres(bucket["litres"]), _money(bucket["amount"])])
        story.append(_grid_table(rows, [2 * inch, 1 * inch, 1.4 * inch, 1.8 * inch], HEADER_GREEN))

    if summary["by_pump"]:
        story.append(Paragraph("By Pump", heading_style))
        rows = [["Pump", "Sales", "Litres", "Amount"]]
        for bucket in sorted(summary["by_pump"].values(), key=lambda b: b["pump_number"]):
            rows.append([f"{bucket['pump_number']} ({bucket['name']})", str(bucket["count"]), _litres(bucket["litres"]), _money(bucket["amount"])])
        story.append(_grid_table(rows, [2 * inch, 1 * inch, 1.4 * inch, 1.8 * inch], HEADER_GREEN))

    if report["sales"]:
        story.append(Paragraph("Sales Details", heading_style))
        story.append(_grid_table(_sale_rows(report["sales"]), [0.8 * inch, 0.8 * inch, 1.2 * inch, 1.0 * inch, 1.6 * inch, 0.9 * inch]))
    return _build(story)


def render_monthly_sales_report(report):
    title_style, heading_style = _styles()
    story = [
        Paragraph(settings.FUELPOS_STATION_NAME, title_style),
        Paragraph(f"Monthly Sales Report: {report['month']}", heading_style),
        _grid_table(_summary_rows(report["summary"]), [3 * inch, 3 * inch]),
        Paragraph("Daily Breakdown", heading_style),
    ]
    rows = [["Date", "Sales", "Litres", "Cash", "Card", "Credit", "Total"]]
    for day, bucket in report["daily_sales"].items():
        rows.append([
            day,
            str(bucket["count"]),
            _litres(bucket["litres"]),
            f"{bucket['cash']:,.2f}",
            f"{bucket['card']:,.2f}",
            f"{bucket['credit']:,.2f}",
            f"{bucket['amount']:,.2f}",
        ])
    story.append(_grid_table(rows, [1.0 * inch, 0.6 * inch, 1.0 * inch, 1.0 * inch, 1.0 * inch, 1.0 * inch, 1.1 * inch], HEADER_GREEN))
    return _build(story)
