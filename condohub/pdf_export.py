from io import BytesIO
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from .core.formatting import format_clp


def build_finance_report_pdf(building_name: str, generated_label: str, report: dict) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)

    width, height = A4
    y = height - 50

    c.setFont("Helvetica-Bold", 16)
    c.drawString(40, y, f"{building_name} - Reporte financiero")
    y -= 20
    c.setFont("Helvetica", 10)
    c.drawString(40, y, f"Generado: {generated_label}")
    y -= 30

    c.setFont("Helvetica", 12)
    c.drawString(40, y, f"Total recaudado: {format_clp(report['total_collected'])}")
    y -= 18
    c.drawString(40, y, f"Total pendiente: {format_clp(report['total_pending'])}")
    y -= 18
    c.drawString(40, y, f"Total vencido: {format_clp(report['total_overdue'])}")
    y -= 18
    c.drawString(40, y, f"Tasa de recaudación: {report['collection_rate']:.2f}%")
    y -= 30

    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, y, "Detalle por residente:")
    y -= 20

    c.setFont("Helvetica", 11)
    for row in report["residents"]:
        line = (
            f"- Depto {row['apartment']} {row['name']}: "
            f"{row['paid_count']} pagados ({format_clp(row['total_paid'])}) | "
            f"{row['pending_count']} pendientes"
        )
        c.drawString(50, y, line[:110])
        y -= 16

        if y < 60:
            c.showPage()
            y = height - 50
            c.setFont("Helvetica", 11)

    c.showPage()
    c.save()
    return buf.getvalue()
