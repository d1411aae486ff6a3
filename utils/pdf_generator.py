from io import BytesIO
from reportlab.pdfgen import canvas
from reportlab.lib.units import inch
from models.order_management import Order
from fastapi import HTTPException
import logging
from datetime import datetime

logger = logging.getLogger(__name__)

RECEIPT_WIDTH = 4 * inch
LINE_HEIGHT = 0.2 * inch
MAX_NAME_LENGTH = 25


def receipt_height(order: Order) -> float:
    """Page height grows with the number of item and split lines."""
    split_lines = len((order.table.split_bills or {}).get("divisions", [])) if order.table else 0
    return 4.5 * inch + (len(order.items) + split_lines) * LINE_HEIGHT


def generate_receipt_pdf(order: Order) -> BytesIO:
    """
    Generate a receipt for an order (4" wide, sized for thermal printers).
    Lists every item, the total, the payment state and, when the
    table has a split bill, each diner's share.
    """
    buffer = BytesIO()
    height = receipt_height(order)
    c = canvas.Canvas(buffer, pagesize=(RECEIPT_WIDTH, height))

    try:
        margin = 0.2 * inch
        y_pos = height - margin - 0.1 * inch

        # Header
        c.setFont("Helvetica-Bold", 14)
        c.drawCentredString(RECEIPT_WIDTH / 2, y_pos, "FloorPOS")
        y_pos -= 0.3 * inch

        # Order details
        c.setFont("Helvetica-Bold", 9)
        created = order.created_at or datetime.utcnow()
        c.drawString(margin, y_pos, f"Order No: {order.id}")
        c.drawRightString(RECEIPT_WIDTH - margin, y_pos, f"Date: {created.strftime('%d-%m-%Y')}")
        y_pos -= 0.15 * inch
        c.drawString(margin, y_pos, f"Table: {order.table_number}")
        c.drawRightString(RECEIPT_WIDTH - margin, y_pos, f"Time: {created.strftime('%H:%M')}")
        y_pos -= 0.15 * inch
        c.setFont("Helvetica", 8)
        c.drawString(margin, y_pos, f"Served by: {order.waiter_name or '-'}   Guests: {order.customer_count}")
        y_pos -= 0.25 * inch

        # Item header
        c.setFont("Helvetica-Bold", 8)
        c.drawString(margin, y_pos, "DESCRIPTION")
        c.drawCentredString(RECEIPT_WIDTH / 2, y_pos, "QTY")
        c.drawRightString(RECEIPT_WIDTH - margin, y_pos, "AMOUNT")
        y_pos -= 0.15 * inch
        c.line(margin, y_pos, RECEIPT_WIDTH - margin, y_pos)
        y_pos -= 0.15 * inch

        c.setFont("Helvetica", 8)
        for item in order.items:
            item_name = item.menu_item_name or "Unknown Item"
            if len(item_name) > MAX_NAME_LENGTH:
                item_name = item_name[:MAX_NAME_LENGTH - 3] + "..."
            c.drawString(margin + 0.1 * inch, y_pos, item_name)
            c.drawCentredString(RECEIPT_WIDTH / 2, y_pos, str(item.quantity))
            c.drawRightString(RECEIPT_WIDTH - margin - 0.1 * inch, y_pos, f"${item.price * item.quantity:.2f}")
            y_pos -= LINE_HEIGHT

        # Total
        c.line(margin, y_pos, RECEIPT_WIDTH - margin, y_pos)
        y_pos -= 0.2 * inch
        c.setFont("Helvetica-Bold", 9)
        c.drawString(margin, y_pos, "TOTAL:")
        c.drawRightString(RECEIPT_WIDTH - margin, y_pos, f"${order.total_amount:.2f}")
        y_pos -= 0.2 * inch

        c.setFont("Helvetica", 8)
        c.drawString(margin, y_pos, f"Payment: {order.payment_method.value}  Status: {order.payment_status.value}")
        y_pos -= 0.2 * inch

        split = order.table.split_bills if order.table else None
        if split and split.get("enabled"):
            c.setFont("Helvetica-Bold", 8)
            c.drawString(margin, y_pos, f"Split ({split.get('method', 'equal')}):")
            y_pos -= 0.15 * inch
            c.setFont("Helvetica", 8)
            for division in split.get("divisions", []):
                c.drawString(margin + 0.1 * inch, y_pos, division.get("name") or "Guest")
                c.drawRightString(RECEIPT_WIDTH - margin - 0.1 * inch, y_pos, f"${division.get('amount') or 0:.2f}")
                y_pos -= LINE_HEIGHT

        # Footer
        c.line(margin, y_pos, RECEIPT_WIDTH - margin, y_pos)
        y_pos -= 0.15 * inch
        c.drawCentredString(RECEIPT_WIDTH / 2, y_pos, "Thank you for your visit!")

        c.showPage()
        c.save()
        buffer.seek(0)
        return buffer

    except Exception as e:
        logger.error(f"Error generating receipt PDF for order {order.id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to generate receipt PDF")
