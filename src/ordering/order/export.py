"""CSV export of orders for the back office."""

import csv
import io

EXPORT_COLUMNS = ["Order ID", "Date", "Customer", "Phone", "Status", "Total", "Items"]


def items_summary(order) -> str:
    return "; ".join(f"{item.name} ({item.quantity})" for item in order.items)


def export_orders_csv(orders) -> str:
    """Render orders as CSV text, one row per order, in the given order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for order in orders:
        name, phone = order.contact()
        writer.writerow(
            [
                str(order.id),
                order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else "",
                name or "",
                phone or "",
                order.status,
                order.total_amount,
                items_summary(order),
            ]
        )
    return buffer.getvalue()
