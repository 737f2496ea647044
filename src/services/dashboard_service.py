"""Dashboard Service - Headline figures for the bakery overview."""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.models import Item, Production, Stock
from src.services.database import session_scope


def get_dashboard_stats(
    today: Optional[date] = None, session: Optional[Session] = None
) -> Dict[str, Any]:
    """
    Compute the dashboard statistics.

    Args:
        today: Day to count productions for (defaults to the current date)
        session: Optional database session

    Returns:
        Dict with:
        - total_items: active items
        - low_stock_items: active items with stock at or below threshold
        - productions_today: active productions dated ``today``
        - total_value: sum of stock quantity * avg_price over active items
    """
    today = today or date.today()

    def _impl(sess: Session) -> Dict[str, Any]:
        total_items = sess.query(func.count(Item.id)).scalar()

        stocked = sess.query(Item, Stock).join(Stock, Stock.item_id == Item.id).all()
        low_stock = 0
        total_value = Decimal("0")
        for item, stock in stocked:
            quantity = Decimal(stock.quantity)
            if quantity <= Decimal(item.reorder_threshold):
                low_stock += 1
            total_value += quantity * Decimal(item.avg_price or 0)

        productions_today = (
            sess.query(func.count(Production.id))
            .filter(Production.production_date == today)
            .scalar()
        )

        return {
            "total_items": total_items,
            "low_stock_items": low_stock,
            "productions_today": productions_today,
            "total_value": total_value,
        }

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)
