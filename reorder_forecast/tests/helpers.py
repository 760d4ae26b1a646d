"""
Factories shared by the test modules.
"""
from datetime import datetime, timedelta

from reorder_forecast.models import ForecastResult, OrderLine

BASE_DATE = datetime(2024, 1, 1)


def make_line(day, quantity=10.0, article=None, name='Bolt M8', delivery_days=None):
    """Order line placed `day` days after BASE_DATE."""
    order_date = BASE_DATE + timedelta(days=day)
    delivery_date = order_date + timedelta(days=delivery_days) if delivery_days is not None else None

    return OrderLine(
        order_date=order_date,
        order_number=f"PO-{day}",
        position_number='1',
        product_name=name,
        article_code=article,
        ordered_quantity=quantity,
        delivered_quantity=quantity,
        delivery_date=delivery_date,
    )


def make_forecast(placement, priority=3, confidence=70.0, article='A-1'):
    return ForecastResult(
        unified_article=article,
        product_name=f"Product {article}",
        next_order_date=placement + timedelta(days=10),
        recommended_quantity=10.0,
        optimal_order_placement_date=placement,
        priority=priority,
        confidence=confidence,
    )
