"""
Analytics Service - platform and seller sales reports

Reports cover a rolling window (7d, 30d, 90d, 1y) ending now. The daily
series lists every day of the window, zero-filled where nothing sold.

Author: TM3
Date: 2025-11-10
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from buysell.core.constants import ANALYTICS_PERIODS, DEFAULT_ANALYTICS_PERIOD, TOP_PRODUCTS_LIMIT
from buysell.core.exceptions import BadRequestError
from buysell.repositories.analytics_repository import AnalyticsRepository

logger = logging.getLogger(__name__)


def date_range(period: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """(start, end) for a period key; end is now, start is N days earlier"""
    if period not in ANALYTICS_PERIODS:
        raise BadRequestError(f"Period must be one of: {', '.join(ANALYTICS_PERIODS)}")

    end = now or datetime.now(timezone.utc)
    return end - timedelta(days=ANALYTICS_PERIODS[period]), end


def fill_daily_series(rows: List[dict], start: date, end: date) -> List[dict]:
    by_day = {row['day']: row for row in rows}
    series = []
    day = start
    while day <= end:
        row = by_day.get(day)
        series.append({
            'date': day.isoformat(),
            'revenue': round(row['revenue'], 2) if row else 0.0,
            'orders': row['orders'] if row else 0,
        })
        day += timedelta(days=1)
    return series


def _ratio(part: float, whole: float, scale: int = 1) -> float:
    return round(part * scale / whole, 2) if whole else 0.0


class AnalyticsService:

    def __init__(self, analytics_repo: AnalyticsRepository = None):
        self.analytics_repo = analytics_repo or AnalyticsRepository()

    def _revenue(self, start: datetime, end: datetime, seller_id: Optional[int]) -> dict:
        revenue = self.analytics_repo.get_revenue(start, end, seller_id)
        return {
            'total': round(revenue['total'], 2),
            'orders': revenue['orders'],
            'average_order_value': _ratio(revenue['total'], revenue['orders']),
        }

    def _orders(self, start: datetime, end: datetime, seller_id: Optional[int]) -> dict:
        counts = self.analytics_repo.get_order_counts(start, end, seller_id)
        counts['conversion_rate'] = _ratio(counts['completed'], counts['total'], scale=100)
        return counts

    def platform_report(self, period: str = DEFAULT_ANALYTICS_PERIOD, now: Optional[datetime] = None) -> dict:
        """Marketplace-wide revenue, orders, users, best sellers and categories"""
        start, end = date_range(period, now)
        repo = self.analytics_repo

        report = {
            'period': period,
            'date_range': {'from': start.isoformat(), 'to': end.isoformat()},
            'revenue': self._revenue(start, end, None),
            'orders': self._orders(start, end, None),
            'users': repo.get_user_counts(start, end),
            'top_products': repo.get_top_products(start, end, limit=TOP_PRODUCTS_LIMIT),
            'sales_by_category': repo.get_sales_by_category(start, end),
            'sales_series': fill_daily_series(repo.get_daily_sales(start, end), start.date(), end.date()),
        }
        logger.info(f"Platform analytics built for {period}")
        return report

    def seller_report(self, seller_id: int, period: str = DEFAULT_ANALYTICS_PERIOD,
                      now: Optional[datetime] = None) -> dict:
        """Same figures restricted to one seller's order lines"""
        start, end = date_range(period, now)
        repo = self.analytics_repo

        return {
            'period': period,
            'seller_id': seller_id,
            'date_range': {'from': start.isoformat(), 'to': end.isoformat()},
            'revenue': self._revenue(start, end, seller_id),
            'orders': self._orders(start, end, seller_id),
            'top_products': repo.get_top_products(start, end, seller_id=seller_id, limit=TOP_PRODUCTS_LIMIT),
            'sales_series': fill_daily_series(
                repo.get_daily_sales(start, end, seller_id), start.date(), end.date()
            ),
        }
