"""
Unit tests for AnalyticsService
"""
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest

from buysell.core.exceptions import BadRequestError
from buysell.services.analytics_service import AnalyticsService, date_range, fill_daily_series

NOW = datetime(2025, 11, 9, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repo():
    fake = MagicMock()
    fake.get_revenue.return_value = {'total': 53200.0, 'orders': 2}
    fake.get_order_counts.return_value = {'total': 8, 'completed': 2, 'cancelled': 1, 'items': 11}
    fake.get_user_counts.return_value = {'new_users': 4, 'active_users': 9, 'new_sellers': 1}
    fake.get_top_products.return_value = [{'product_id': 100, 'units_sold': 4}]
    fake.get_sales_by_category.return_value = [{'category': 'Home', 'revenue': 53200.0}]
    fake.get_daily_sales.return_value = [{'day': date(2025, 11, 8), 'revenue': 26600.0, 'orders': 1}]
    return fake


@pytest.fixture
def service(repo):
    return AnalyticsService(analytics_repo=repo)


class TestDateRange:

    @pytest.mark.parametrize("period,days", [("7d", 7), ("30d", 30), ("90d", 90), ("1y", 365)])
    def test_window_ends_now(self, period, days):
        start, end = date_range(period, NOW)

        assert end == NOW
        assert (end - start).days == days

    def test_unknown_period(self):
        with pytest.raises(BadRequestError, match="7d, 30d, 90d, 1y"):
            date_range("2w", NOW)


class TestDailySeries:

    def test_missing_days_are_zero(self):
        rows = [{'day': date(2025, 11, 8), 'revenue': 26600.0, 'orders': 1}]

        series = fill_daily_series(rows, date(2025, 11, 7), date(2025, 11, 9))

        assert series == [
            {'date': '2025-11-07', 'revenue': 0.0, 'orders': 0},
            {'date': '2025-11-08', 'revenue': 26600.0, 'orders': 1},
            {'date': '2025-11-09', 'revenue': 0.0, 'orders': 0},
        ]


class TestPlatformReport:

    def test_report_sections(self, service, repo):
        # Act
        report = service.platform_report("7d", now=NOW)

        # Assert
        assert report['period'] == "7d"
        assert report['revenue'] == {'total': 53200.0, 'orders': 2, 'average_order_value': 26600.0}
        assert report['orders']['conversion_rate'] == 25.0
        assert report['users']['active_users'] == 9
        assert report['sales_by_category'][0]['category'] == 'Home'
        assert len(report['sales_series']) == 8
        assert report['sales_series'][-2] == {'date': '2025-11-08', 'revenue': 26600.0, 'orders': 1}
        start, end = repo.get_revenue.call_args[0][:2]
        assert end == NOW
        assert repo.get_revenue.call_args[0][2] is None
        assert repo.get_top_products.call_args[1]['limit'] == 10

    def test_empty_window_has_zero_ratios(self, service, repo):
        repo.get_revenue.return_value = {'total': 0.0, 'orders': 0}
        repo.get_order_counts.return_value = {'total': 0, 'completed': 0, 'cancelled': 0, 'items': 0}

        report = service.platform_report("30d", now=NOW)

        assert report['revenue']['average_order_value'] == 0.0
        assert report['orders']['conversion_rate'] == 0.0


class TestSellerReport:

    def test_scoped_to_seller(self, service, repo):
        report = service.seller_report(2, "30d", now=NOW)

        assert report['seller_id'] == 2
        assert 'users' not in report
        assert 'sales_by_category' not in report
        assert repo.get_revenue.call_args[0][2] == 2
        assert repo.get_order_counts.call_args[0][2] == 2
        assert repo.get_top_products.call_args[1]['seller_id'] == 2
        assert repo.get_daily_sales.call_args[0][2] == 2
        repo.get_user_counts.assert_not_called()
