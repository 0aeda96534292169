"""
Integration Tests - Report Pipelines
"""
import asyncio
from datetime import date, datetime, timezone
from typing import List, Optional

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from storecast.ingestion import InMemoryRecordSource
from storecast.models import CustomerRecord, LineItem, PeriodWindow
from storecast.pipelines import ReportService


def _at(month: int, day: int) -> datetime:
    return datetime(2024, month, day, 12, 0, tzinfo=timezone.utc)


class RecordingSource(InMemoryRecordSource):
    """In-memory source that records every fetch"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls: List[str] = []

    async def fetch_orders(self, window: PeriodWindow, query_filter: Optional[str] = None):
        self.calls.append("orders")
        return await super().fetch_orders(window, query_filter)

    async def fetch_abandoned_checkouts(self, window: PeriodWindow):
        self.calls.append("checkouts")
        return await super().fetch_abandoned_checkouts(window)

    async def fetch_new_customers(self, window: PeriodWindow):
        self.calls.append("new_customers")
        return await super().fetch_new_customers(window)

    async def fetch_customers(self):
        self.calls.append("customers")
        return await super().fetch_customers()


class FailingSource(InMemoryRecordSource):
    """Source whose order fetch always fails"""

    async def fetch_orders(self, window: PeriodWindow, query_filter: Optional[str] = None):
        raise ConnectionError("store API unavailable")


class SlowSiblingSource(FailingSource):
    """Order fetch fails while the new-customer fetch is still waiting"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.sibling_finished = False

    async def fetch_new_customers(self, window: PeriodWindow):
        await asyncio.sleep(0.05)
        self.sibling_finished = True
        return []


@pytest.fixture
def store_source(make_order, make_checkout) -> RecordingSource:
    return RecordingSource(
        orders=[
            make_order(
                total="100",
                created_at=_at(6, 10),
                customer="c1",
                lifetime_orders=3,
                referrer="https://www.google.com/search?q=mugs",
                items=[LineItem(quantity=2, unit_total="100", product_id="mug", inventory_on_hand=4)],
            ),
            make_order(
                total="50",
                created_at=_at(6, 12),
                landing_page="https://mystore.com/products/mug",
            ),
            make_order(total="100", created_at=_at(6, 3)),
        ],
        abandoned_checkouts=[make_checkout(total="80", created_at=_at(6, 11))],
        customers=[
            CustomerRecord(id="c1", created_at=_at(6, 9), lifetime_order_count=3, total_spent="300"),
        ],
    )


@pytest.fixture
def service(store_source, policy) -> ReportService:
    return ReportService(store_source, store_domain="mystore.com", policy=policy)


@pytest.fixture
def generated_source(generator) -> InMemoryRecordSource:
    as_of = date(2024, 6, 15)
    return InMemoryRecordSource(
        orders=generator.orders(400, start=date(2024, 3, 1), end=date(2024, 6, 16)),
        abandoned_checkouts=generator.abandoned_checkouts(300, start=date(2024, 5, 1), end=date(2024, 6, 16)),
        customers=generator.customers_records(as_of),
    )


class TestStoreAnalytics:
    """Tests for the store analytics report"""

    @pytest.mark.asyncio
    async def test_totals_traffic_and_comparison(self, service):
        result = await service.store_analytics(period_days=7, as_of=date(2024, 6, 14))

        assert result.period.start == date(2024, 6, 8)
        assert result.period.end == date(2024, 6, 14)
        assert result.orders.total == 2
        assert result.orders.items_sold == 2
        assert result.revenue.total == 150.0
        assert result.revenue.daily_average == 21.43
        assert result.revenue.average_order_value == 75.0
        assert result.customers.returning_customer_orders == 1
        assert result.customers.new_customers_acquired == 1
        assert result.traffic.estimated_sessions == 80
        assert result.traffic.estimated_daily_sessions == 11
        assert result.traffic.sources == {"direct": 1, "google": 1}
        assert result.traffic.source_shares_pct == {"direct": 50.0, "google": 50.0}
        assert result.comparison.revenue_change_pct == "50.0"
        assert result.comparison.orders_change_pct == "100.0"

    @pytest.mark.asyncio
    async def test_without_comparison(self, service, store_source):
        result = await service.store_analytics(period_days=7, compare_previous=False, as_of=date(2024, 6, 14))

        assert result.comparison is None
        assert store_source.calls.count("orders") == 1

    @pytest.mark.asyncio
    async def test_empty_store(self, policy):
        service = ReportService(InMemoryRecordSource(), store_domain="", policy=policy)

        result = await service.store_analytics(period_days=30, as_of=date(2024, 6, 14))

        assert result.orders.total == 0
        assert result.revenue.total == 0.0
        assert result.revenue.average_order_value == 0.0
        assert result.traffic.sources == {}
        assert result.comparison.revenue_change_pct == "N/A"

    @pytest.mark.asyncio
    async def test_landing_page_without_store_domain_is_direct(self, policy, make_order):
        source = InMemoryRecordSource(orders=[
            make_order(created_at=_at(6, 10), landing_page="https://mystore.com/products/mug"),
        ])
        service = ReportService(source, store_domain="", policy=policy)

        result = await service.store_analytics(period_days=7, as_of=date(2024, 6, 14))

        assert result.traffic.sources == {"direct": 1}

    @pytest.mark.asyncio
    async def test_invalid_period_fails_before_fetch(self, service, store_source):
        with pytest.raises(ValidationError):
            await service.store_analytics(period_days=0)

        assert store_source.calls == []

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self, policy):
        service = ReportService(FailingSource(), store_domain="mystore.com", policy=policy)

        with capture_logs() as logs:
            with pytest.raises(ConnectionError):
                await service.store_analytics(period_days=7, as_of=date(2024, 6, 14))

        assert any(e["event"] == "Report fetch failed" and e["log_level"] == "error" for e in logs)

    @pytest.mark.asyncio
    async def test_failure_cancels_pending_fetches(self, policy):
        source = SlowSiblingSource()
        service = ReportService(source, store_domain="mystore.com", policy=policy)

        with pytest.raises(ConnectionError):
            await service.store_analytics(period_days=7, as_of=date(2024, 6, 14))
        await asyncio.sleep(0.1)

        assert source.sibling_finished is False

    @pytest.mark.asyncio
    async def test_malformed_previous_period_amounts_are_logged(self, policy, make_order):
        source = InMemoryRecordSource(orders=[
            make_order(total="10", created_at=_at(6, 10)),
            make_order(total="garbage", created_at=_at(6, 3)),
        ])
        service = ReportService(source, store_domain="mystore.com", policy=policy)

        with capture_logs() as logs:
            result = await service.store_analytics(period_days=7, as_of=date(2024, 6, 14))

        assert result.comparison.previous_orders == 1
        warnings = [e for e in logs if e["log_level"] == "warning"]
        assert warnings and warnings[0]["malformed_values"] == 1

    @pytest.mark.asyncio
    async def test_malformed_amounts_are_logged(self, policy, make_order):
        source = InMemoryRecordSource(orders=[make_order(total="n/a", created_at=_at(6, 10))])
        service = ReportService(source, store_domain="mystore.com", policy=policy)

        with capture_logs() as logs:
            result = await service.store_analytics(period_days=7, as_of=date(2024, 6, 14))

        assert result.orders.total == 1
        assert result.revenue.total == 0.0
        warnings = [e for e in logs if e["log_level"] == "warning"]
        assert warnings and warnings[0]["malformed_values"] == 1


class TestForecastReport:
    """Tests for the forecast report"""

    @pytest.mark.asyncio
    async def test_forecast_with_annual_projection(self, policy, make_order):
        orders = (
            [make_order(total="100", created_at=_at(4, d)) for d in (3, 20)]
            + [make_order(total="100", created_at=_at(5, d)) for d in (2, 9, 28)]
        )
        service = ReportService(InMemoryRecordSource(orders=orders), policy=policy)

        result = await service.forecast(
            forecast_months=[1, 12],
            include_seasonality=False,
            as_of=date(2024, 6, 15),
        )

        assert result.history.days == 90
        assert result.baseline.months_observed == 2
        assert result.baseline.avg_monthly_orders == 3
        assert result.baseline.observed_growth_pct == 50.0
        assert result.scenario == "moderate"
        assert result.seasonality_applied is False
        assert [p.months_ahead for p in result.forecasts] == [1, 12]
        year = result.forecasts[1]
        assert result.annual_projection.orders == year.projected_orders * 12
        assert result.annual_projection.revenue == pytest.approx(year.projected_revenue * 12, abs=0.01)

    @pytest.mark.asyncio
    async def test_no_annual_projection_without_twelve_months(self, policy):
        service = ReportService(InMemoryRecordSource(), policy=policy)

        result = await service.forecast(forecast_months=[3], as_of=date(2024, 6, 15))

        assert result.annual_projection is None
        assert result.forecasts[0].projected_revenue == 0.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [
        {"forecast_months": []},
        {"forecast_months": [0, 3]},
        {"growth_scenario": "explosive"},
    ])
    async def test_invalid_params_fail_before_fetch(self, service, store_source, kwargs):
        with pytest.raises(ValidationError):
            await service.forecast(**kwargs)

        assert store_source.calls == []


class TestConversionAnalysis:
    """Tests for the conversion analysis report"""

    @pytest.mark.asyncio
    async def test_funnel_report(self, service, store_source):
        result = await service.conversion_analysis(period_days=7, as_of=date(2024, 6, 14))

        assert sorted(store_source.calls) == ["checkouts", "orders"]
        assert result.period.days == 7
        assert result.funnel.reached_checkout == 3
        assert result.funnel.completed_purchase == 2
        assert result.abandonment.abandoned_checkouts == 1
        assert result.abandonment.abandonment_rate == 33.3
        assert result.conversion_rates.checkout_completion == 66.7
        assert result.abandonment.avg_abandoned_value == 80.0

    @pytest.mark.asyncio
    async def test_invalid_period(self, service, store_source):
        with pytest.raises(ValidationError):
            await service.conversion_analysis(period_days=-1)

        assert store_source.calls == []


class TestProductPerformance:
    """Tests for the product performance report"""

    @pytest.mark.asyncio
    async def test_rankings_respect_top_n(self, generated_source, policy):
        service = ReportService(generated_source, store_domain="shop.example.com", policy=policy)

        result = await service.product_performance(period_days=30, top_n=3, as_of=date(2024, 6, 15))

        assert result.summary.total_products_sold > 3
        assert len(result.top_by_revenue) == 3
        assert len(result.top_by_units) == 3
        assert len(result.fastest_moving) == 3
        assert len(result.restock_soon) <= 5
        assert len(result.consider_promotion) <= 5
        revenues = [p.revenue for p in result.top_by_revenue]
        assert revenues == sorted(revenues, reverse=True)

    @pytest.mark.asyncio
    async def test_invalid_top_n(self, service):
        with pytest.raises(ValidationError):
            await service.product_performance(top_n=0)


class TestSegmentAnalysis:
    """Tests for the segment analysis report"""

    @pytest.mark.asyncio
    async def test_rfm_segments(self, generated_source, policy):
        service = ReportService(generated_source, policy=policy)

        result = await service.segment_analysis("rfm", as_of=date(2024, 6, 15))

        assert result.segment_type == "rfm"
        assert result.total_customers == 80
        assert sum(s.count for s in result.segments) == 80

    @pytest.mark.asyncio
    async def test_unknown_segment_type(self, service, store_source):
        with pytest.raises(ValidationError):
            await service.segment_analysis("zodiac")

        assert store_source.calls == []


class TestDeterminism:
    """Identical inputs produce identical reports"""

    @pytest.mark.asyncio
    async def test_reports_are_repeatable(self, generated_source, policy):
        service = ReportService(generated_source, store_domain="shop.example.com", policy=policy)
        as_of = date(2024, 6, 15)

        for run in (
            lambda: service.store_analytics(period_days=30, as_of=as_of),
            lambda: service.forecast(as_of=as_of),
            lambda: service.conversion_analysis(period_days=30, as_of=as_of),
            lambda: service.product_performance(period_days=30, as_of=as_of),
            lambda: service.segment_analysis("lifecycle", as_of=as_of),
        ):
            first = await run()
            second = await run()
            assert first.model_dump_json() == second.model_dump_json()

    def test_generator_is_seeded(self):
        from storecast.data import OrderGenerator

        start, end = date(2024, 1, 1), date(2024, 2, 1)
        first = OrderGenerator(seed=3).orders(20, start, end)
        second = OrderGenerator(seed=3).orders(20, start, end)

        assert first == second
        assert all(start <= o.created_at.date() < end for o in first)
        assert all(o.created_at <= n.created_at for o, n in zip(first, first[1:]))
