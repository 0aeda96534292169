"""
Unit Tests - Conversion Funnel
"""
import pytest

from storecast.analytics.funnel import (
    RECOMMENDATION_MESSAGES,
    FunnelRecommendation,
    analyze_funnel,
)


class TestAnalyzeFunnel:
    """Tests for analyze_funnel"""

    def test_stage_counts_and_rates(self, policy, make_order, make_checkout):
        orders = [make_order(total="10", customer=f"c{i}") for i in range(30)]
        checkouts = [make_checkout(total="20") for _ in range(70)]

        analysis = analyze_funnel(orders, checkouts, policy)

        assert analysis.funnel.reached_checkout == 100
        assert analysis.funnel.completed_purchase == 30
        assert analysis.funnel.estimated_visitors == 3333
        assert analysis.funnel.estimated_add_to_cart == 222
        assert analysis.funnel.estimates_basis == "industry_benchmark"
        assert analysis.conversion_rates.checkout_completion == 30.0
        assert analysis.abandonment.abandonment_rate == 70.0
        assert analysis.abandonment.abandoned_revenue == 1400.0
        assert analysis.abandonment.avg_abandoned_value == 20.0
        assert analysis.order_analysis.avg_order_value == 10.0

    def test_rates_sum_to_hundred(self, policy, make_order, make_checkout):
        orders = [make_order() for _ in range(7)]
        checkouts = [make_checkout() for _ in range(5)]

        analysis = analyze_funnel(orders, checkouts, policy)

        total = analysis.conversion_rates.checkout_completion + analysis.abandonment.abandonment_rate
        assert total == pytest.approx(100.0, abs=0.1)

    def test_empty_window(self, policy):
        analysis = analyze_funnel([], [], policy)

        assert analysis.funnel.reached_checkout == 0
        assert analysis.funnel.estimated_visitors == 0
        assert analysis.conversion_rates.checkout_completion == 0.0
        assert analysis.conversion_rates.overall_estimated == 0.0
        assert analysis.abandonment.abandonment_rate == 0.0
        assert analysis.order_analysis.avg_order_value == 0.0
        assert analysis.recommendations == [FunnelRecommendation.LOW_RETURNING_RATE]

    def test_abandonment_at_threshold_is_not_flagged(self, policy, make_order, make_checkout):
        orders = [make_order(total="10", customer=f"c{i}") for i in range(30)]
        checkouts = [make_checkout(total="20") for _ in range(70)]

        flags = analyze_funnel(orders, checkouts, policy).recommendations

        assert flags == [
            FunnelRecommendation.HIGH_VALUE_ABANDONMENT,
            FunnelRecommendation.LOW_RETURNING_RATE,
        ]

    def test_high_abandonment_flag(self, policy, make_order, make_checkout):
        orders = [make_order(total="100", customer="loyal", lifetime_orders=5)]
        checkouts = [make_checkout(total="5") for _ in range(9)]

        analysis = analyze_funnel(orders, checkouts, policy)

        assert analysis.abandonment.abandonment_rate == 90.0
        assert analysis.order_analysis.returning_customer_rate == 100.0
        assert analysis.recommendations == [FunnelRecommendation.HIGH_ABANDONMENT]

    def test_every_flag_has_a_message(self):
        assert set(RECOMMENDATION_MESSAGES) == set(FunnelRecommendation)
