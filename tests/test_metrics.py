"""
Tests for per-property metrics and the shared averaging routine.
"""

import pytest

from civstat.metrics import PropertyMetric, average_of, extractor, trunc_div
from civstat.models import PropertyRecord


class TestPropertyMetric:

    @pytest.mark.parametrize("name,metric", [
        ("market_value", PropertyMetric.MARKET_VALUE),
        (" Value ", PropertyMetric.MARKET_VALUE),
        ("livable_area", PropertyMetric.LIVABLE_AREA),
        ("total_livable_area", PropertyMetric.LIVABLE_AREA),
    ])
    def test_parse(self, name, metric):
        assert PropertyMetric.parse(name) is metric

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            PropertyMetric.parse("bedrooms")

    def test_extractors(self):
        p = PropertyRecord("19103", 250000, None)
        assert extractor(PropertyMetric.MARKET_VALUE)(p) == 250000
        assert extractor(PropertyMetric.LIVABLE_AREA)(p) is None


class TestAverageOf:

    def test_empty_is_zero(self):
        assert average_of([], extractor(PropertyMetric.MARKET_VALUE)) == 0

    def test_absent_counts_as_zero(self):
        props = [PropertyRecord("19103", 300), PropertyRecord("19103", None)]
        assert average_of(props, extractor(PropertyMetric.MARKET_VALUE)) == 150

    def test_truncates(self):
        props = [PropertyRecord("19103", 1), PropertyRecord("19103", 2)]
        assert average_of(props, extractor(PropertyMetric.MARKET_VALUE)) == 1

    def test_any_extraction_function(self):
        props = [PropertyRecord("19103", 10, 4), PropertyRecord("19103", 20, 6)]
        assert average_of(props, lambda p: p.market_value * p.total_livable_area) == 80


class TestTruncDiv:

    @pytest.mark.parametrize("a,b,expected", [(7, 2, 3), (-7, 2, -3), (7, -2, -3), (0, 5, 0)])
    def test_toward_zero(self, a, b, expected):
        assert trunc_div(a, b) == expected

    def test_large_values_stay_exact(self):
        assert trunc_div(10 ** 20 + 1, 1) == 10 ** 20 + 1
