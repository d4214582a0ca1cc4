"""Unit tests for name and label selection."""

import pytest

from hrmm.filtering import label_filter_matches, parse_label_filter, passes_label_filter, select
from hrmm.model import MetricFamily, MetricSample, MetricType


@pytest.fixture
def families():
    requests = MetricFamily(
        name="http_requests_total",
        help="The total number of HTTP requests.",
        type=MetricType.COUNTER,
        samples=[
            MetricSample(labels={"method": "post", "code": "200"}, value=1027.0),
            MetricSample(labels={"method": "post", "code": "400"}, value=3.0),
            MetricSample(labels={"method": "get", "code": "200"}, value=1027.0),
            MetricSample(labels={"method": "get", "code": "400"}, value=3.0),
        ],
    )
    cpu = MetricFamily(
        name="process_cpu_seconds_total",
        type=MetricType.COUNTER,
        samples=[MetricSample(value=12.34)],
    )
    return {requests.name: requests, cpu.name: cpu}


class TestLabelTokens:
    """Test parsing and matching of label filter tokens."""

    def test_parse_bare_token(self):
        """Test parsing of a label name token."""
        assert parse_label_filter("method") == ("method", None)

    def test_parse_pair_token(self):
        """Test parsing of a name=value token."""
        assert parse_label_filter("method=post") == ("method", "post")

    def test_value_may_contain_equals(self):
        """Test that only the first equals sign splits a token."""
        assert parse_label_filter("query=a=b") == ("query", "a=b")
        assert label_filter_matches({"query": "a=b"}, "query=a=b")

    def test_bare_token_matches_any_value(self):
        """Test that a bare name matches any value of that label."""
        assert label_filter_matches({"method": "get"}, "method")
        assert label_filter_matches({"method": ""}, "method")

    def test_pair_token_requires_exact_value(self):
        """Test that a pair token needs an exact value match."""
        assert label_filter_matches({"method": "post"}, "method=post")
        assert not label_filter_matches({"method": "get"}, "method=post")
        assert not label_filter_matches({"method": "postal"}, "method=post")

    def test_value_alone_does_not_match(self):
        """Test that a label value is not matched as a name."""
        assert not label_filter_matches({"method": "post"}, "post")

    def test_empty_value_pair(self):
        """Test matching of a pair token with an empty value."""
        assert label_filter_matches({"method": ""}, "method=")
        assert not label_filter_matches({"method": "get"}, "method=")

    def test_no_filters_pass(self):
        """Test that an empty filter list passes every sample."""
        assert passes_label_filter({}, [])
        assert passes_label_filter({"a": "1"}, ())

    def test_tokens_are_or_combined(self):
        """Test that any matching token lets a sample through."""
        labels = {"method": "get"}
        assert passes_label_filter(labels, ["code", "method=get"])
        assert passes_label_filter(labels, ["method=post", "method"])
        assert not passes_label_filter(labels, ["code", "method=post"])

    def test_unlabelled_sample_fails_any_token(self):
        """Test that a sample without labels fails every token."""
        assert not passes_label_filter({}, ["method"])


class TestSelect:
    """Test selection across families."""

    def test_no_filters_returns_everything(self, families):
        """Test selection without filters."""
        selected = select(families)
        assert len(selected) == 5

    def test_name_filter(self, families):
        """Test selection by metric name."""
        selected = select(families, name_filters=["http_requests_total"])
        assert len(selected) == 4
        assert {s.name for s in selected} == {"http_requests_total"}

    def test_name_filter_with_two_samples(self):
        """Test that a name filter keeps every sample of the family."""
        family = MetricFamily(
            name="http_requests_total",
            type=MetricType.COUNTER,
            samples=[
                MetricSample(labels={"method": "post", "code": "200"}, value=1027.0),
                MetricSample(labels={"method": "get", "code": "400"}, value=3.0),
            ],
        )
        selected = select({family.name: family}, ["http_requests_total"], [])

        assert [s.sample for s in selected] == list(family.samples)
        assert selected[0].family.help == ""
        assert selected[0].family.type is MetricType.COUNTER

    def test_unknown_name_selects_nothing(self, families):
        """Test selection by a name that is not exposed."""
        assert select(families, name_filters=["missing_metric"]) == []

    def test_label_pair_filter(self, families):
        """Test selection by label name and value."""
        selected = select(families, label_filters=["method=post"])
        assert len(selected) == 2
        assert all(s.sample.labels["method"] == "post" for s in selected)

    def test_bare_label_filter(self, families):
        """Test selection by label name only."""
        selected = select(families, label_filters=["method"])
        assert len(selected) == 4
        assert "process_cpu_seconds_total" not in {s.name for s in selected}

    def test_name_and_label_filters_combine(self, families):
        """Test that name and label filters must both pass."""
        selected = select(
            families,
            name_filters=["process_cpu_seconds_total"],
            label_filters=["method"],
        )
        assert selected == []

    def test_order_follows_families(self, families):
        """Test that selection keeps family and sample order."""
        selected = select(families)
        assert [s.name for s in selected] == ["http_requests_total"] * 4 + [
            "process_cpu_seconds_total"
        ]
        assert selected[1].sample.labels["code"] == "400"

    def test_family_meta_attached(self, families):
        """Test that selected samples carry their family metadata."""
        selected = select(families, name_filters=["http_requests_total"])
        assert selected[0].family.help == "The total number of HTTP requests."
        assert selected[0].family.type is MetricType.COUNTER
