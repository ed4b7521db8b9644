import pytest

from deploymonkey.autodeployers import ScanResult
from deploymonkey.models import ApplicationDefinition, DeployInfo
from deploymonkey.timeseries import (
    DataPoint,
    DeploymentLog,
    QueryRequest,
    QueryType,
    query_deployment_count,
    query_deployment_history,
    query_timeseries,
    query_version_history,
    short_binary,
)


def _logs():
    return [
        DeploymentLog(binary="/srv/bin/Foo-server", build_id=10, started=100),
        DeploymentLog(binary="/srv/bin/bar-server", build_id=11, started=200),
        DeploymentLog(binary="/srv/bin/foo-server", build_id=12, started=300),
    ]


def _apps():
    return [
        ApplicationDefinition(id=1, binary="/a/one", build_id=3, created=50),
        ApplicationDefinition(id=2, binary="/a/two", build_id=4, created=150),
        ApplicationDefinition(id=3, binary="/a/three", build_id=5, created=250),
    ]


@pytest.mark.parametrize(
    "path,expected",
    [("/usr/bin/foo", "foo"), ("foo", "foo"), ("a/b/", "b"), ("", "."), ("///", "/")],
)
def test_short_binary(path, expected):
    assert short_binary(path) == expected


def test_deployment_count_sums_all_scanned_deployments():
    scan = ScanResult()
    scan.add_deployments({"a": DeployInfo(), "b": DeployInfo()})
    scan.add_deployments({"c": DeployInfo()})
    points = query_deployment_count(scan, QueryRequest(end=999))
    assert points == [DataPoint(timestamp=999, value=3.0)]


def test_deployment_history_filters_by_start():
    points = query_deployment_history(_logs(), QueryRequest(start=200))
    assert [p.timestamp for p in points] == [200, 300]
    assert all(p.field_name == "version" for p in points)
    assert [p.value for p in points] == [11.0, 12.0]
    assert points[0].labels == {"binary": "bar-server"}


def test_deployment_history_binary_filter_is_case_insensitive():
    request = QueryRequest(start=0, value_map={"binary": ["FOO"]})
    points = query_deployment_history(_logs(), request)
    assert [p.value for p in points] == [10.0, 12.0]


def test_deployment_history_empty_binary_list_means_no_filter():
    request = QueryRequest(start=0, value_map={"binary": []})
    assert len(query_deployment_history(_logs(), request)) == 3


def test_deployment_history_rejects_multiple_binaries():
    request = QueryRequest(value_map={"binary": ["a", "b"]})
    with pytest.raises(ValueError):
        query_deployment_history(_logs(), request)


def test_deployment_history_annotations():
    request = QueryRequest(start=250, query_type=QueryType.ANNOTATIONS)
    points = query_deployment_history(_logs(), request)
    assert len(points) == 1
    assert points[0].field_name == "text"
    assert points[0].string_value == "foo-server #12"


def test_version_history_range_is_inclusive():
    points = query_version_history(_apps(), QueryRequest(start=50, end=150))
    assert [p.value for p in points] == [1.0, 2.0]
    assert [p.labels["binary"] for p in points] == ["one", "two"]


def test_version_history_annotations():
    request = QueryRequest(start=200, end=300, query_type=QueryType.ANNOTATIONS)
    points = query_version_history(_apps(), request)
    assert [p.string_value for p in points] == ["three Build #5"]
    assert points[0].timestamp == 250


def test_query_timeseries_dispatches():
    scan = ScanResult()
    request = QueryRequest(query="deployments", start=0)
    assert query_timeseries(request, scan, _logs(), _apps()) == query_deployment_history(
        _logs(), request
    )
    request = QueryRequest(query="version_history", start=0, end=1000)
    assert len(query_timeseries(request, scan, _logs(), _apps())) == 3
    request = QueryRequest(query="deployment_count", end=5)
    assert query_timeseries(request, scan, [], []) == [DataPoint(timestamp=5, value=0.0)]


def test_query_timeseries_unknown_query():
    with pytest.raises(ValueError, match="does not implement"):
        query_timeseries(QueryRequest(query="nope"), ScanResult(), [], [])