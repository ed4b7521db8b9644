from deploymonkey.autodeployers import (
    MAX_QUERY_FAILURES,
    AutoDeployer,
    AutodeployerCache,
    ScanResult,
)
from deploymonkey.models import DeployInfo


def make_cache():
    cache = AutodeployerCache()
    cache.update(AutoDeployer(ip="10.0.0.1", port=4000, groups=["worker"]))
    cache.update(AutoDeployer(ip="10.0.0.2", port=4000, groups=["worker", "db"]))
    return cache


def test_get_unknown_is_none():
    cache = make_cache()
    assert cache.get("10.0.0.9", 4000) is None
    assert cache.get("10.0.0.1", 4001) is None


def test_update_adds_new_deployer():
    cache = make_cache()
    assert len(cache) == 2
    found = cache.get("10.0.0.2", 4000)
    assert found.groups == ["worker", "db"]


def test_update_existing_refreshes_apps_only():
    cache = make_cache()
    apps = {"a1": DeployInfo(binary="svc")}
    cache.update(AutoDeployer(ip="10.0.0.1", port=4000, groups=["other"], apps=apps))
    assert len(cache) == 2
    found = cache.get("10.0.0.1", 4000)
    assert found.apps == apps
    assert found.groups == ["worker"]


def test_mark_registered():
    cache = make_cache()
    cache.mark_registered([("10.0.0.2", 4000)])
    assert cache.get("10.0.0.1", 4000).available is False
    assert cache.get("10.0.0.2", 4000).available is True
    assert [d.ip for d in cache.available()] == ["10.0.0.2"]


def test_brokenness_threshold():
    cache = make_cache()
    for _ in range(MAX_QUERY_FAILURES):
        cache.inc_failure("10.0.0.1", 4000)
    cache.set_brokenness("10.0.0.1", 4000)
    assert cache.get("10.0.0.1", 4000).broken is False
    cache.inc_failure("10.0.0.1", 4000)
    cache.set_brokenness("10.0.0.1", 4000)
    assert cache.get("10.0.0.1", 4000).broken is True
    assert cache.non_broken_addresses() == [("10.0.0.2", 4000)]
    assert [d.ip for d in cache.available()] == ["10.0.0.2"]


def test_inc_failure_unknown_does_not_create():
    cache = make_cache()
    cache.inc_failure("10.0.0.9", 4000)
    assert cache.get("10.0.0.9", 4000) is None
    assert len(cache) == 2


def test_deployments_filtered_by_prefix():
    cache = AutodeployerCache()
    apps = {
        "a": DeployInfo(deployment_id="DM-APPDEF--3-10"),
        "b": DeployInfo(deployment_id="DM-APPDEF--4-11"),
    }
    cache.update(AutoDeployer(ip="h", port=4000, apps=apps))
    assert cache.deployments("h", 4000, "DM-APPDEF--3-") == {"a": apps["a"]}
    assert cache.deployments("h", 4000, "") == apps
    assert cache.deployments("h", 4001, "") == {}


def test_deployments_of_broken_deployer_excluded():
    cache = AutodeployerCache()
    apps = {"a": DeployInfo(deployment_id="x")}
    cache.update(AutoDeployer(ip="h", port=4000, apps=apps, broken=True))
    assert cache.deployments("h", 4000, "") == {}


def test_machine_group_counts():
    cache = make_cache()
    counts = cache.machine_group_counts()
    assert counts["worker"] == 2
    assert counts["db"] == 1
    assert sum(counts.values()) == 3


def test_scan_result_counts_deployments():
    scan = ScanResult()
    assert scan.deployment_count() == 0
    scan.add_deployments({"a": DeployInfo(), "b": DeployInfo()})
    scan.add_deployments({"c": DeployInfo()})
    assert scan.deployment_count() == 3
    assert len(scan.deployments) == 2