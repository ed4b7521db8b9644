from deploymonkey.models import (
    ApplicationDefinition,
    Config,
    Deployer,
    Deployers,
    GroupDefinitionRequest,
    app_to_string,
)


def test_app_to_string_format():
    app = ApplicationDefinition(build_id=7, repository_id=3, binary="foo")
    assert app_to_string(app) == "Build #7 in 3(foo)"


def test_app_to_string_contains_binary():
    app = ApplicationDefinition(build_id=1, repository_id=2, binary="server-bin")
    assert "server-bin" in app_to_string(app)


def test_by_group_filters_targets():
    a = Deployer(host="h1", machine_groups=["worker"])
    b = Deployer(host="h2", machine_groups=["db", "worker"])
    c = Deployer(host="h3", machine_groups=["db"])
    deployers = Deployers([a, b, c])
    assert deployers.by_group("worker").targets == [a, b]
    assert deployers.by_group("db").targets == [b, c]
    assert deployers.by_group("none").targets == []


def test_by_ip_filters_targets():
    a = Deployer(host="h1")
    b = Deployer(host="h2")
    deployers = Deployers([a, b])
    assert deployers.by_ip("h2").targets == [b]
    assert len(deployers.by_ip("h9")) == 0


def test_app_iterator_preserves_order():
    a1 = ApplicationDefinition(id=1)
    a2 = ApplicationDefinition(id=2)
    a3 = ApplicationDefinition(id=3)
    g1 = GroupDefinitionRequest(namespace="n1", applications=[a1, a2])
    g2 = GroupDefinitionRequest(namespace="n2", applications=[a3])
    items = Config(groups=[g1, g2]).app_iterator()
    assert [i.app.id for i in items] == [1, 2, 3]
    assert [i.group.namespace for i in items] == ["n1", "n1", "n2"]


def test_app_iterator_empty():
    assert Config().app_iterator() == []