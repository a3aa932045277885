import pytest

from fakes import FakeAgent, FakePool
from logcfg_master.errors import NoCollectorAvailable
from logcfg_master.scheduler import registry, select_collector


def test_project_modulo_registration():
    assert "project_modulo" in registry.available()
    with pytest.raises(KeyError):
        registry.create("round_robin")


def test_project_modulo_is_deterministic_and_order_independent():
    policy = registry.create("project_modulo")
    agents = [FakeAgent("k8s-c"), FakeAgent("k8s-a"), FakeAgent("k8s-b")]

    picks = {policy.select_collector(agents, 7).agent_id for _ in range(5)}
    assert picks == {"k8s-b"}  # sorted: a, b, c; 7 % 3 == 1

    reversed_pick = policy.select_collector(list(reversed(agents)), 7)
    assert reversed_pick.agent_id == "k8s-b"
    assert policy.select_collector(agents, 9).agent_id == "k8s-a"


def test_namespace_group_is_preferred():
    pool = FakePool([FakeAgent("prod-k8s-1"), FakeAgent("k8s-generic")])
    policy = registry.create("project_modulo")

    agent = select_collector(pool.prefix, "prod", 4, policy)

    assert agent.agent_id == "prod-k8s-1"


def test_falls_back_to_generic_group():
    pool = FakePool([FakeAgent("k8s-1"), FakeAgent("k8s-2"), FakeAgent("staging-k8s-1")])
    policy = registry.create("project_modulo")

    agent = select_collector(pool.prefix, "prod", 5, policy)

    assert agent.agent_id == "k8s-2"


def test_no_collector_available_when_both_groups_empty():
    pool = FakePool([FakeAgent("staging-k8s-1"), FakeAgent("file-node")])
    policy = registry.create("project_modulo")

    with pytest.raises(NoCollectorAvailable) as excinfo:
        select_collector(pool.prefix, "prod", 3, policy)

    assert excinfo.value.code == 1
