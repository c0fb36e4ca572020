"""Tests for composite key helpers."""
import pytest
from eventmesh.mesh.refs import (
    api_version_to_group,
    gk_namespaced_name,
    namespaced_name,
    parse_gk_namespaced_name,
    parse_namespaced_name,
)


def test_namespaced_name():
    assert namespaced_name("ns1", "et1") == "ns1/et1"
    assert parse_namespaced_name("ns1/et1") == ("ns1", "et1")


def test_gk_namespaced_name():
    key = gk_namespaced_name("messaging.knative.dev", "InMemoryChannel", "ns", "imc")
    assert key == "messaging.knative.dev/InMemoryChannel/ns/imc"
    assert parse_gk_namespaced_name(key) == ("messaging.knative.dev", "InMemoryChannel", "ns", "imc")


def test_gk_namespaced_name_core_group():
    """The core group renders as an empty leading segment."""
    key = gk_namespaced_name("", "Service", "ns", "svc")
    assert key == "/Service/ns/svc"
    assert parse_gk_namespaced_name(key) == ("", "Service", "ns", "svc")


@pytest.mark.parametrize("key", ["ns", "a/b/c", ""])
def test_parse_namespaced_name_rejects_malformed(key):
    with pytest.raises(ValueError):
        parse_namespaced_name(key)


def test_parse_gk_namespaced_name_rejects_malformed():
    with pytest.raises(ValueError):
        parse_gk_namespaced_name("group/kind/name")


@pytest.mark.parametrize(
    "api_version,group",
    [
        ("eventing.knative.dev/v1", "eventing.knative.dev"),
        ("apps/v1", "apps"),
        ("v1", "v1"),
        ("", ""),
    ],
)
def test_api_version_to_group(api_version, group):
    assert api_version_to_group(api_version) == group
