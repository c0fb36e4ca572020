"""Tests for cluster adapters."""
import pytest
from unittest.mock import MagicMock, patch
import orjson
from kubernetes import client
from kubernetes.client.rest import ApiException
from kubernetes.dynamic.exceptions import ResourceNotFoundError
from eventmesh.adapters.base import AdapterError, ResourceNotFound
from eventmesh.adapters.kubernetes import KubernetesAdapter, with_bearer_token
from eventmesh.adapters.memory import InMemoryAdapter
from eventmesh.mesh.models import KindCoordinates, ObjectReference
from eventmesh import testing

PING = KindCoordinates(
    definition="pingsources.sources.knative.dev",
    group="sources.knative.dev",
    version="v1",
    resource="pingsources",
    kind="PingSource",
)


def test_memory_adapter_routes_resources():
    """Test in-memory adapter sorts resources into their listings."""
    channel = testing.reference("messaging.knative.dev/v1", "InMemoryChannel", "imc")
    adapter = InMemoryAdapter([
        testing.broker("b", "ns1"),
        testing.event_type("et", "ns1", "foo"),
        testing.trigger("t", "ns1", "b"),
        testing.channel_subscription("s", "ns1", channel),
        testing.definition("sources.knative.dev", "PingSource", "pingsources", {"duck.knative.dev/source": "true"}),
        testing.instance("sources.knative.dev/v1", "PingSource", "ping", "ns1"),
    ])

    assert len(adapter.list_brokers()) == 1
    assert len(adapter.list_event_types()) == 1
    assert len(adapter.list_triggers()) == 1
    assert len(adapter.list_subscriptions()) == 1
    assert len(adapter.list_schema_definitions("duck.knative.dev/source=true")) == 1
    assert adapter.list_schema_definitions("messaging.knative.dev/subscribable=true") == []
    assert [o["metadata"]["name"] for o in adapter.list_instances(PING)] == ["ping"]


def test_memory_adapter_selector_terms():
    adapter = InMemoryAdapter([
        testing.definition("g.dev", "A", "as", {"x": "1", "y": "2"}),
        testing.definition("g.dev", "B", "bs", {"x": "1"}),
    ])
    assert len(adapter.list_schema_definitions("x=1")) == 2
    assert len(adapter.list_schema_definitions("x=1,y=2")) == 1
    assert len(adapter.list_schema_definitions("y")) == 1


def test_memory_adapter_resolve_identity():
    adapter = InMemoryAdapter([
        testing.service("svc", "ns1", identity="svc-a"),
        testing.service("plain", "ns1"),
    ])
    label = testing.IDENTITY_LABEL

    def ref(name, ns="ns1"):
        return ObjectReference(api_version="v1", kind="Service", namespace=ns, name=name)

    assert adapter.resolve_identity(ref("svc"), label) == "svc-a"
    assert adapter.resolve_identity(ref("plain"), label) is None
    assert adapter.resolve_identity(ref("svc", "ns2"), label) is None


def test_memory_adapter_injected_failures():
    adapter = InMemoryAdapter()
    adapter.fail_listing("brokers", AdapterError("boom", status=500))
    ref = ObjectReference(api_version="v1", kind="Service", namespace="ns1", name="svc")
    adapter.fail_lookup(ref, AdapterError("forbidden", status=403))

    with pytest.raises(AdapterError):
        adapter.list_brokers()
    with pytest.raises(AdapterError):
        adapter.resolve_identity(ref, testing.IDENTITY_LABEL)
    assert adapter.list_triggers() == []


def test_memory_adapter_from_snapshot(tmp_path):
    """Test in-memory adapter loads a kubectl-style List file."""
    path = tmp_path / "cluster.json"
    path.write_bytes(orjson.dumps({
        "apiVersion": "v1",
        "kind": "List",
        "items": [testing.broker("b", "ns1"), testing.event_type("et", "ns1", "foo")],
    }))

    adapter = InMemoryAdapter.from_snapshot(path)

    assert len(adapter.list_brokers()) == 1
    assert len(adapter.list_event_types()) == 1
    assert adapter.health_check() is True


def test_memory_adapter_from_plain_list(tmp_path):
    path = tmp_path / "cluster.json"
    path.write_bytes(orjson.dumps([testing.broker("b", "ns1")]))
    assert len(InMemoryAdapter.from_snapshot(path).list_brokers()) == 1


def _configuration():
    configuration = client.Configuration()
    configuration.host = "https://kubernetes.example"
    return configuration


def test_with_bearer_token():
    """Test the caller's token replaces the service credentials."""
    base = _configuration()
    base.api_key = {"authorization": "service-token"}
    base.api_key_prefix = {"authorization": "Bearer"}
    base.cert_file = "/tmp/cert"

    configuration = with_bearer_token(base, "caller-token")

    assert configuration.api_key == {"authorization": "caller-token"}
    assert configuration.api_key_prefix == {"authorization": "Bearer"}
    assert configuration.cert_file is None
    assert configuration.refresh_api_key_hook is None
    assert configuration.host == "https://kubernetes.example"
    # base untouched
    assert base.api_key == {"authorization": "service-token"}
    assert base.cert_file == "/tmp/cert"


def test_kubernetes_adapter_uses_caller_token():
    adapter = KubernetesAdapter(_configuration(), token="caller-token")
    assert adapter.configuration.api_key == {"authorization": "caller-token"}


@patch("eventmesh.adapters.kubernetes.client.CustomObjectsApi")
def test_kubernetes_adapter_lists(mock_api_cls):
    """Test listings go through the custom objects API across namespaces."""
    mock_api = mock_api_cls.return_value
    mock_api.list_cluster_custom_object.return_value = {"items": [testing.broker("b", "ns1")]}

    adapter = KubernetesAdapter(_configuration(), event_types_version="v1beta3")

    assert adapter.list_brokers() == [testing.broker("b", "ns1")]
    mock_api.list_cluster_custom_object.assert_called_with(
        group="eventing.knative.dev", version="v1", plural="brokers"
    )

    adapter.list_event_types()
    mock_api.list_cluster_custom_object.assert_called_with(
        group="eventing.knative.dev", version="v1beta3", plural="eventtypes"
    )

    adapter.list_subscriptions()
    mock_api.list_cluster_custom_object.assert_called_with(
        group="messaging.knative.dev", version="v1", plural="subscriptions"
    )

    adapter.list_schema_definitions("duck.knative.dev/source=true")
    mock_api.list_cluster_custom_object.assert_called_with(
        group="apiextensions.k8s.io",
        version="v1",
        plural="customresourcedefinitions",
        label_selector="duck.knative.dev/source=true",
    )

    adapter.list_instances(PING)
    mock_api.list_cluster_custom_object.assert_called_with(
        group="sources.knative.dev", version="v1", plural="pingsources"
    )
    adapter.close()


@patch("eventmesh.adapters.kubernetes.client.CustomObjectsApi")
def test_kubernetes_adapter_not_found(mock_api_cls):
    mock_api_cls.return_value.list_cluster_custom_object.side_effect = ApiException(status=404, reason="Not Found")
    adapter = KubernetesAdapter(_configuration())
    with pytest.raises(ResourceNotFound):
        adapter.list_triggers()


@patch("eventmesh.adapters.kubernetes.client.CustomObjectsApi")
def test_kubernetes_adapter_api_error(mock_api_cls):
    mock_api_cls.return_value.list_cluster_custom_object.side_effect = ApiException(status=403, reason="Forbidden")
    adapter = KubernetesAdapter(_configuration())
    with pytest.raises(AdapterError) as exc_info:
        adapter.list_triggers()
    assert not isinstance(exc_info.value, ResourceNotFound)
    assert exc_info.value.status == 403


@patch("eventmesh.adapters.kubernetes.DynamicClient")
def test_kubernetes_adapter_resolve_identity(mock_dynamic_cls):
    resource = mock_dynamic_cls.return_value.resources.get.return_value
    obj = MagicMock()
    obj.to_dict.return_value = testing.service("svc", "ns1", identity="svc-a")
    resource.get.return_value = obj

    adapter = KubernetesAdapter(_configuration())
    ref = ObjectReference(api_version="serving.knative.dev/v1", kind="Service", namespace="ns1", name="svc")

    assert adapter.resolve_identity(ref, testing.IDENTITY_LABEL) == "svc-a"
    mock_dynamic_cls.return_value.resources.get.assert_called_with(
        api_version="serving.knative.dev/v1", kind="Service"
    )
    resource.get.assert_called_with(name="svc", namespace="ns1")


@patch("eventmesh.adapters.kubernetes.DynamicClient")
def test_kubernetes_adapter_resolve_unknown_kind(mock_dynamic_cls):
    mock_dynamic_cls.return_value.resources.get.side_effect = ResourceNotFoundError("no such kind")
    adapter = KubernetesAdapter(_configuration())
    ref = ObjectReference(api_version="example.com/v1", kind="Thing", namespace="ns1", name="t")
    assert adapter.resolve_identity(ref, testing.IDENTITY_LABEL) is None


@patch("eventmesh.adapters.kubernetes.client.VersionApi")
def test_kubernetes_adapter_health_check(mock_version_cls):
    adapter = KubernetesAdapter(_configuration())
    assert adapter.health_check() is True

    mock_version_cls.return_value.get_code.side_effect = Exception("connection refused")
    assert adapter.health_check() is False
