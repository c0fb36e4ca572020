"""Tests for kind discovery."""
import pytest
from eventmesh.adapters.base import AdapterError, ResourceNotFound
from eventmesh.adapters.memory import InMemoryAdapter
from eventmesh.mesh.discovery import KindDiscovery, coordinates_from_definition
from eventmesh.mesh.errors import DiscoveryError, NotServedError
from eventmesh import testing

SOURCE_LABELS = {"duck.knative.dev/source": "true"}
SOURCE_TAG = "duck.knative.dev/source=true"


def test_discover_tagged_definitions():
    adapter = InMemoryAdapter([
        testing.definition("sources.knative.dev", "ApiServerSource", "apiserversources", SOURCE_LABELS),
        testing.definition("messaging.knative.dev", "InMemoryChannel", "inmemorychannels",
                           {"messaging.knative.dev/subscribable": "true"}),
    ])

    coords = KindDiscovery(adapter).discover(SOURCE_TAG)

    assert len(coords) == 1
    assert coords[0].group == "sources.knative.dev"
    assert coords[0].version == "v1"
    assert coords[0].resource == "apiserversources"
    assert coords[0].kind == "ApiServerSource"
    assert coords[0].definition == "apiserversources.sources.knative.dev"


def test_discover_no_results_is_empty():
    assert KindDiscovery(InMemoryAdapter()).discover(SOURCE_TAG) == []


def test_discover_not_found_is_empty():
    adapter = InMemoryAdapter()
    adapter.fail_listing("definitions", ResourceNotFound("customresourcedefinitions"))
    assert KindDiscovery(adapter).discover(SOURCE_TAG) == []


def test_discover_listing_failure_raises():
    adapter = InMemoryAdapter()
    adapter.fail_listing("definitions", AdapterError("forbidden", status=403))
    with pytest.raises(DiscoveryError):
        KindDiscovery(adapter).discover(SOURCE_TAG)


def test_first_served_version_wins():
    crd = testing.definition("g.dev", "Thing", "things", SOURCE_LABELS,
                             versions=[("v1alpha1", False), ("v1beta1", True), ("v1", True)])
    assert coordinates_from_definition(crd).version == "v1beta1"


def test_no_served_version():
    crd = testing.definition("g.dev", "Thing", "things", SOURCE_LABELS,
                             versions=[("v1alpha1", False), ("v1", False)])
    with pytest.raises(NotServedError) as exc_info:
        coordinates_from_definition(crd)
    assert exc_info.value.definition == "things.g.dev"


def test_not_served_is_a_discovery_error():
    adapter = InMemoryAdapter([
        testing.definition("g.dev", "Thing", "things", SOURCE_LABELS, versions=[("v1", False)]),
    ])
    with pytest.raises(DiscoveryError):
        KindDiscovery(adapter).discover(SOURCE_TAG)


def test_legacy_single_version():
    crd = testing.definition("g.dev", "Thing", "things", SOURCE_LABELS)
    crd["spec"]["versions"] = []
    crd["spec"]["version"] = "v1alpha1"
    assert coordinates_from_definition(crd).version == "v1alpha1"


def test_missing_plural():
    crd = testing.definition("g.dev", "Thing", "things", SOURCE_LABELS)
    del crd["spec"]["names"]["plural"]
    with pytest.raises(DiscoveryError):
        coordinates_from_definition(crd)


def test_missing_group():
    crd = testing.definition("g.dev", "Thing", "things", SOURCE_LABELS)
    del crd["spec"]["group"]
    with pytest.raises(DiscoveryError):
        coordinates_from_definition(crd)


def test_definition_annotations_carried():
    crd = testing.definition("g.dev", "Thing", "things", SOURCE_LABELS,
                             annotations={"registry.knative.dev/eventTypes": "[]"})
    assert coordinates_from_definition(crd).annotations == {"registry.knative.dev/eventTypes": "[]"}
