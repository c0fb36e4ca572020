"""Kubernetes API cluster adapter."""
import copy
import structlog
import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import DynamicApiError, NotFoundError, ResourceNotFoundError
from .base import AdapterError, ClusterAdapter, RawResource, ResourceNotFound
from ..mesh.models import KindCoordinates, ObjectReference

log = structlog.get_logger()

EVENTING_GROUP = "eventing.knative.dev"
MESSAGING_GROUP = "messaging.knative.dev"
APIEXTENSIONS_GROUP = "apiextensions.k8s.io"


def load_configuration(in_cluster: bool = True, kubeconfig: str | None = None) -> client.Configuration:
    """
    Load the service's own client configuration.

    Args:
        in_cluster: Use the pod's service account
        kubeconfig: Kubeconfig path when not running in cluster
    """
    configuration = client.Configuration()
    if in_cluster:
        config.load_incluster_config(client_configuration=configuration)
    else:
        config.load_kube_config(config_file=kubeconfig, client_configuration=configuration)
    return configuration


def with_bearer_token(base: client.Configuration, token: str) -> client.Configuration:
    """Copy a configuration so that it authenticates as the token's owner."""
    configuration = copy.deepcopy(base)
    # in-cluster configs refresh the service account token on every call
    configuration.refresh_api_key_hook = None
    configuration.api_key = {"authorization": token}
    configuration.api_key_prefix = {"authorization": "Bearer"}
    configuration.username = None
    configuration.password = None
    configuration.cert_file = None
    configuration.key_file = None
    return configuration


def _translate(e: ApiException, what: str) -> AdapterError:
    if e.status == 404:
        return ResourceNotFound(f"{what} not found")
    return AdapterError(f"{what}: {e.status} {e.reason}", status=e.status)


class KubernetesAdapter(ClusterAdapter):
    """
    Reads eventing resources through the Kubernetes API.

    Listings go through CustomObjectsApi across all namespaces; subscriber
    lookups use the dynamic client so that any kind, including core ones,
    can be resolved.
    """

    def __init__(
        self,
        configuration: client.Configuration,
        token: str | None = None,
        event_types_version: str = "v1beta2",
    ):
        """
        Initialize the adapter.

        Args:
            configuration: Base client configuration
            token: Caller's bearer token; when set, every call is made as the caller
            event_types_version: Served version of the EventType API
        """
        if token:
            configuration = with_bearer_token(configuration, token)
        self.configuration = configuration
        self.event_types_version = event_types_version
        self._api_client: client.ApiClient | None = None
        self._dynamic: DynamicClient | None = None

    def _get_client(self) -> client.ApiClient:
        """Get or create the API client."""
        if self._api_client is None:
            self._api_client = client.ApiClient(self.configuration)
        return self._api_client

    def _get_dynamic(self) -> DynamicClient:
        if self._dynamic is None:
            self._dynamic = DynamicClient(self._get_client())
        return self._dynamic

    def _list(self, group: str, version: str, plural: str, label_selector: str | None = None) -> list[RawResource]:
        what = f"{plural}.{group}/{version}"
        kwargs = {}
        if label_selector:
            kwargs["label_selector"] = label_selector

        try:
            api = client.CustomObjectsApi(self._get_client())
            raw = api.list_cluster_custom_object(group=group, version=version, plural=plural, **kwargs)
        except ApiException as e:
            log.warning("kubernetes.list_failed", resource=what, status=e.status, reason=e.reason)
            raise _translate(e, what) from e
        except urllib3.exceptions.HTTPError as e:
            log.error("kubernetes.unreachable", resource=what, error=str(e))
            raise AdapterError(f"{what}: {e}") from e

        return raw.get("items", [])

    def list_brokers(self) -> list[RawResource]:
        return self._list(EVENTING_GROUP, "v1", "brokers")

    def list_event_types(self) -> list[RawResource]:
        return self._list(EVENTING_GROUP, self.event_types_version, "eventtypes")

    def list_triggers(self) -> list[RawResource]:
        return self._list(EVENTING_GROUP, "v1", "triggers")

    def list_subscriptions(self) -> list[RawResource]:
        return self._list(MESSAGING_GROUP, "v1", "subscriptions")

    def list_schema_definitions(self, tag: str) -> list[RawResource]:
        return self._list(APIEXTENSIONS_GROUP, "v1", "customresourcedefinitions", label_selector=tag)

    def list_instances(self, coords: KindCoordinates) -> list[RawResource]:
        return self._list(coords.group, coords.version, coords.resource)

    def resolve_identity(self, ref: ObjectReference, label: str) -> str | None:
        try:
            resource = self._get_dynamic().resources.get(api_version=ref.api_version, kind=ref.kind)
            obj = resource.get(name=ref.name, namespace=ref.namespace)
        except (ResourceNotFoundError, NotFoundError):
            log.debug("kubernetes.subscriber_not_found", reference=str(ref))
            return None
        except DynamicApiError as e:
            raise AdapterError(f"{ref}: {e.status} {e.reason}", status=e.status) from e
        except ApiException as e:
            raise _translate(e, str(ref)) from e
        except urllib3.exceptions.HTTPError as e:
            raise AdapterError(f"{ref}: {e}") from e

        labels = (obj.to_dict().get("metadata") or {}).get("labels") or {}
        return labels.get(label)

    def health_check(self) -> bool:
        """
        Check API server reachability.

        Returns:
            True if the version endpoint answers, False otherwise
        """
        try:
            client.VersionApi(self._get_client()).get_code()
            return True
        except Exception as e:
            log.warning("kubernetes.health_check_failed", error=str(e))
            return False

    def close(self):
        """Close the underlying connection pool."""
        if self._api_client:
            self._api_client.close()
            self._api_client = None
            self._dynamic = None
