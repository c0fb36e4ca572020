from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"
    # Cluster adapter selection: "kubernetes" or "memory"
    CLUSTER_ADAPTER: Literal["kubernetes", "memory"] = "kubernetes"
    CLUSTER_SNAPSHOT: str | None = None  # JSON file served by the memory adapter
    KUBE_IN_CLUSTER: bool = True
    KUBECONFIG: str | None = None
    EVENT_TYPES_VERSION: str = "v1beta2"
    # Authentication: callers' bearer tokens are used for all cluster reads
    REQUIRE_AUTH: bool = True
    # Mesh correlation
    IDENTITY_LABEL: str = "backstage.io/kubernetes-id"
    SUBSCRIBABLE_TAG: str = "messaging.knative.dev/subscribable=true"
    SOURCE_TAG: str = "duck.knative.dev/source=true"
    EVENT_TYPES_ANNOTATION: str = "registry.knative.dev/eventTypes"
    EXCLUDED_ANNOTATIONS: frozenset[str] = frozenset({"kubectl.kubernetes.io/last-applied-configuration"})

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
