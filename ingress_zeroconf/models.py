"""Data models for ingress-zeroconf."""

from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, field_validator


class LocalHostname(BaseModel):
    """An Ingress hostname in the local mDNS domain, stripped of its suffix."""

    model_config = ConfigDict(frozen=True)

    hostname: str = Field(..., description="Bare hostname without the local suffix")
    tls: bool = Field(False, description="Whether the owning Ingress declares TLS")

    def fqdn(self, domain: str = "local") -> str:
        return f"{self.hostname}.{domain}."


class IngressSnapshot(BaseModel):
    """Local hostnames and load balancer address derived from one Ingress."""

    model_config = ConfigDict(frozen=True)

    name: str = Field("", description="Ingress name")
    namespace: str = Field("", description="Ingress namespace")
    hostnames: Tuple[LocalHostname, ...] = Field(default_factory=tuple, description="Local hostnames in rule order")
    ip: Optional[IPvAnyAddress] = Field(None, description="First load balancer IP, if any")

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def hostname_set(self) -> FrozenSet[LocalHostname]:
        return frozenset(self.hostnames)


class EventKind(str, Enum):
    """Kinds of change delivered by the Ingress watcher."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


class IngressEvent(BaseModel):
    """A watch event for one Ingress.

    ``old_obj`` is only set for MODIFIED events and always refers to the
    object as it was before the change.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: EventKind
    obj: Any = Field(..., description="The Ingress object (new state for MODIFIED)")
    old_obj: Any = Field(None, description="Previous Ingress object for MODIFIED events")

    @classmethod
    def added(cls, obj: Any) -> "IngressEvent":
        return cls(kind=EventKind.ADDED, obj=obj)

    @classmethod
    def modified(cls, old_obj: Any, obj: Any) -> "IngressEvent":
        return cls(kind=EventKind.MODIFIED, obj=obj, old_obj=old_obj)

    @classmethod
    def deleted(cls, obj: Any) -> "IngressEvent":
        return cls(kind=EventKind.DELETED, obj=obj)


class AdvertiserConfig(BaseModel):
    """Configuration for the advertiser process."""

    interface: str = Field("eth0", description="Network interface on which to broadcast")
    use_kubeconfig: bool = Field(False, description="Use a kubeconfig file instead of in-cluster config")
    kubeconfig_path: Optional[str] = Field(None, description="Path to kubeconfig file (default ~/.kube/config)")
    context: Optional[str] = Field(None, description="Kubernetes context name")
    namespace: Optional[str] = Field(None, description="Namespace to watch (default: all namespaces)")
    label_selector: Optional[str] = Field(None, description="Label selector for watched Ingresses")
    local_suffix: str = Field(".local", description="Hostname suffix marking mDNS-advertised hosts")
    service_type: str = Field("_http._tcp", description="DNS-SD service type")
    domain: str = Field("local", description="mDNS domain")
    txt_records: Dict[str, str] = Field(default_factory=lambda: {"path": "/"}, description="TXT record properties")
    watch_timeout: int = Field(300, gt=0, description="Server-side watch timeout in seconds")
    retry_delay: float = Field(5.0, ge=0, description="Delay before relisting after a watch error")

    @field_validator("local_suffix")
    @classmethod
    def _suffix_has_dot(cls, value: str) -> str:
        if not value.startswith(".") or len(value) < 2:
            raise ValueError("local_suffix must start with '.' and name a label, e.g. '.local'")
        return value

    @field_validator("service_type")
    @classmethod
    def _service_type_has_underscore(cls, value: str) -> str:
        if not value.startswith("_"):
            raise ValueError("service_type must look like '_http._tcp'")
        return value.rstrip(".")

    @field_validator("domain")
    @classmethod
    def _strip_domain_dots(cls, value: str) -> str:
        value = value.strip(".")
        if not value:
            raise ValueError("domain must not be empty")
        return value
