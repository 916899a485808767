"""Extraction of local mDNS hostnames from Kubernetes Ingress objects."""

import ipaddress
from typing import Any, List, Optional, Union

from .models import IngressSnapshot, LocalHostname


def ingress_key(ingress: Any) -> str:
    """Return the ``namespace/name`` identity of an Ingress."""
    metadata = getattr(ingress, "metadata", None)
    namespace = getattr(metadata, "namespace", None) or ""
    name = getattr(metadata, "name", None) or ""
    return f"{namespace}/{name}"


def extract(ingress: Any, local_suffix: str = ".local") -> IngressSnapshot:
    """Derive the local hostnames and load balancer IP of an Ingress.

    TLS is decided once for the whole Ingress: every extracted hostname is
    flagged as TLS when ``spec.tls`` is non-empty, whatever the individual
    ``tls.hosts`` lists say. Rules whose host does not end in
    ``local_suffix`` are ignored.

    Args:
        ingress: A ``V1Ingress`` (or an object shaped like one)
        local_suffix: Suffix reserved for mDNS hostnames, e.g. ``.local``

    Returns:
        Snapshot with hostnames in rule order and the first load balancer
        IP, or ``None`` when the status carries no usable address.
    """
    spec = getattr(ingress, "spec", None)
    tls = bool(getattr(spec, "tls", None))

    hostnames: List[LocalHostname] = []
    for rule in getattr(spec, "rules", None) or []:
        host = getattr(rule, "host", None)
        if not host or not host.endswith(local_suffix):
            continue
        bare = host[: -len(local_suffix)]
        if not bare:
            continue
        hostnames.append(LocalHostname(hostname=bare, tls=tls))

    metadata = getattr(ingress, "metadata", None)
    return IngressSnapshot(
        name=getattr(metadata, "name", None) or "",
        namespace=getattr(metadata, "namespace", None) or "",
        hostnames=tuple(hostnames),
        ip=load_balancer_ip(ingress),
    )


def load_balancer_ip(ingress: Any) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    """Return the IP of the first load balancer status entry, if valid."""
    status = getattr(ingress, "status", None)
    load_balancer = getattr(status, "load_balancer", None)
    entries = getattr(load_balancer, "ingress", None)
    if not entries:
        return None
    raw = getattr(entries[0], "ip", None)
    if not raw:
        return None
    try:
        return ipaddress.ip_address(raw)
    except ValueError:
        return None
