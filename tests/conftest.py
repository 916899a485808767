"""Shared fixtures for ingress-zeroconf tests."""

from typing import List, Optional
from unittest.mock import MagicMock

import pytest
from kubernetes import client

from ingress_zeroconf.advertiser import AdvertiseError, Registration


def _ingress(name: str = "web",
             hosts: Optional[List[str]] = None,
             tls: bool = False,
             ip: Optional[str] = "192.168.1.10",
             namespace: str = "default",
             resource_version: str = "1",
             annotations: Optional[dict] = None) -> client.V1Ingress:
    hosts = ["web.local"] if hosts is None else hosts
    status = None
    if ip is not None:
        status = client.V1IngressStatus(
            load_balancer=client.V1IngressLoadBalancerStatus(
                ingress=[client.V1IngressLoadBalancerIngress(ip=ip)]
            )
        )
    return client.V1Ingress(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            resource_version=resource_version,
            annotations=annotations,
        ),
        spec=client.V1IngressSpec(
            rules=[client.V1IngressRule(host=host) for host in hosts],
            tls=[client.V1IngressTLS(hosts=hosts, secret_name=f"{name}-tls")] if tls else None,
        ),
        status=status,
    )


@pytest.fixture
def make_ingress():
    """Factory for V1Ingress objects with host rules and a load balancer IP."""
    return _ingress


class FakeAdvertiser:
    """Records register/unregister calls; hostnames in ``fail`` refuse to register."""

    def __init__(self) -> None:
        self.registered = []
        self.unregistered = []
        self.fail = set()
        self.closed = False

    def register(self, key, ip):
        if key.hostname in self.fail or ip is None:
            raise AdvertiseError(f"cannot register {key.hostname}")
        self.registered.append((key, ip))
        return Registration(key=key, info=MagicMock(name=f"info-{key.hostname}"))

    def unregister(self, registration):
        self.unregistered.append(registration.key)

    def close(self):
        self.closed = True


@pytest.fixture
def advertiser():
    return FakeAdvertiser()


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Route structlog through stdlib logging so log lines never reach patched stdout."""
    from ingress_zeroconf.logging_config import setup_logging
    setup_logging()
