"""mDNS advertisement of local hostnames through zeroconf."""

import ipaddress
from typing import Dict, List, NamedTuple, Optional, Union

import ifaddr
from zeroconf import Error as ZeroconfError
from zeroconf import IPVersion, ServiceInfo, Zeroconf

from .logging_config import get_logger, log_function_entry, log_function_exit
from .models import AdvertiserConfig, LocalHostname

logger = get_logger(__name__)

HTTP_PORT = 80
HTTPS_PORT = 443

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class AdvertiseError(Exception):
    """Registering or withdrawing a single mDNS service failed."""


class InterfaceNotFoundError(Exception):
    """The configured broadcast interface does not exist or has no address."""


class Registration(NamedTuple):
    """Handle for one live mDNS service registration."""

    key: LocalHostname
    info: ServiceInfo


def port_for(tls: bool) -> int:
    """Ingresses are assumed to listen on the standard HTTP(S) ports."""
    return HTTPS_PORT if tls else HTTP_PORT


def find_interface_addresses(name: str) -> List[str]:
    """Return the IP addresses assigned to the named network interface.

    Raises:
        InterfaceNotFoundError: If no interface has that name, or it has
            no address to bind to.
    """
    adapters = list(ifaddr.get_adapters())
    for adapter in adapters:
        if adapter.nice_name != name and adapter.name != name:
            continue
        addresses = []
        for ip in adapter.ips:
            # ifaddr reports IPv6 as (address, flowinfo, scope_id)
            addresses.append(ip.ip[0] if isinstance(ip.ip, tuple) else ip.ip)
        if not addresses:
            raise InterfaceNotFoundError(f"Interface {name} has no IP addresses")
        logger.debug("Found interface", interface=name, addresses=addresses)
        return addresses

    available = "\n".join(adapter.nice_name for adapter in adapters)
    raise InterfaceNotFoundError(
        f"No interface named {name} was found, available interfaces are:\n{available}"
    )


class Advertiser:
    """Publishes one ``_http._tcp`` service per local hostname.

    All services share a single zeroconf responder bound to the addresses
    of the broadcast interface.
    """

    def __init__(self, config: AdvertiserConfig, interface_addresses: List[str]) -> None:
        log_function_entry(logger, "Advertiser.__init__",
                           interface=config.interface,
                           addresses=interface_addresses)
        self.config = config
        self.interface_addresses = list(interface_addresses)
        self._zeroconf = Zeroconf(
            interfaces=self.interface_addresses,
            ip_version=_ip_version_for(self.interface_addresses),
        )
        self._closed = False

    @classmethod
    def for_interface(cls, config: AdvertiserConfig) -> "Advertiser":
        """Bind an advertiser to the interface named in ``config``."""
        return cls(config, find_interface_addresses(config.interface))

    @property
    def service_type(self) -> str:
        return f"{self.config.service_type}.{self.config.domain}."

    def build_service_info(self, key: LocalHostname, ip: IPAddress) -> ServiceInfo:
        properties: Dict[str, str] = dict(self.config.txt_records)
        return ServiceInfo(
            self.service_type,
            f"{key.hostname}.{self.service_type}",
            port=port_for(key.tls),
            properties=properties,
            server=key.fqdn(self.config.domain),
            parsed_addresses=[str(ip)],
        )

    def register(self, key: LocalHostname, ip: Optional[IPAddress]) -> Registration:
        """Announce ``key`` at ``ip``.

        Raises:
            AdvertiseError: If there is no address to announce or the
                responder rejects the service.
        """
        if ip is None:
            raise AdvertiseError(f"No load balancer address for {key.hostname}")

        try:
            info = self.build_service_info(key, ip)
            self._zeroconf.register_service(info)
        except (ZeroconfError, OSError, ValueError) as e:
            raise AdvertiseError(f"Failed to register hostname {key.hostname}: {e}") from e

        logger.debug("Service registered",
                     hostname=key.hostname,
                     service=info.name,
                     port=info.port,
                     address=str(ip))
        return Registration(key=key, info=info)

    def unregister(self, registration: Registration) -> None:
        try:
            self._zeroconf.unregister_service(registration.info)
        except (ZeroconfError, OSError) as e:
            raise AdvertiseError(f"Failed to unregister hostname {registration.key.hostname}: {e}") from e
        logger.debug("Service unregistered", hostname=registration.key.hostname, service=registration.info.name)

    def close(self) -> None:
        """Release the responder sockets. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._zeroconf.close()
        log_function_exit(logger, "Advertiser.close", interface=self.config.interface)


def _ip_version_for(addresses: List[str]) -> IPVersion:
    has_v4 = any(":" not in address for address in addresses)
    has_v6 = any(":" in address for address in addresses)
    if has_v4 and has_v6:
        return IPVersion.All
    if has_v6:
        return IPVersion.V6Only
    return IPVersion.V4Only
