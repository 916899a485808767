"""Reconciliation of Ingress watch events into mDNS registrations."""

from typing import Any, Iterable, Optional, Protocol

from .advertiser import AdvertiseError, IPAddress, Registration
from .extractor import extract, ingress_key
from .logging_config import get_logger, log_watch_event
from .models import EventKind, IngressEvent, LocalHostname
from .store import RecordStore

logger = get_logger(__name__)


class AdvertiserProtocol(Protocol):
    def register(self, key: LocalHostname, ip: Optional[IPAddress]) -> Registration: ...

    def unregister(self, registration: Registration) -> None: ...


class Reconciler:
    """Keeps the RecordStore in line with the Ingresses seen by the watcher.

    Events must be handed to :meth:`handle` one at a time, in delivery
    order, from a single thread.
    """

    def __init__(self, store: RecordStore, advertiser: AdvertiserProtocol, local_suffix: str = ".local") -> None:
        self.store = store
        self.advertiser = advertiser
        self.local_suffix = local_suffix

    def handle(self, event: IngressEvent) -> None:
        """Apply one watch event. Errors are logged, never raised."""
        key = ingress_key(event.obj)
        log_watch_event(logger, event.kind.value, key)
        try:
            if event.kind is EventKind.ADDED:
                self.on_added(event.obj)
            elif event.kind is EventKind.MODIFIED:
                self.on_modified(event.old_obj, event.obj)
            elif event.kind is EventKind.DELETED:
                self.on_deleted(event.obj)
        except Exception as e:
            logger.error("Failed to process ingress event",
                         kind=event.kind.value,
                         ingress=key,
                         error=str(e),
                         exc_info=True)

    def on_added(self, ingress: Any) -> None:
        snapshot = extract(ingress, self.local_suffix)
        self.register_hostnames(snapshot.hostnames, snapshot.ip)

    def on_deleted(self, ingress: Any) -> None:
        snapshot = extract(ingress, self.local_suffix)
        self.unregister_hostnames(snapshot.hostnames)

    def on_modified(self, old_ingress: Any, new_ingress: Any) -> None:
        if old_ingress is None:
            self.on_added(new_ingress)
            return

        old = extract(old_ingress, self.local_suffix)
        new = extract(new_ingress, self.local_suffix)
        if old.hostname_set() == new.hostname_set():
            logger.debug("Ingress hostnames unchanged", ingress=new.key)
            return

        logger.info("Ingress changed, re-registering hostnames", ingress=new.key)
        kept = new.hostname_set()
        self.unregister_hostnames(local for local in old.hostnames if local not in kept)
        # hostnames still present keep their live registration
        self.register_hostnames(new.hostnames, new.ip)

    def register_hostnames(self, hostnames: Iterable[LocalHostname], ip: Optional[IPAddress]) -> None:
        for local in hostnames:
            if local in self.store:
                logger.debug("Hostname already registered", hostname=local.hostname, tls=local.tls)
                continue
            logger.info("Registering hostname", hostname=local.hostname, tls=local.tls, address=str(ip) if ip else None)
            try:
                registration = self.advertiser.register(local, ip)
            except AdvertiseError as e:
                logger.error("Failed to register hostname", hostname=local.hostname, error=str(e))
                continue
            self.store.put(local, registration)

    def unregister_hostnames(self, hostnames: Iterable[LocalHostname]) -> None:
        for local in hostnames:
            registration = self.store.remove(local)
            if registration is None:
                continue
            logger.info("Unregistering hostname", hostname=local.hostname, tls=local.tls)
            try:
                self.advertiser.unregister(registration)
            except AdvertiseError as e:
                logger.error("Failed to unregister hostname", hostname=local.hostname, error=str(e))
