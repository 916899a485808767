"""Tests for ShutdownCoordinator."""

from ingress_zeroconf.advertiser import AdvertiseError, Registration
from ingress_zeroconf.models import IngressEvent, LocalHostname
from ingress_zeroconf.reconciler import Reconciler
from ingress_zeroconf.shutdown import ShutdownCoordinator
from ingress_zeroconf.store import RecordStore


class TestShutdownCoordinator:
    """Tests for ShutdownCoordinator.unregister_all."""

    def test_unregisters_every_record_once(self, advertiser, make_ingress):
        store = RecordStore()
        reconciler = Reconciler(store, advertiser)
        reconciler.handle(IngressEvent.added(make_ingress(name="a", hosts=["a.local", "b.local"])))
        reconciler.handle(IngressEvent.added(make_ingress(name="c", hosts=["c.local"], tls=True)))

        calls = ShutdownCoordinator(store, advertiser).unregister_all()

        assert calls == 3
        assert sorted(k.hostname for k in advertiser.unregistered) == ["a", "b", "c"]
        assert len(store) == 0

    def test_empty_store(self, advertiser):
        assert ShutdownCoordinator(RecordStore(), advertiser).unregister_all() == 0
        assert advertiser.unregistered == []

    def test_failure_does_not_stop_cleanup(self, advertiser):
        store = RecordStore()
        for name in ("a", "b"):
            key = LocalHostname(hostname=name, tls=False)
            store.put(key, Registration(key=key, info=None))

        def unregister(registration):
            advertiser.unregistered.append(registration.key)
            if registration.key.hostname == "a":
                raise AdvertiseError("gone")

        advertiser.unregister = unregister

        assert ShutdownCoordinator(store, advertiser).unregister_all() == 2
        assert len(store) == 0
