"""Tests for the list-then-watch IngressWatcher."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client.rest import ApiException

from ingress_zeroconf.models import EventKind
from ingress_zeroconf.watcher import IngressWatcher


def list_response(items, resource_version="100"):
    return SimpleNamespace(items=items, metadata=SimpleNamespace(resource_version=resource_version))


class TestIngressWatcherResync:
    """Tests for listing and cache reconciliation."""

    @pytest.fixture
    def events(self):
        return []

    @pytest.fixture
    def api(self):
        return MagicMock()

    @pytest.fixture
    def watcher(self, api, events):
        return IngressWatcher(api, sink=events.append)

    def test_initial_list_emits_added(self, watcher, api, events, make_ingress):
        api.list_ingress_for_all_namespaces.return_value = list_response(
            [make_ingress(name="a"), make_ingress(name="b")], resource_version="42"
        )

        assert watcher.resync() == "42"
        assert [e.kind for e in events] == [EventKind.ADDED, EventKind.ADDED]
        api.list_ingress_for_all_namespaces.assert_called_once_with()

    def test_relist_diffs_against_cache(self, watcher, api, events, make_ingress):
        unchanged = make_ingress(name="same", resource_version="1")
        changed_old = make_ingress(name="changed", hosts=["old.local"], resource_version="1")
        gone = make_ingress(name="gone", resource_version="1")
        api.list_ingress_for_all_namespaces.return_value = list_response([unchanged, changed_old, gone])
        watcher.resync()
        events.clear()

        changed_new = make_ingress(name="changed", hosts=["new.local"], resource_version="2")
        fresh = make_ingress(name="fresh", resource_version="3")
        api.list_ingress_for_all_namespaces.return_value = list_response([unchanged, changed_new, fresh])
        watcher.resync()

        by_kind = {e.kind: e for e in events}
        assert len(events) == 3
        assert by_kind[EventKind.MODIFIED].old_obj is changed_old
        assert by_kind[EventKind.MODIFIED].obj is changed_new
        assert by_kind[EventKind.ADDED].obj is fresh
        assert by_kind[EventKind.DELETED].obj is gone

    def test_namespace_and_selector(self, api, events, make_ingress):
        api.list_namespaced_ingress.return_value = list_response([make_ingress()])
        watcher = IngressWatcher(api, sink=events.append, namespace="apps", label_selector="mdns=true")

        watcher.resync()

        api.list_namespaced_ingress.assert_called_once_with("apps", label_selector="mdns=true")
        api.list_ingress_for_all_namespaces.assert_not_called()


class TestIngressWatcherApply:
    """Tests for translating raw watch events."""

    @pytest.fixture
    def events(self):
        return []

    @pytest.fixture
    def watcher(self, events):
        return IngressWatcher(MagicMock(), sink=events.append)

    def test_modified_carries_previous_object(self, watcher, events, make_ingress):
        old = make_ingress(hosts=["a.local"], resource_version="1")
        new = make_ingress(hosts=["b.local"], resource_version="2")

        watcher.apply("ADDED", old)
        watcher.apply("MODIFIED", new)

        assert events[1].kind is EventKind.MODIFIED
        assert events[1].old_obj is old
        assert events[1].obj is new
        assert events[1].old_obj is not events[1].obj

    def test_modified_for_unknown_object_is_added(self, watcher, events, make_ingress):
        watcher.apply("MODIFIED", make_ingress())

        assert events[0].kind is EventKind.ADDED

    def test_replayed_add_is_ignored(self, watcher, events, make_ingress):
        ingress = make_ingress(resource_version="5")

        watcher.apply("ADDED", ingress)
        watcher.apply("ADDED", ingress)

        assert len(events) == 1

    def test_deleted_uses_cached_object(self, watcher, events, make_ingress):
        cached = make_ingress(hosts=["a.local"], resource_version="1")
        final = make_ingress(hosts=["a.local"], resource_version="2")
        watcher.apply("ADDED", cached)

        watcher.apply("DELETED", final)

        assert events[-1].kind is EventKind.DELETED
        assert events[-1].obj is cached

    def test_deleted_unknown_object_still_delivered(self, watcher, events, make_ingress):
        ingress = make_ingress()

        watcher.apply("DELETED", ingress)

        assert events[0].kind is EventKind.DELETED
        assert events[0].obj is ingress

    def test_nothing_delivered_after_stop(self, watcher, events, make_ingress):
        watcher.stop()

        watcher.apply("ADDED", make_ingress())

        assert events == []
        assert watcher.stopped


class TestIngressWatcherStream:
    """Tests for the watch stream loop."""

    @pytest.fixture
    def events(self):
        return []

    @patch("ingress_zeroconf.watcher.watch.Watch")
    def test_watch_once_follows_stream(self, mock_watch_class, events, make_ingress):
        api = MagicMock()
        ingress = make_ingress(resource_version="7")
        mock_watch_class.return_value.stream.return_value = iter([
            {"type": "ADDED", "object": ingress},
            {"type": "BOOKMARK", "object": SimpleNamespace(metadata=SimpleNamespace(resource_version="9"))},
        ])
        watcher = IngressWatcher(api, sink=events.append, watch_timeout=30)

        assert watcher.watch_once("5") == "9"

        mock_watch_class.return_value.stream.assert_called_once_with(
            api.list_ingress_for_all_namespaces, timeout_seconds=30, resource_version="5"
        )
        assert [e.kind for e in events] == [EventKind.ADDED]

    @patch("ingress_zeroconf.watcher.watch.Watch")
    def test_error_event_requests_relist(self, mock_watch_class, events):
        mock_watch_class.return_value.stream.return_value = iter([
            {"type": "ERROR", "object": None, "raw_object": {"code": 410}},
        ])
        watcher = IngressWatcher(MagicMock(), sink=events.append)

        assert watcher.watch_once("5") is None

    def test_run_relists_after_expired_watch(self, events, make_ingress):
        watcher = IngressWatcher(MagicMock(), sink=events.append, retry_delay=0)
        calls = []

        def resync():
            calls.append("list")
            return "1"

        def watch_once(resource_version):
            calls.append("watch")
            if len(calls) == 2:
                raise ApiException(status=410)
            watcher.stop()
            return resource_version

        with patch.object(watcher, "resync", side_effect=resync), \
                patch.object(watcher, "watch_once", side_effect=watch_once):
            watcher.run()

        assert calls == ["list", "watch", "list", "watch"]

    def test_run_retries_after_unexpected_error(self, events):
        watcher = IngressWatcher(MagicMock(), sink=events.append, retry_delay=0)
        attempts = []

        def resync():
            attempts.append(1)
            if len(attempts) == 1:
                raise ConnectionError("refused")
            watcher.stop()
            return "1"

        with patch.object(watcher, "resync", side_effect=resync), \
                patch.object(watcher, "watch_once", return_value="1"):
            watcher.run()

        assert len(attempts) == 2

    def test_stop_stops_active_watch(self):
        watcher = IngressWatcher(MagicMock())
        watcher._watch = MagicMock()

        watcher.stop()

        watcher._watch.stop.assert_called_once()
