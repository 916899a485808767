"""List-then-watch delivery of Ingress changes."""

import threading
from functools import partial
from typing import Any, Callable, Dict, Optional

from kubernetes import watch
from kubernetes.client.rest import ApiException

from .extractor import ingress_key
from .logging_config import get_logger, log_function_entry, log_k8s_operation
from .models import IngressEvent

logger = get_logger(__name__)

HTTP_GONE = 410

EventSink = Callable[[IngressEvent], None]


def _resource_version(obj: Any) -> Optional[str]:
    metadata = getattr(obj, "metadata", None)
    return getattr(metadata, "resource_version", None)


class IngressWatcher:
    """Turns the Ingress list/watch API into ADDED/MODIFIED/DELETED events.

    The watcher caches the last object seen for every Ingress so MODIFIED
    events carry the real previous state, and so a relist after an
    expired watch can be diffed against what was already delivered.
    Events go to ``sink`` in the order they are observed; nothing is
    delivered once :meth:`stop` has been called.
    """

    def __init__(self,
                 api: Any,
                 sink: Optional[EventSink] = None,
                 namespace: Optional[str] = None,
                 label_selector: Optional[str] = None,
                 watch_timeout: int = 300,
                 retry_delay: float = 5.0) -> None:
        self.api = api
        self.namespace = namespace
        self.label_selector = label_selector
        self.watch_timeout = watch_timeout
        self.retry_delay = retry_delay
        self._cache: Dict[str, Any] = {}
        self._sink = sink
        self._stop = threading.Event()
        self._watch: Optional[watch.Watch] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def start(self, sink: Optional[EventSink] = None) -> None:
        """Run the watch loop on a daemon thread."""
        self._thread = threading.Thread(target=self.run, args=(sink,), name="ingress-watcher", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop delivering events.

        The thread may stay blocked on the open watch connection until the
        server sends something or times out, so it is only joined when a
        ``timeout`` is given.
        """
        self._stop.set()
        if self._watch is not None:
            self._watch.stop()
        if timeout is not None and self._thread is not None:
            self._thread.join(timeout)

    def run(self, sink: Optional[EventSink] = None) -> None:
        log_function_entry(logger, "IngressWatcher.run", namespace=self.namespace or "*")
        if sink is not None:
            self._sink = sink
        resource_version: Optional[str] = None
        while not self._stop.is_set():
            try:
                if resource_version is None:
                    resource_version = self.resync()
                resource_version = self.watch_once(resource_version)
            except ApiException as e:
                resource_version = None
                if e.status == HTTP_GONE:
                    logger.warning("Watch expired, relisting ingresses")
                    continue
                logger.error("API exception while watching ingresses", status=e.status, error=str(e))
                self._stop.wait(self.retry_delay)
            except Exception as e:
                resource_version = None
                logger.error("Unexpected error while watching ingresses", error=str(e))
                self._stop.wait(self.retry_delay)
        logger.debug("Ingress watcher stopped")

    def _list_func(self) -> Callable[..., Any]:
        if self.namespace:
            return partial(self.api.list_namespaced_ingress, self.namespace)
        return self.api.list_ingress_for_all_namespaces

    def _list_kwargs(self) -> Dict[str, Any]:
        if self.label_selector:
            return {"label_selector": self.label_selector}
        return {}

    def resync(self) -> Optional[str]:
        """List all Ingresses and deliver the difference from the cache.

        On the first call every Ingress is delivered as ADDED.

        Returns:
            The list's resource version, to start watching from.
        """
        log_k8s_operation(logger, "list", namespace=self.namespace or "*", label_selector=self.label_selector)
        response = self._list_func()(**self._list_kwargs())

        current: Dict[str, Any] = {}
        for ingress in response.items or []:
            current[ingress_key(ingress)] = ingress

        for key, ingress in current.items():
            old = self._cache.get(key)
            if old is None:
                self._emit(IngressEvent.added(ingress))
            elif _resource_version(old) != _resource_version(ingress):
                self._emit(IngressEvent.modified(old, ingress))
        for key in [key for key in self._cache if key not in current]:
            self._emit(IngressEvent.deleted(self._cache[key]))

        self._cache = current
        logger.debug("Listed ingresses", count=len(current))
        return response.metadata.resource_version if response.metadata else None

    def watch_once(self, resource_version: Optional[str]) -> Optional[str]:
        """Follow one watch request until it times out or is stopped.

        Returns:
            The resource version to resume from, or ``None`` to relist.
        """
        log_k8s_operation(logger, "watch", resource_version=resource_version, timeout=self.watch_timeout)
        self._watch = watch.Watch()
        kwargs = self._list_kwargs()
        if resource_version:
            kwargs["resource_version"] = resource_version

        for raw in self._watch.stream(self._list_func(), timeout_seconds=self.watch_timeout, **kwargs):
            if self._stop.is_set():
                break
            event_type = raw.get("type")
            obj = raw.get("object")
            if event_type == "ERROR":
                logger.warning("Watch returned an error event", error=str(raw.get("raw_object")))
                return None
            version = _resource_version(obj)
            if version:
                resource_version = version
            if event_type == "BOOKMARK":
                continue
            self.apply(event_type, obj)
        return resource_version

    def apply(self, event_type: str, obj: Any) -> None:
        """Translate one raw watch event into an IngressEvent."""
        key = ingress_key(obj)
        if event_type in ("ADDED", "MODIFIED"):
            old = self._cache.get(key)
            self._cache[key] = obj
            if old is None:
                self._emit(IngressEvent.added(obj))
            elif _resource_version(old) != _resource_version(obj) or event_type == "MODIFIED":
                self._emit(IngressEvent.modified(old, obj))
        elif event_type == "DELETED":
            old = self._cache.pop(key, None)
            # the cached object is the one our registrations were made from
            self._emit(IngressEvent.deleted(old if old is not None else obj))
        else:
            logger.debug("Ignoring watch event", type=event_type, ingress=key)

    def _emit(self, event: IngressEvent) -> None:
        if self._stop.is_set() or self._sink is None:
            return
        self._sink(event)
