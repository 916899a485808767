"""ingress-zeroconf: Broadcast Kubernetes Ingress hostnames via mDNS."""

__version__ = "0.1.0"

# Lazy imports so the CLI does not load zeroconf and kubernetes up front
__all__ = [
    "Advertiser",
    "Controller",
    "IngressWatcher",
    "LocalHostname",
    "Reconciler",
    "RecordStore",
    "ShutdownCoordinator",
    "extract",
]

_LAZY = {
    "Advertiser": "advertiser",
    "Controller": "controller",
    "IngressWatcher": "watcher",
    "LocalHostname": "models",
    "Reconciler": "reconciler",
    "RecordStore": "store",
    "ShutdownCoordinator": "shutdown",
    "extract": "extractor",
}


def __getattr__(name):
    if name in _LAZY:
        from importlib import import_module
        module = import_module(f".{_LAZY[name]}", __name__)
        return getattr(module, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
