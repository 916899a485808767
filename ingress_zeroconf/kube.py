"""Kubernetes client construction."""

from pathlib import Path

from kubernetes import client, config

from .logging_config import get_logger, log_function_entry, log_function_exit, log_k8s_operation
from .models import AdvertiserConfig

logger = get_logger(__name__)


class ClusterConnectionError(Exception):
    """Cluster credentials could not be loaded."""


def default_kubeconfig_path() -> str:
    return str(Path.home() / ".kube" / "config")


def build_networking_api(cfg: AdvertiserConfig) -> client.NetworkingV1Api:
    """Build the networking.k8s.io/v1 API client used to watch Ingresses.

    Uses the in-cluster service account unless ``cfg.use_kubeconfig`` is
    set, in which case the kubeconfig file (``~/.kube/config`` by default)
    and optional context are loaded.

    Raises:
        ClusterConnectionError: If no usable configuration could be loaded.
    """
    log_function_entry(logger, "build_networking_api", use_kubeconfig=cfg.use_kubeconfig)

    try:
        if cfg.use_kubeconfig:
            path = cfg.kubeconfig_path or default_kubeconfig_path()
            log_k8s_operation(logger, "connect", kubeconfig_path=path, context=cfg.context)
            config.load_kube_config(config_file=path, context=cfg.context)
        else:
            log_k8s_operation(logger, "connect", mode="in-cluster")
            config.load_incluster_config()
        api = client.NetworkingV1Api(client.ApiClient())
    except Exception as e:
        logger.error("Failed to construct kube client", error=str(e), use_kubeconfig=cfg.use_kubeconfig)
        raise ClusterConnectionError(f"failed to construct kube client config: {e}") from e

    log_function_exit(logger, "build_networking_api", status="success")
    return api
