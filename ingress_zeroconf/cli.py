"""Command-line interface for ingress-zeroconf."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from .logging_config import get_logger, log_function_entry, setup_logging
from .models import AdvertiserConfig

logger = get_logger(__name__)

CONFIG_SEARCH_PATHS = [
    Path("ingress-zeroconf.yaml"),
    Path("config.yaml"),
    Path("/etc/ingress-zeroconf/config.yaml"),
]


def _fail(message: str) -> None:
    print(message, file=sys.stderr)
    sys.exit(1)


def find_config_path(explicit: Optional[str]) -> Optional[Path]:
    """Return the config file to load, or None to use defaults."""
    if explicit:
        config_path = Path(explicit)
        if not config_path.exists():
            _fail(f"Configuration file not found: {config_path}")
        return config_path
    for path in CONFIG_SEARCH_PATHS:
        if path.exists():
            return path
    return None


def read_config_file(config_path: Path) -> Dict[str, Any]:
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("top level of the configuration must be a mapping")
    return data


def load_config(args: argparse.Namespace) -> AdvertiserConfig:
    """Build the configuration from the config file and command-line overrides."""
    config_path = find_config_path(getattr(args, "config", None))
    data: Dict[str, Any] = {}
    if config_path:
        try:
            logger.debug("Loading configuration file", config_path=str(config_path))
            data = read_config_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error("Failed to load configuration", config_path=str(config_path), error=str(e))
            _fail(f"Error loading configuration: {e}")

    overrides = {
        "interface": getattr(args, "interface", None),
        "kubeconfig_path": getattr(args, "kubeconfig_path", None),
        "context": getattr(args, "context", None),
        "namespace": getattr(args, "namespace", None),
        "label_selector": getattr(args, "label_selector", None),
    }
    data.update({key: value for key, value in overrides.items() if value is not None})
    if getattr(args, "kubeconfig", False):
        data["use_kubeconfig"] = True

    try:
        cfg = AdvertiserConfig(**data)
    except ValidationError as e:
        logger.error("Invalid configuration", error=str(e))
        _fail(f"Invalid configuration: {e}")

    logger.debug("Configuration loaded",
                 config_path=str(config_path) if config_path else None,
                 interface=cfg.interface,
                 use_kubeconfig=cfg.use_kubeconfig,
                 namespace=cfg.namespace)
    return cfg


def run_command(args: argparse.Namespace) -> None:
    """Advertise local Ingress hostnames until interrupted."""
    from .advertiser import Advertiser, InterfaceNotFoundError, find_interface_addresses
    from .controller import Controller
    from .kube import ClusterConnectionError, build_networking_api
    from .reconciler import Reconciler
    from .shutdown import ShutdownCoordinator
    from .store import RecordStore
    from .watcher import IngressWatcher

    setup_logging(args.verbose)
    cfg = load_config(args)
    log_function_entry(logger, "run_command", interface=cfg.interface, namespace=cfg.namespace)

    try:
        addresses = find_interface_addresses(cfg.interface)
        api = build_networking_api(cfg)
        advertiser = Advertiser(cfg, addresses)
    except (InterfaceNotFoundError, ClusterConnectionError, OSError) as e:
        logger.error("Startup failed", error=str(e))
        _fail(f"Startup failed: {e}")

    store: RecordStore = RecordStore()
    watcher = IngressWatcher(
        api,
        namespace=cfg.namespace,
        label_selector=cfg.label_selector,
        watch_timeout=cfg.watch_timeout,
        retry_delay=cfg.retry_delay,
    )
    controller = Controller(
        watcher,
        Reconciler(store, advertiser, cfg.local_suffix),
        ShutdownCoordinator(store, advertiser),
        advertiser=advertiser,
    )
    logger.info("Starting ingress-zeroconf", interface=cfg.interface, addresses=addresses)
    controller.run()
    logger.info("Stopped ingress-zeroconf")


def scan_command(args: argparse.Namespace) -> None:
    """List the local hostnames that would be advertised, without advertising them."""
    from .advertiser import port_for
    from .extractor import extract
    from .kube import ClusterConnectionError, build_networking_api
    from .models import IngressEvent
    from .watcher import IngressWatcher

    setup_logging(args.verbose)
    cfg = load_config(args)

    try:
        api = build_networking_api(cfg)
    except ClusterConnectionError as e:
        _fail(str(e))

    events: List[IngressEvent] = []
    IngressWatcher(api, sink=events.append, namespace=cfg.namespace, label_selector=cfg.label_selector).resync()

    rows = []
    for event in events:
        snapshot = extract(event.obj, cfg.local_suffix)
        for local in snapshot.hostnames:
            rows.append({
                "namespace": snapshot.namespace,
                "ingress": snapshot.name,
                "hostname": local.fqdn(cfg.domain).rstrip("."),
                "tls": local.tls,
                "port": port_for(local.tls),
                "ip": str(snapshot.ip) if snapshot.ip else None,
            })
    rows.sort(key=lambda row: row["hostname"])

    if args.output == "json":
        print(json.dumps(rows, indent=2))
    elif args.output == "yaml":
        print(yaml.dump(rows, default_flow_style=False, sort_keys=False))
    else:
        if not rows:
            print("No local hostnames found.")
            return
        print(f"\nFound {len(rows)} local hostnames:\n")
        print(f"{'Hostname':<40} {'Namespace':<20} {'Ingress':<25} {'Port':<6} {'IP':<16}")
        print("-" * 107)
        for row in rows:
            print(f"{row['hostname']:<40} {row['namespace']:<20} {row['ingress']:<25} "
                  f"{row['port']:<6} {row['ip'] or '-':<16}")


def sample_config() -> Dict[str, Any]:
    return {
        "interface": "eth0",
        "use_kubeconfig": False,
        "kubeconfig_path": None,
        "context": None,
        "namespace": None,
        "label_selector": None,
        "local_suffix": ".local",
        "service_type": "_http._tcp",
        "domain": "local",
        "txt_records": {"path": "/"},
        "watch_timeout": 300,
        "retry_delay": 5.0,
    }


def init_config_command(args: argparse.Namespace) -> None:
    """Generate a sample configuration file."""
    config_yaml = yaml.dump(sample_config(), default_flow_style=False, sort_keys=False)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(config_yaml)
        print(f"Sample configuration written to {output_path}")
    else:
        print("Sample configuration:\n")
        print(config_yaml)


def validate_config_command(args: argparse.Namespace) -> None:
    """Validate a configuration file."""
    config_path = Path(args.config)

    try:
        cfg = AdvertiserConfig(**read_config_file(config_path))
    except (OSError, ValueError, yaml.YAMLError) as e:
        # pydantic's ValidationError is a ValueError
        print(f"✗ Configuration file {config_path} is invalid: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"✓ Configuration file {config_path} is valid")
    print("\nConfiguration summary:")
    print(f"  Interface: {cfg.interface}")
    print(f"  Credentials: {'kubeconfig' if cfg.use_kubeconfig else 'in-cluster'}")
    print(f"  Namespace: {cfg.namespace or 'all'}")
    print(f"  Local suffix: {cfg.local_suffix}")
    print(f"  Service type: {cfg.service_type}.{cfg.domain}.")


def version_command(args: argparse.Namespace) -> None:
    """Show version information."""
    from . import __version__
    print(f"ingress-zeroconf {__version__}")


def _add_cluster_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", "-c", help="Configuration file path")
    parser.add_argument(
        "--kubeconfig",
        action="store_true",
        help="Use a kubeconfig file instead of in-cluster config",
    )
    parser.add_argument("--kubeconfig-path", help="Kubeconfig file (default: ~/.kube/config)")
    parser.add_argument("--context", help="Kubernetes context to use with --kubeconfig")
    parser.add_argument("--namespace", "-n", help="Only watch this namespace (default: all)")
    parser.add_argument("--label-selector", "-l", help="Only watch Ingresses matching this selector")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ingress-zeroconf",
        description="ingress-zeroconf: Broadcast Kubernetes Ingress hostnames via mDNS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose", "-v", "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Advertise .local Ingress hostnames until interrupted")
    run_parser.add_argument("--interface", "-i", help="Interface on which to broadcast (default: eth0)")
    _add_cluster_options(run_parser)
    run_parser.set_defaults(func=run_command)

    scan_parser = subparsers.add_parser("scan", help="List the hostnames that would be advertised")
    _add_cluster_options(scan_parser)
    scan_parser.add_argument(
        "--output", "-o",
        choices=["json", "yaml", "table"],
        default="table",
        help="Output format (default: table)",
    )
    scan_parser.set_defaults(func=scan_command)

    init_parser = subparsers.add_parser("init-config", help="Generate a sample configuration file")
    init_parser.add_argument("--output", "-o", help="Output file path (default: stdout)")
    init_parser.set_defaults(func=init_config_command)

    validate_parser = subparsers.add_parser("validate-config", help="Validate a configuration file")
    validate_parser.add_argument("--config", "-c", required=True, help="Configuration file path")
    validate_parser.set_defaults(func=validate_config_command)

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=version_command)

    return parser


def main() -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
