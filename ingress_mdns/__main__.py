"""Command line entry point for ingress-mdns."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Sequence

from ingress_mdns import __version__
from ingress_mdns.daemon import DEFAULT_INTERFACE, DaemonConfig, IngressMdnsDaemon
from ingress_mdns.kube import DEFAULT_KUBECONFIG
from ingress_mdns.records import DEFAULT_DOMAIN_SUFFIX

logger = logging.getLogger(__name__)

HOST_IP_ENV = "HOST_IP"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
QUIET_LOGGERS = ("zeroconf", "kubernetes_asyncio", "aiohttp")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ingress-mdns",
        description="Broadcast Kubernetes ingress hostnames via mDNS",
        epilog=(
            f"When neither --interface nor --ip is given and ${HOST_IP_ENV} is set, "
            "the interface bound to that IP is used and only that IP is advertised."
        ),
    )
    selector = parser.add_mutually_exclusive_group()
    selector.add_argument(
        "--interface",
        metavar="NAME",
        help=f"Interface on which to broadcast (default: {DEFAULT_INTERFACE})",
    )
    selector.add_argument(
        "--ip",
        metavar="ADDRESS",
        help="Broadcast on the interface bound to this IP, advertising only that IP",
    )
    parser.add_argument(
        "--service",
        metavar="NAME.NAMESPACE",
        help="Ingress controller service whose node ports the hostnames point at; "
        "without it the target ports are advertised as they are",
    )
    parser.add_argument(
        "--cleartext-port",
        default="80",
        metavar="PORT",
        help="Target port (number or name) used for cleartext connections (default: 80)",
    )
    parser.add_argument(
        "--tls-port",
        default="443",
        metavar="PORT",
        help="Target port (number or name) used for TLS connections (default: 443)",
    )
    parser.add_argument(
        "--domain-suffix",
        default=DEFAULT_DOMAIN_SUFFIX,
        metavar="SUFFIX",
        help="Only advertise ingress hosts ending in this suffix "
        f"(default: {DEFAULT_DOMAIN_SUFFIX})",
    )
    parser.add_argument(
        "--namespace",
        metavar="NAMESPACE",
        help="Only watch ingresses in this namespace (default: all namespaces)",
    )
    parser.add_argument(
        "--kubeconfig",
        nargs="?",
        const=str(DEFAULT_KUBECONFIG),
        metavar="PATH",
        help="Use a kubeconfig file instead of in-cluster config "
        f"(default: {DEFAULT_KUBECONFIG})",
    )
    parser.add_argument("--debug", action="store_true", help="Print debugging information")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Explicit log level, overrides --debug",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(debug: bool, log_level: str | None = None) -> None:
    """Configure the root logger."""
    level = log_level or ("DEBUG" if debug else "INFO")
    logging.basicConfig(level=level, format=LOG_FORMAT)
    if level != "DEBUG":
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def config_from_args(args: argparse.Namespace) -> DaemonConfig:
    """Build the daemon configuration from parsed arguments."""
    selector = args.interface or args.ip or os.environ.get(HOST_IP_ENV) or DEFAULT_INTERFACE
    return DaemonConfig(
        interface=selector,
        service=args.service,
        cleartext_port=args.cleartext_port,
        tls_port=args.tls_port,
        domain_suffix=args.domain_suffix,
        namespace=args.namespace,
        kubeconfig=args.kubeconfig,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run ingress-mdns and return the exit status."""
    args = build_parser().parse_args(argv)
    configure_logging(args.debug, args.log_level)
    logger.debug("Arguments: %s", vars(args))

    daemon = IngressMdnsDaemon(config_from_args(args))
    try:
        return asyncio.run(daemon.run())
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
