"""Kubernetes API client setup."""

from __future__ import annotations

import logging
from pathlib import Path

from kubernetes_asyncio import client, config

from ingress_mdns.errors import KubeConfigError

logger = logging.getLogger(__name__)

DEFAULT_KUBECONFIG = Path.home() / ".kube" / "config"


async def create_api_client(kubeconfig: str | Path | None = None) -> client.ApiClient:
    """Create an API client from a kubeconfig file or the in-cluster service account.

    Args:
        kubeconfig: Path to a kubeconfig file. Uses in-cluster config when None.

    Raises:
        KubeConfigError: The credentials could not be loaded.
    """
    configuration = client.Configuration()
    try:
        if kubeconfig is not None:
            await config.load_kube_config(
                config_file=str(kubeconfig), client_configuration=configuration
            )
            logger.debug("Loaded kubeconfig from %s", kubeconfig)
        else:
            config.load_incluster_config(client_configuration=configuration)
            logger.debug("Loaded in-cluster configuration")
    except (config.ConfigException, OSError) as err:
        source = kubeconfig or "in-cluster service account"
        raise KubeConfigError(f"Unable to load Kubernetes configuration ({source}): {err}") from err
    return client.ApiClient(configuration)
