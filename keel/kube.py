from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

import yaml
from kubernetes import client as k8s_client
from kubernetes.config import ConfigException, load_kube_config_from_dict

from .errors import InvalidCredential

logger = logging.getLogger(__name__)


def get_k8s_client_config(
    kubeconfig: Optional[Union[bytes, str]],
    *,
    context: Optional[str] = None,
) -> k8s_client.Configuration:
    """
    Build an isolated Kubernetes client Configuration from a kubeconfig blob.

    The global kubernetes SDK configuration is left untouched, so one process
    can hold configurations for several clusters.
    """
    config_dict = _parse_kubeconfig(kubeconfig)

    configuration = k8s_client.Configuration()
    try:
        load_kube_config_from_dict(
            config_dict,
            context=context,
            client_configuration=configuration,
            persist_config=False,
        )
    except (ConfigException, KeyError, TypeError, ValueError) as exc:
        raise InvalidCredential(f"create kubernetes config failed: {exc}") from exc

    logger.debug("Using remote cluster config: %s", configuration.host)
    return configuration


def get_api_extensions_client(
    kubeconfig: Optional[Union[bytes, str]],
    *,
    context: Optional[str] = None,
) -> k8s_client.ApiextensionsV1Api:
    configuration = get_k8s_client_config(kubeconfig, context=context)
    return k8s_client.ApiextensionsV1Api(k8s_client.ApiClient(configuration))


def _parse_kubeconfig(kubeconfig: Optional[Union[bytes, str]]) -> Dict[str, Any]:
    if not kubeconfig:
        raise InvalidCredential("kubeconfig value is nil")

    try:
        if isinstance(kubeconfig, bytes):
            kubeconfig = kubeconfig.decode("utf-8")
        parsed = yaml.safe_load(kubeconfig)
    except (UnicodeDecodeError, yaml.YAMLError) as exc:
        raise InvalidCredential(f"kubeconfig is not valid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise InvalidCredential("kubeconfig must be a mapping")
    return parsed
