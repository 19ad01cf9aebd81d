from __future__ import annotations

from ..config import KeelConfig
from .services import OciServiceRegistry
from .nodepools import NodePoolService


class ContainerEngineNamespace:
    """
    Grouping for OCI Container Engine functionality:

        keel.container_engine.node_pools...
    """

    def __init__(self, services: OciServiceRegistry, config: KeelConfig) -> None:
        self._services = services
        self.node_pools = NodePoolService(services, config)
