from __future__ import annotations

from typing import Optional

from oci.container_engine import ContainerEngineClient

from .config import KeelConfig
from .auth import OciAuthConfig, OciClientFactory
from .oci_ce import ContainerEngineNamespace
from .oci_ce.services import OciServiceRegistry

class Keel:
    def __init__(
        self,
        *,
        client: Optional[ContainerEngineClient] = None,
        auth: Optional[OciAuthConfig] = None,
        config: Optional[KeelConfig] = None,
    ) -> None:
        self.config = config or KeelConfig(
            region_name=(auth.region_name if auth else None)
        )

        if client is not None and auth is not None:
            raise ValueError("Provide either 'client' or 'auth', not both.")

        if client is not None:
            client_factory = lambda: client
        else:
            auth_cfg = auth or OciAuthConfig(region_name=self.config.region_name)
            client_factory = OciClientFactory(auth_cfg).get_client

        self._services = OciServiceRegistry(
            client_factory,
            compartment_id=self.config.compartment_id,
        )

        # OCI Container Engine namespace
        self.container_engine = ContainerEngineNamespace(self._services, self.config)
