from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import oci
from oci import exceptions as oci_exceptions
from oci.container_engine import ContainerEngineClient

from .errors import InvalidCredential


@dataclass
class OciAuthConfig:
    """
    Defines how keel should authenticate to OCI.

    Precedence (if multiple fields are set):
      1) Explicit API signing key (user, fingerprint, tenancy, key)
      2) Instance principal
      3) Profile from an OCI config file (default ~/.oci/config, DEFAULT)
    """
    # Explicit API key
    user: Optional[str] = None
    fingerprint: Optional[str] = None
    tenancy: Optional[str] = None
    key_file: Optional[str] = None
    key_content: Optional[str] = None
    pass_phrase: Optional[str] = None

    # Config-file auth
    config_file: str = oci.config.DEFAULT_LOCATION
    profile_name: str = oci.config.DEFAULT_PROFILE

    # Instance principal (running on OCI compute)
    instance_principal: bool = False

    # Region override
    region_name: Optional[str] = None

    @property
    def has_explicit_key(self) -> bool:
        return bool(
            self.user
            and self.fingerprint
            and self.tenancy
            and (self.key_file or self.key_content)
        )


class OciClientFactory:
    """
    Builds a ContainerEngineClient according to OciAuthConfig.

    Every credential problem is reported as InvalidCredential while the
    client is built, before any request goes out.
    """

    def __init__(self, config: OciAuthConfig) -> None:
        self._config = config
        self._cached_client: Optional[ContainerEngineClient] = None

    def get_client(self) -> ContainerEngineClient:
        if self._cached_client is None:
            sdk_config, signer = self.resolve()
            kwargs: Dict[str, Any] = {}
            if signer is not None:
                kwargs["signer"] = signer
            try:
                self._cached_client = ContainerEngineClient(sdk_config, **kwargs)
            except oci_exceptions.ClientError as exc:
                raise InvalidCredential(f"Invalid OCI configuration: {exc}") from exc
        return self._cached_client

    def resolve(self) -> Tuple[Dict[str, Any], Optional[Any]]:
        """Return the SDK config dict and, for instance principals, a signer."""
        cfg = self._config

        if cfg.has_explicit_key:
            return self._explicit_key_config(), None

        if cfg.instance_principal:
            return self._instance_principal_config()

        return self._profile_config(), None

    # ------------ internal helpers ------------

    def _explicit_key_config(self) -> Dict[str, Any]:
        cfg = self._config
        sdk_config: Dict[str, Any] = {
            "user": cfg.user,
            "fingerprint": cfg.fingerprint,
            "tenancy": cfg.tenancy,
            "region": cfg.region_name,
        }
        if cfg.key_file:
            sdk_config["key_file"] = cfg.key_file
        if cfg.key_content:
            sdk_config["key_content"] = cfg.key_content
        if cfg.pass_phrase:
            sdk_config["pass_phrase"] = cfg.pass_phrase

        self._validate(sdk_config)
        return sdk_config

    def _profile_config(self) -> Dict[str, Any]:
        cfg = self._config
        try:
            sdk_config = oci.config.from_file(
                file_location=cfg.config_file,
                profile_name=cfg.profile_name,
            )
        except oci_exceptions.ClientError as exc:
            raise InvalidCredential(
                f"Cannot load OCI profile {cfg.profile_name!r} from {cfg.config_file}: {exc}"
            ) from exc

        if cfg.region_name:
            sdk_config["region"] = cfg.region_name
        self._validate(sdk_config)
        return sdk_config

    def _instance_principal_config(self) -> Tuple[Dict[str, Any], Any]:
        cfg = self._config
        try:
            signer = oci.auth.signers.InstancePrincipalsSecurityTokenSigner()
        except Exception as exc:
            # The signer talks to the instance metadata service; anything
            # going wrong there means the principal is unusable.
            raise InvalidCredential(f"Instance principal unavailable: {exc}") from exc

        region = cfg.region_name or getattr(signer, "region", None)
        return {"region": region}, signer

    @staticmethod
    def _validate(sdk_config: Dict[str, Any]) -> None:
        if not sdk_config.get("region"):
            raise InvalidCredential("OCI region is not set")
        try:
            oci.config.validate_config(sdk_config)
        except oci_exceptions.InvalidConfig as exc:
            raise InvalidCredential(f"Invalid OCI configuration: {exc}") from exc
