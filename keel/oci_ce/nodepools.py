from __future__ import annotations

import logging
import threading
from typing import Any, Optional, Union

from ..config import KeelConfig
from ..errors import EntityNotFound, KeelError
from ..models import ActionType, NodePoolOptions, ResourceNotCorrelated, WorkRequestSnapshot
from ..pagination import PagedIterable, PaginatedLister
from ..readiness import expected_node_count, is_ready
from ..workrequests import WorkRequestPoller, extract_resource_id
from .services import OciServiceRegistry

logger = logging.getLogger(__name__)

NODEPOOL_ENTITY = "NODEPOOL"
DEFAULT_OPTIONS_ID = "all"


class NodePoolService:
    """
    Node pool operations against the OCI Container Engine API.

    Mutating calls return as soon as the remote accepts them; these methods
    then block on the returned work request until it is terminal and pick the
    affected node pool id out of its resource list.

    Example:
        keel.container_engine.node_pools.create_node_pool(details)
        keel.container_engine.node_pools.is_node_pool_active(pool_id)
    """

    def __init__(self, services: OciServiceRegistry, config: KeelConfig) -> None:
        self._services = services
        self._config = config
        self._poller = WorkRequestPoller(
            services.get_work_request,
            poll_interval=config.poll_interval,
            timeout=config.work_request_timeout,
            fetch_errors=services.list_work_request_errors,
        )
        self._lister = PaginatedLister(services.list_node_pools_page)

    # --------------------
    # Work requests
    # --------------------

    def wait_for_work_request(
        self,
        work_request_id: str,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> WorkRequestSnapshot:
        return self._poller.wait(work_request_id, cancel=cancel)

    # --------------------
    # Mutations
    # --------------------

    def create_node_pool(
        self,
        details: Any,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Union[str, ResourceNotCorrelated]:
        """
        Create a node pool and wait for it.

        Returns the new node pool id, or ResourceNotCorrelated if the finished
        work request did not report a created node pool.
        """
        response = self._services.call("create_node_pool", details)
        snapshot = self._wait_for_response(response, "create_node_pool", cancel)
        return self._correlate(snapshot, ActionType.CREATED)

    def update_node_pool(
        self,
        node_pool_id: str,
        details: Any,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Union[str, ResourceNotCorrelated]:
        response = self._services.call("update_node_pool", node_pool_id, details)
        snapshot = self._wait_for_response(response, "update_node_pool", cancel)
        return self._correlate(snapshot, ActionType.UPDATED)

    def delete_node_pool(
        self,
        node_pool_id: str,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        response = self._services.call("delete_node_pool", node_pool_id)
        self._wait_for_response(response, "delete_node_pool", cancel)

    def delete_node_pool_by_name(
        self,
        cluster_id: str,
        name: str,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> bool:
        """
        Delete the node pool called `name` in a cluster.

        Raises EntityNotFound when no pool has that name. Returns False when
        the matched pool has no id, True once the delete has finished. Errors
        from the delete itself propagate.
        """
        node_pool = self.get_node_pool_by_name(cluster_id, name)
        node_pool_id = getattr(node_pool, "id", None)
        if node_pool_id is None:
            return False

        logger.info("Deleting NodePool[%s]", getattr(node_pool, "name", name))
        self.delete_node_pool(node_pool_id, cancel=cancel)
        return True

    # --------------------
    # Reads
    # --------------------

    def get_node_pool(self, node_pool_id: str) -> Any:
        return self._services.call("get_node_pool", node_pool_id).data

    def get_node_pool_by_name(self, cluster_id: str, name: str) -> Any:
        response = self._services.call(
            "list_node_pools",
            self._require_compartment(),
            cluster_id=cluster_id,
            name=name,
        )
        items = response.data or []
        if not items:
            raise EntityNotFound("Node Pool", name)
        return items[0]

    def list_node_pools(
        self,
        cluster_id: str,
        *,
        name: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> PagedIterable:
        """Lazily list every node pool of a cluster, following page cursors."""
        filters = {
            "compartment_id": self._require_compartment(),
            "cluster_id": cluster_id,
            "name": name,
        }
        return self._lister.list_all(filters, page_size or self._config.page_size)

    def is_node_pool_active(self, node_pool_id: str) -> bool:
        """
        True when every expected node of the pool is ACTIVE.

        Lookup errors read as "not active"; callers are expected to ask again.
        """
        try:
            node_pool = self.get_node_pool(node_pool_id)
        except KeelError as exc:
            logger.debug("Cannot read NodePool[%s]: %s", node_pool_id, exc)
            return False

        members = self._services.get_node_members(node_pool)
        if not is_ready(expected_node_count(node_pool), members):
            return False

        logger.info(
            "All nodes are in ACTIVE state in NodePool[%s]",
            getattr(node_pool, "name", node_pool_id),
        )
        return True

    # --------------------
    # Options
    # --------------------

    def get_default_node_pool_options(self) -> NodePoolOptions:
        return self.get_node_pool_options(DEFAULT_OPTIONS_ID)

    def get_node_pool_options(self, cluster_id: str) -> NodePoolOptions:
        """Images, Kubernetes versions and shapes available for a cluster."""
        data = self._services.call("get_node_pool_options", cluster_id).data
        return NodePoolOptions(
            images=list(getattr(data, "images", None) or []),
            kubernetes_versions=list(getattr(data, "kubernetes_versions", None) or []),
            shapes=list(getattr(data, "shapes", None) or []),
        )

    # ---- internal helpers ----

    def _wait_for_response(
        self,
        response: Any,
        operation: str,
        cancel: Optional[threading.Event],
    ) -> WorkRequestSnapshot:
        work_request_id = response.headers.get("opc-work-request-id")
        if not work_request_id:
            raise KeelError(f"{operation} did not return a work request ID")
        logger.info("%s accepted, work request %s", operation, work_request_id)
        return self._poller.wait(work_request_id, cancel=cancel)

    @staticmethod
    def _correlate(
        snapshot: WorkRequestSnapshot,
        action_type: ActionType,
    ) -> Union[str, ResourceNotCorrelated]:
        node_pool_id = extract_resource_id(snapshot, action_type, NODEPOOL_ENTITY)
        if isinstance(node_pool_id, ResourceNotCorrelated):
            logger.warning(
                "Work request %s reported no %s %s resource",
                snapshot.handle,
                action_type.value,
                NODEPOOL_ENTITY,
            )
        return node_pool_id

    def _require_compartment(self) -> str:
        if not self._config.compartment_id:
            raise ValueError("KeelConfig.compartment_id is required for listing node pools")
        return self._config.compartment_id
