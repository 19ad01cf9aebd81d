from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from oci import exceptions as oci_exceptions
from oci.container_engine import ContainerEngineClient

from ..errors import TransportError
from ..models import Page, ResourceAction, SubResourceState, WorkRequestSnapshot, WorkRequestStatus

_TRANSPORT_ERRORS = (oci_exceptions.ServiceError, oci_exceptions.RequestException)


class OciServiceRegistry:
    """
    Central place to create and share the Container Engine client, and the
    adapters that turn its responses into keel models.

    Every SDK call goes through `call()`, so SDK failures always come out
    as TransportError.
    """

    def __init__(
        self,
        client_factory: Callable[[], ContainerEngineClient],
        compartment_id: Optional[str] = None,
    ) -> None:
        self._client_factory = client_factory
        self.compartment_id = compartment_id

        # Lazily initialized client
        self._container_engine: Optional[ContainerEngineClient] = None

    @property
    def container_engine(self) -> ContainerEngineClient:
        if self._container_engine is None:
            self._container_engine = self._client_factory()
        return self._container_engine

    def call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        fn = getattr(self.container_engine, method)
        try:
            return fn(*args, **kwargs)
        except _TRANSPORT_ERRORS as exc:
            message = getattr(exc, "message", None) or str(exc)
            raise TransportError(f"{method} failed: {message}", cause=exc) from exc

    # --------------------
    # Work requests
    # --------------------

    def get_work_request(self, work_request_id: str) -> WorkRequestSnapshot:
        response = self.call("get_work_request", work_request_id)
        wr = response.data

        resources = [
            ResourceAction(
                entity_type=getattr(r, "entity_type", "") or "",
                action_type=getattr(r, "action_type", "") or "",
                resource_id=getattr(r, "identifier", None),
                entity_uri=getattr(r, "entity_uri", None),
            )
            for r in (getattr(wr, "resources", None) or [])
        ]

        return WorkRequestSnapshot(
            handle=work_request_id,
            status=WorkRequestStatus.from_value(getattr(wr, "status", None)),
            resources=resources,
            operation_type=getattr(wr, "operation_type", None),
            percent_complete=getattr(wr, "percent_complete", None),
            time_accepted=getattr(wr, "time_accepted", None),
            time_finished=getattr(wr, "time_finished", None),
            raw=wr,
        )

    def list_work_request_errors(self, work_request_id: str) -> List[str]:
        if not self.compartment_id:
            return []

        response = self.call(
            "list_work_request_errors",
            compartment_id=self.compartment_id,
            work_request_id=work_request_id,
        )

        errors: List[str] = []
        for item in response.data or []:
            message = getattr(item, "message", None)
            timestamp = getattr(item, "timestamp", None)
            errors.append(f"{timestamp}: {message}" if timestamp else (message or "Unknown error"))
        return errors

    # --------------------
    # Node pools
    # --------------------

    def list_node_pools_page(
        self,
        filters: Mapping[str, Any],
        cursor: Optional[str],
        page_size: Optional[int],
    ) -> Page:
        kwargs: Dict[str, Any] = {k: v for k, v in filters.items() if v is not None}
        if page_size is not None:
            kwargs["limit"] = page_size
        if cursor is not None:
            kwargs["page"] = cursor

        response = self.call("list_node_pools", **kwargs)
        return Page(items=list(response.data or []), next_cursor=response.next_page)

    def get_node_members(self, node_pool: Any) -> List[SubResourceState]:
        return [
            SubResourceState(
                id=getattr(n, "id", None) or getattr(n, "name", "") or "",
                lifecycle_state=getattr(n, "lifecycle_state", None) or "UNKNOWN",
                lifecycle_detail=getattr(n, "lifecycle_details", None),
            )
            for n in (getattr(node_pool, "nodes", None) or [])
        ]
