#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import csv
import sys
from dataclasses import asdict
from typing import Any, Callable, Dict, Optional

from oci.util import to_dict

from keel import Keel, KeelConfig
from keel.auth import OciAuthConfig
from keel.errors import KeelError
from keel.logging_utils import configure_logging
from keel.models import OperationResult, ResourceNotCorrelated

from importlib.metadata import version, PackageNotFoundError
# ------------- helpers -------------


def load_details(path: str) -> Dict[str, Any]:
    """
    Read node pool details from a JSON file, using the API's camelCase keys
    (e.g. {"compartmentId": ..., "clusterId": ..., "nodeShape": ...}).
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        raise argparse.ArgumentTypeError(f"Cannot read details file {path}: {exc}")

    if not isinstance(data, dict):
        raise argparse.ArgumentTypeError(f"Details file {path} must hold a JSON object")
    return data


def print_result(result, output: str = "json") -> None:
    """
    Print an OperationResult in the desired format.

    output: "json" (default) or "csv"
    """
    # Normalise to a dict first
    try:
        data = asdict(result)
    except TypeError:
        data = result

    if output == "json":
        print(json.dumps(data, indent=2, default=str))
        return

    if output == "csv":
        # Try to find a list-like payload to tabularise
        details = data.get("details", {}) if isinstance(data, dict) else {}
        rows = None

        for key in ("node_pools", "nodes", "resources"):
            if isinstance(details.get(key), list):
                rows = details[key]
                break

        # If we don't have a sensible list, fall back to JSON
        if not rows:
            print(json.dumps(data, indent=2, default=str))
            return

        fieldnames = set()
        for row in rows:
            if isinstance(row, dict):
                fieldnames.update(row.keys())

        writer = csv.DictWriter(sys.stdout, fieldnames=sorted(fieldnames), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            if isinstance(row, dict):
                writer.writerow({k: _csv_cell(v) for k, v in row.items()})
        return

    # Fallback if an unknown output format sneaks in
    print(json.dumps(data, indent=2, default=str))


def _csv_cell(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return value


def build_auth_from_args(args: argparse.Namespace) -> OciAuthConfig:
    auth = OciAuthConfig(
        instance_principal=args.instance_principal,
        region_name=args.region,
    )
    if args.config_file:
        auth.config_file = args.config_file
    if args.profile:
        auth.profile_name = args.profile
    return auth


def build_keel_from_args(args: argparse.Namespace) -> Keel:
    return Keel(
        auth=build_auth_from_args(args),
        config=KeelConfig(
            region_name=args.region,
            compartment_id=args.compartment_id,
            poll_interval=args.poll_interval,
            work_request_timeout=args.timeout,
        ),
    )


def run_operation(
    operation: str,
    target: str,
    action: Callable[[], Dict[str, Any]],
) -> OperationResult:
    """Run `action` and fold its details or its error into an OperationResult."""
    result = OperationResult(operation=operation, target=target, success=True)
    try:
        result.details.update(action())
    except (KeelError, ValueError) as exc:
        result.add_exception(exc)
    return result


def _correlated(value) -> Optional[str]:
    return None if isinstance(value, ResourceNotCorrelated) else value


# ------------- node pool command handlers -------------


def handle_nodepool_create(args: argparse.Namespace) -> OperationResult:
    details = load_details(args.details_file)
    keel = build_keel_from_args(args)
    node_pools = keel.container_engine.node_pools

    def action():
        node_pool_id = node_pools.create_node_pool(details)
        return {"node_pool_id": _correlated(node_pool_id)}

    return run_operation("nodepool_create", f"details={args.details_file}", action)


def handle_nodepool_update(args: argparse.Namespace) -> OperationResult:
    details = load_details(args.details_file)
    keel = build_keel_from_args(args)
    node_pools = keel.container_engine.node_pools

    def action():
        node_pool_id = node_pools.update_node_pool(args.node_pool_id, details)
        return {"node_pool_id": _correlated(node_pool_id)}

    return run_operation("nodepool_update", f"node_pool={args.node_pool_id}", action)


def handle_nodepool_delete(args: argparse.Namespace) -> OperationResult:
    keel = build_keel_from_args(args)
    node_pools = keel.container_engine.node_pools

    if args.node_pool_id:
        def action():
            node_pools.delete_node_pool(args.node_pool_id)
            return {"deleted": True}

        return run_operation("nodepool_delete", f"node_pool={args.node_pool_id}", action)

    def action_by_name():
        return {"deleted": node_pools.delete_node_pool_by_name(args.cluster_id, args.name)}

    return run_operation(
        "nodepool_delete",
        f"cluster={args.cluster_id},name={args.name}",
        action_by_name,
    )


def handle_nodepool_get(args: argparse.Namespace) -> OperationResult:
    keel = build_keel_from_args(args)
    node_pools = keel.container_engine.node_pools

    if args.node_pool_id:
        def action():
            return {"node_pool": to_dict(node_pools.get_node_pool(args.node_pool_id))}

        return run_operation("nodepool_get", f"node_pool={args.node_pool_id}", action)

    def action_by_name():
        return {"node_pool": to_dict(node_pools.get_node_pool_by_name(args.cluster_id, args.name))}

    return run_operation(
        "nodepool_get",
        f"cluster={args.cluster_id},name={args.name}",
        action_by_name,
    )


def handle_nodepool_list(args: argparse.Namespace) -> OperationResult:
    keel = build_keel_from_args(args)
    node_pools = keel.container_engine.node_pools
    collected = []

    def action():
        for summary in node_pools.list_node_pools(
            args.cluster_id, name=args.name, page_size=args.page_size
        ):
            collected.append(to_dict(summary))
        return {"node_pools": collected, "count": len(collected)}

    result = run_operation("nodepool_list", f"cluster={args.cluster_id}", action)
    if not result.success:
        # Items fetched before the failing page are still reported
        result.details["node_pools"] = collected
        result.details["count"] = len(collected)
    return result


def handle_nodepool_ready(args: argparse.Namespace) -> OperationResult:
    keel = build_keel_from_args(args)
    node_pools = keel.container_engine.node_pools

    def action():
        return {"active": node_pools.is_node_pool_active(args.node_pool_id)}

    return run_operation("nodepool_ready", f"node_pool={args.node_pool_id}", action)


def handle_nodepool_options(args: argparse.Namespace) -> OperationResult:
    keel = build_keel_from_args(args)
    node_pools = keel.container_engine.node_pools

    def action():
        if args.cluster_id:
            options = node_pools.get_node_pool_options(args.cluster_id)
        else:
            options = node_pools.get_default_node_pool_options()
        return {"options": asdict(options)}

    return run_operation("nodepool_options", f"cluster={args.cluster_id or 'all'}", action)


def handle_work_request_wait(args: argparse.Namespace) -> OperationResult:
    keel = build_keel_from_args(args)
    node_pools = keel.container_engine.node_pools

    def action():
        snapshot = node_pools.wait_for_work_request(args.work_request_id)
        return {
            "status": snapshot.status.value,
            "operation_type": snapshot.operation_type,
            "resources": [asdict(r) for r in snapshot.resources],
        }

    return run_operation("work_request_wait", f"work_request={args.work_request_id}", action)


# ------------- argparse wiring -------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keel-cli",
        description="Keel node pool CLI (OCI Container Engine)",
    )

    # Global / OCI options
    parser.add_argument("--region", default=None, help="OCI region (e.g. us-ashburn-1)")
    parser.add_argument("--config-file", default=None, help="OCI config file (default ~/.oci/config)")
    parser.add_argument("--profile", default=None, help="OCI config profile name")
    parser.add_argument(
        "--instance-principal",
        action="store_true",
        help="Authenticate as the OCI instance this runs on",
    )
    parser.add_argument("--compartment-id", default=None, help="Compartment OCID")
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=1.0,
        help="Seconds between work request polls (default 1)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=1800.0,
        help="Seconds to wait for a work request before giving up (default 1800)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr logging (default WARNING)",
    )
    parser.add_argument(
        "--output",
        choices=["json", "csv"],
        default="json",
        help="Output format (json or csv, default json)",
    )

    # --version flag
    try:
        keel_version = version("keel-cli")
    except PackageNotFoundError:
        keel_version = "development"

    parser.add_argument(
        "--version",
        action="version",
        version=f"keel {keel_version}",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("nodepool-create", help="Create a node pool and wait for it")
    p.add_argument("--details-file", required=True, help="JSON file with CreateNodePoolDetails")
    p.set_defaults(func=handle_nodepool_create)

    p = subparsers.add_parser("nodepool-update", help="Update a node pool and wait for it")
    p.add_argument("--node-pool-id", required=True, help="Node pool OCID")
    p.add_argument("--details-file", required=True, help="JSON file with UpdateNodePoolDetails")
    p.set_defaults(func=handle_nodepool_update)

    p = subparsers.add_parser("nodepool-delete", help="Delete a node pool by id or by name")
    _add_node_pool_selector(p)
    p.set_defaults(func=handle_nodepool_delete)

    p = subparsers.add_parser("nodepool-get", help="Show a node pool by id or by name")
    _add_node_pool_selector(p)
    p.set_defaults(func=handle_nodepool_get)

    p = subparsers.add_parser("nodepool-list", help="List every node pool in a cluster")
    p.add_argument("--cluster-id", required=True, help="Cluster OCID")
    p.add_argument("--name", default=None, help="Only pools with this name")
    p.add_argument("--page-size", type=int, default=None, help="Items per page request")
    p.set_defaults(func=handle_nodepool_list)

    p = subparsers.add_parser("nodepool-ready", help="Check that every node of a pool is ACTIVE")
    p.add_argument("--node-pool-id", required=True, help="Node pool OCID")
    p.set_defaults(func=handle_nodepool_ready)

    p = subparsers.add_parser("nodepool-options", help="Show images, versions and shapes")
    p.add_argument(
        "--cluster-id",
        default=None,
        help="Cluster OCID (default: options for all clusters)",
    )
    p.set_defaults(func=handle_nodepool_options)

    p = subparsers.add_parser("work-request-wait", help="Wait for a work request to finish")
    p.add_argument("--work-request-id", required=True, help="Work request OCID")
    p.set_defaults(func=handle_work_request_wait)

    return parser


def _add_node_pool_selector(p: argparse.ArgumentParser) -> None:
    p.add_argument("--node-pool-id", default=None, help="Node pool OCID")
    p.add_argument("--cluster-id", default=None, help="Cluster OCID (with --name)")
    p.add_argument("--name", default=None, help="Node pool name (with --cluster-id)")


def validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.command in ("nodepool-delete", "nodepool-get"):
        if not args.node_pool_id and not (args.cluster_id and args.name):
            parser.error("provide --node-pool-id, or --cluster-id with --name")


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        raise SystemExit(1)
    validate_args(parser, args)
    configure_logging(args.log_level)

    try:
        res = func(args)
    except KeelError as exc:
        # Credential problems surface while the client is being built
        res = OperationResult(operation=args.command, target="", success=True)
        res.add_exception(exc)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))

    print_result(res, output=args.output)
    return 0 if res.success else 1

if __name__ == "__main__":
    raise SystemExit(main())
