#!/usr/bin/env python3
"""
LimitRange Defaulter - Entry Point

Reads a pod manifest, applies the default requests and limits of its
namespace's LimitRange to the containers that don't set them, and prints
the resulting pod as JSON.

Usage:
    limitrange-defaulter POD_FILE [--namespace NAMESPACE] [--limit-ranges FILE]
                         [--in-cluster] [--verbose]
"""

import argparse
import json
import logging
import sys
from typing import Any, List

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from .config import DEFAULT_NAMESPACE
from .limitrange import (
    KubeLimitRangeLister,
    LimitRangeCache,
    LimitRangeResolver,
    PolicyResolutionError,
)
from .transformer import LimitRangeTransformer
from .utils import deserialize, serialize

logger = logging.getLogger(__name__)


def load_json(path: str) -> Any:
    """Load a JSON document from a file, or from stdin if path is "-"."""
    if path == "-":
        return json.load(sys.stdin)
    with open(path) as f:
        return json.load(f)


def load_limit_ranges(path: str, namespace: str) -> List[client.V1LimitRange]:
    """
    Load LimitRange objects from a JSON file.

    The file holds a single LimitRange, a list of them or a List object.
    LimitRange objects without a namespace are put in the given one.
    """
    data = load_json(path)
    if isinstance(data, dict) and data.get("kind", "").endswith("List"):
        data = data.get("items", [])
    if isinstance(data, dict):
        data = [data]

    limit_ranges = []
    for item in data:
        limit_range = deserialize(item, "V1LimitRange")
        if limit_range.metadata is None:
            limit_range.metadata = client.V1ObjectMeta()
        if not limit_range.metadata.namespace:
            limit_range.metadata.namespace = namespace
        limit_ranges.append(limit_range)
    return limit_ranges


def build_lister(args, namespace: str):
    """Build the LimitRange lister: a cache loaded from file, or the Kubernetes API."""
    if args.limit_ranges:
        cache = LimitRangeCache()
        for limit_range in load_limit_ranges(args.limit_ranges, namespace):
            cache.add_or_update(limit_range)
        return cache

    if args.in_cluster:
        config.load_incluster_config()
        logger.info("Loaded in-cluster configuration")
    else:
        config.load_kube_config()
        logger.info("Loaded kubeconfig from default location")
    return KubeLimitRangeLister()


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="LimitRange Defaulter - Apply LimitRange default requests and limits to a pod"
    )
    parser.add_argument(
        "pod_file",
        help="Pod manifest in JSON (\"-\" for stdin)"
    )
    parser.add_argument(
        "--namespace", "-n",
        default="",
        help=f"Namespace of the pod (default: the pod's namespace, else {DEFAULT_NAMESPACE})"
    )
    parser.add_argument(
        "--limit-ranges",
        default="",
        help="JSON file with LimitRange objects to use instead of the cluster's"
    )
    parser.add_argument(
        "--in-cluster",
        action="store_true",
        help="Use in-cluster config (for running inside Kubernetes)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    try:
        pod = deserialize(load_json(args.pod_file), "V1Pod")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load pod manifest {args.pod_file}: {e}")
        sys.exit(1)

    namespace = args.namespace or (pod.metadata and pod.metadata.namespace) or DEFAULT_NAMESPACE

    try:
        lister = build_lister(args, namespace)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load LimitRange objects {args.limit_ranges}: {e}")
        sys.exit(1)
    except ConfigException as e:
        logger.error(f"Failed to load Kubernetes config: {e}")
        sys.exit(1)

    transformer = LimitRangeTransformer(namespace, LimitRangeResolver(lister))
    try:
        pod = transformer(pod)
    except PolicyResolutionError as e:
        logger.error(f"Cannot apply LimitRange defaults: {e}")
        sys.exit(1)

    json.dump(serialize(pod), sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
