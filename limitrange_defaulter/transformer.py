"""Apply LimitRange defaults to the containers of a pod."""

import logging
import threading
from typing import Optional

from kubernetes import client

from .config import RESOURCE_NAMES
from .defaults import (
    get_default_app_container_request,
    get_default_init_container_request,
    get_default_limits,
)
from .utils import ResourceList, is_zero

logger = logging.getLogger(__name__)


def set_requests_or_limits(name: str, dst: ResourceList, src: ResourceList) -> None:
    """Copy src[name] into dst when dst has no nonzero value for it."""
    if is_zero(dst.get(name)) and not is_zero(src.get(name)):
        dst[name] = src[name]


def merge_resource_list(dst: Optional[ResourceList], defaults: ResourceList) -> Optional[ResourceList]:
    """
    Merge defaults into a container's requests or limits.

    Args:
        dst: Current requests or limits of the container, None if unset
        defaults: Computed defaults, shared between containers

    Returns:
        The merged resource list. An unset dst gets its own copy of defaults,
        or stays None when there are no defaults.
    """
    if dst is None:
        return dict(defaults) if defaults else None
    for name in RESOURCE_NAMES:
        set_requests_or_limits(name, dst, defaults)
    return dst


def _apply_defaults(
    container: client.V1Container,
    default_requests: ResourceList,
    default_limits: ResourceList
) -> None:
    resources = container.resources or client.V1ResourceRequirements()
    # We are trying to set the smallest requests possible
    resources.requests = merge_resource_list(resources.requests, default_requests)
    # We are trying to set the highest limits possible
    resources.limits = merge_resource_list(resources.limits, default_limits)
    if container.resources is None and (resources.requests or resources.limits):
        container.resources = resources


class LimitRangeTransformer:
    """
    Sets the default requests and limits of a namespace's LimitRange
    on the containers of a pod that don't specify them.
    """

    def __init__(
        self,
        namespace: str,
        resolver,
        stop_event: Optional[threading.Event] = None
    ):
        """
        Initialize the transformer.

        Args:
            namespace: Namespace the pod belongs to
            resolver: LimitRangeResolver giving the effective LimitRange of the namespace
            stop_event: Cancels the LimitRange resolution when set
        """
        self.namespace = namespace
        self.resolver = resolver
        self.stop_event = stop_event

    def __call__(self, pod: client.V1Pod) -> client.V1Pod:
        return self.transform(pod)

    def transform(self, pod: client.V1Pod) -> client.V1Pod:
        """
        Apply the LimitRange defaults to the pod's containers, in place.

        Explicit nonzero requests and limits are never changed.

        Args:
            pod: Pod to transform

        Returns:
            The same pod

        Raises:
            PolicyResolutionError: If the LimitRange cannot be resolved, the pod is left untouched
        """
        limit_range = self.resolver.resolve(self.namespace, self.stop_event)
        # No LimitRange defined, nothing to transform
        if limit_range is None:
            logger.debug(f"No LimitRange in namespace {self.namespace}")
            return pod

        if pod.spec is None:
            return pod

        init_containers = pod.spec.init_containers or []
        containers = pod.spec.containers or []

        # The min, max and defaults are already merged if there are several
        # LimitRange objects. Requests are divided among the app containers only.
        nb_containers = len(containers)
        default_limits = get_default_limits(limit_range)
        default_init_requests = get_default_init_container_request(limit_range)
        default_requests = get_default_app_container_request(limit_range, max(nb_containers, 1))

        for container in init_containers:
            _apply_defaults(container, default_init_requests, default_limits)
        for container in containers:
            _apply_defaults(container, default_requests, default_limits)

        pod_name = pod.metadata.name if pod.metadata else None
        logger.info(
            f"Applied LimitRange defaults to pod {self.namespace}/{pod_name}: "
            f"{len(init_containers)} init container(s), {nb_containers} container(s)"
        )
        return pod
