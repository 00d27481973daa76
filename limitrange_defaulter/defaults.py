"""Computation of default requests and limits from a LimitRange."""

import logging
from typing import Optional

from kubernetes import client

from .config import LIMIT_TYPE_CONTAINER, RESOURCE_NAMES, WHOLE_UNIT_RESOURCES
from .utils import (
    ResourceList,
    is_zero,
    milli_value,
    new_milli_quantity,
    new_quantity,
    quantity_format,
    take_the_max,
    value,
)

logger = logging.getLogger(__name__)


def _known_resources(resources: Optional[ResourceList]) -> ResourceList:
    """Copy the nonzero cpu, memory and ephemeral-storage entries of a resource list."""
    if not resources:
        return {}
    return {
        name: resources[name]
        for name in RESOURCE_NAMES
        if name in resources and not is_zero(resources[name])
    }


def _container_items(limit_range: client.V1LimitRange):
    if limit_range.spec is None:
        return []
    # Only Container type is supported
    return [item for item in limit_range.spec.limits or [] if item.type == LIMIT_TYPE_CONTAINER]


def get_default_limits(limit_range: client.V1LimitRange) -> ResourceList:
    """
    Default limits for every container.

    The Default of the last Container item wins, falling back to its Max.
    """
    limits = None
    for item in _container_items(limit_range):
        if item.default is not None:
            limits = item.default
        elif item.max is not None:
            limits = item.max
    return _known_resources(limits)


def get_default_init_container_request(limit_range: client.V1LimitRange) -> ResourceList:
    """
    Default requests for each init container.

    The DefaultRequest of the last Container item wins, falling back to its Min.
    Init containers run one at a time, so nothing is divided.
    """
    requests = None
    for item in _container_items(limit_range):
        if item.default_request is not None:
            requests = item.default_request
        elif item.min is not None:
            requests = item.min
    return _known_resources(requests)


def get_default_app_container_request(
    limit_range: client.V1LimitRange,
    nb_containers: int
) -> ResourceList:
    """
    Default requests for each app container.

    The LimitRange default request is divided among the app containers,
    and the LimitRange minimum applied if the share falls below it.

    Args:
        limit_range: The effective LimitRange
        nb_containers: Number of app containers in the pod

    Returns:
        Resource list holding the largest share or minimum over all Container items

    Raises:
        ValueError: If nb_containers is lower than 1
    """
    if nb_containers < 1:
        raise ValueError(f"nb_containers must be at least 1, got {nb_containers}")

    requests: ResourceList = {}
    for item in _container_items(limit_range):
        for name in RESOURCE_NAMES:
            default_request = (item.default_request or {}).get(name)
            minimum = (item.min or {}).get(name)
            fmt = quantity_format(default_request)

            if name in WHOLE_UNIT_RESOURCES:
                share = new_quantity(value(default_request) // nb_containers, fmt)
            else:
                share = new_milli_quantity(milli_value(default_request) // nb_containers, fmt)

            requests[name] = take_the_max(requests.get(name), share, minimum)

    result = _known_resources(requests)
    logger.debug(f"Default app container request for {nb_containers} container(s): {result}")
    return result
