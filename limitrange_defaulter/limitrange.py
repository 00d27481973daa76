"""Resolution of the effective LimitRange of a namespace."""

import logging
import threading
from typing import Dict, List, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from .config import API_REQUEST_TIMEOUT_SECONDS, VIRTUAL_LIMIT_RANGE_NAME
from .utils import ResourceList, compare, is_zero, parse

logger = logging.getLogger(__name__)


class PolicyResolutionError(Exception):
    """Raised when the effective LimitRange of a namespace cannot be resolved."""


class KubeLimitRangeLister:
    """Lists LimitRange objects from the Kubernetes API."""

    def __init__(self, api: Optional[client.CoreV1Api] = None):
        self.v1 = api or client.CoreV1Api()

    def list(self, namespace: str) -> List[client.V1LimitRange]:
        """
        List the LimitRange objects of a namespace.

        Raises:
            ApiException: On any API error
        """
        response = self.v1.list_namespaced_limit_range(
            namespace=namespace,
            _request_timeout=API_REQUEST_TIMEOUT_SECONDS
        )
        return list(response.items or [])


class LimitRangeCache:
    """Thread-safe in-memory store of LimitRange objects."""

    def __init__(self):
        self._limit_ranges: Dict[str, client.V1LimitRange] = {}
        self._lock = threading.RLock()

    def _make_key(self, namespace: str, name: str) -> str:
        return f"{namespace}/{name}"

    def add_or_update(self, limit_range: client.V1LimitRange) -> None:
        """
        Add or update a LimitRange in the cache.

        Args:
            limit_range: LimitRange with metadata name and namespace set
        """
        metadata = limit_range.metadata or client.V1ObjectMeta()
        key = self._make_key(metadata.namespace or "", metadata.name or "")

        with self._lock:
            self._limit_ranges[key] = limit_range
            logger.info(f"Cached LimitRange: {key}")

    def remove(self, namespace: str, name: str) -> Optional[client.V1LimitRange]:
        """Remove a LimitRange from the cache, returning it if it was present."""
        key = self._make_key(namespace, name)

        with self._lock:
            limit_range = self._limit_ranges.pop(key, None)
            if limit_range:
                logger.info(f"Removed LimitRange from cache: {key}")
            return limit_range

    def get(self, namespace: str, name: str) -> Optional[client.V1LimitRange]:
        with self._lock:
            return self._limit_ranges.get(self._make_key(namespace, name))

    def list(self, namespace: str) -> List[client.V1LimitRange]:
        """List the cached LimitRange objects of a namespace, ordered by name."""
        prefix = self._make_key(namespace, "")
        with self._lock:
            return [
                self._limit_ranges[key]
                for key in sorted(self._limit_ranges)
                if key.startswith(prefix)
            ]

    def clear(self) -> None:
        with self._lock:
            self._limit_ranges.clear()
            logger.info("Cleared LimitRange cache")


def _max_of(a: Optional[str], b: Optional[str]) -> Optional[str]:
    return b if compare(b, a) > 0 else a


def _min_of(a: Optional[str], b: Optional[str]) -> Optional[str]:
    # An unset bound does not constrain
    if is_zero(a):
        return b
    if is_zero(b):
        return a
    return b if compare(b, a) < 0 else a


def _min_of_between(
    current: Optional[str],
    candidate: Optional[str],
    minimum: Optional[str],
    maximum: Optional[str]
) -> Optional[str]:
    """Smallest of current and candidate, only accepting a candidate inside [minimum, maximum]."""
    if compare(candidate, minimum) < 0:
        return current
    if not is_zero(maximum) and compare(candidate, maximum) > 0:
        return current
    if is_zero(current) or compare(candidate, current) < 0:
        return candidate
    return current


def _merge_into(dst: ResourceList, src: Optional[ResourceList], pick) -> None:
    for name, quantity in (src or {}).items():
        dst[name] = pick(dst.get(name), quantity)


def get_virtual_limit_range(
    limit_ranges: List[client.V1LimitRange],
    namespace: str = ""
) -> Optional[client.V1LimitRange]:
    """
    Merge the LimitRange objects of a namespace into a single one.

    With several objects, each limit type gets:
    - the maximum of the min values
    - the minimum of the max values
    - the smallest max limit/request ratio
    - the smallest default and default request that fit into the min/max above

    Returns:
        None without any LimitRange, the object itself if there is only one
    """
    if not limit_ranges:
        return None
    if len(limit_ranges) == 1:
        return limit_ranges[0]

    merged: Dict[str, Dict[str, ResourceList]] = {}
    order: List[str] = []
    items = [
        item
        for limit_range in limit_ranges
        if limit_range.spec is not None
        for item in limit_range.spec.limits or []
    ]

    for item in items:
        if item.type not in merged:
            order.append(item.type)
            merged[item.type] = {
                "min": {}, "max": {}, "default": {}, "default_request": {},
                "max_limit_request_ratio": {},
            }
        fields = merged[item.type]
        _merge_into(fields["min"], item.min, _max_of)
        _merge_into(fields["max"], item.max, _min_of)
        _merge_into(fields["max_limit_request_ratio"], item.max_limit_request_ratio, _min_of)

    # Defaults need the final min/max of their type
    for item in items:
        fields = merged[item.type]
        for field_name in ("default", "default_request"):
            for name, quantity in (getattr(item, field_name) or {}).items():
                picked = _min_of_between(
                    fields[field_name].get(name),
                    quantity,
                    fields["min"].get(name),
                    fields["max"].get(name),
                )
                if picked is not None:
                    fields[field_name][name] = picked

    limits = [
        client.V1LimitRangeItem(
            type=limit_type,
            **{key: resources or None for key, resources in merged[limit_type].items()}
        )
        for limit_type in order
    ]
    logger.debug(f"Merged {len(limit_ranges)} LimitRange objects in namespace {namespace}")
    return client.V1LimitRange(
        metadata=client.V1ObjectMeta(name=VIRTUAL_LIMIT_RANGE_NAME, namespace=namespace),
        spec=client.V1LimitRangeSpec(limits=limits),
    )


def _validate(limit_range: client.V1LimitRange) -> None:
    """Parse every quantity of a LimitRange, raising ValueError on a malformed one."""
    if limit_range.spec is None:
        return
    for item in limit_range.spec.limits or []:
        for resources in (item.min, item.max, item.default, item.default_request,
                          item.max_limit_request_ratio):
            for quantity in (resources or {}).values():
                parse(quantity)


class LimitRangeResolver:
    """Resolves the effective LimitRange of a namespace from a lister."""

    def __init__(self, lister):
        """
        Initialize the resolver.

        Args:
            lister: Any object with a list(namespace) method returning V1LimitRange objects,
                e.g. KubeLimitRangeLister or LimitRangeCache
        """
        self.lister = lister

    def resolve(
        self,
        namespace: str,
        stop_event: Optional[threading.Event] = None
    ) -> Optional[client.V1LimitRange]:
        """
        Resolve the effective LimitRange of a namespace.

        Args:
            namespace: Namespace to resolve the LimitRange for
            stop_event: Cancels the resolution when set

        Returns:
            The effective LimitRange, or None if the namespace has none

        Raises:
            PolicyResolutionError: If cancelled, on API error or on a malformed LimitRange
        """
        if stop_event is not None and stop_event.is_set():
            raise PolicyResolutionError(f"Resolution of LimitRange in {namespace} cancelled")

        try:
            limit_ranges = self.lister.list(namespace)
        except ApiException as e:
            logger.error(f"Error listing LimitRange objects in {namespace}: {e}")
            raise PolicyResolutionError(
                f"Cannot list LimitRange objects in {namespace}: {e.reason}"
            ) from e
        except HTTPError as e:
            logger.error(f"Error reaching the API server for {namespace}: {e}")
            raise PolicyResolutionError(
                f"Cannot reach the API server to list LimitRange objects in {namespace}: {e}"
            ) from e

        if stop_event is not None and stop_event.is_set():
            raise PolicyResolutionError(f"Resolution of LimitRange in {namespace} cancelled")

        for limit_range in limit_ranges:
            try:
                _validate(limit_range)
            except ValueError as e:
                name = limit_range.metadata.name if limit_range.metadata else ""
                raise PolicyResolutionError(
                    f"Malformed LimitRange {namespace}/{name}: {e}"
                ) from e

        logger.debug(f"Found {len(limit_ranges)} LimitRange object(s) in {namespace}")
        return get_virtual_limit_range(limit_ranges, namespace)
