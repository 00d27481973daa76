"""Builders for Kubernetes objects used in tests."""

from kubernetes import client

from limitrange_defaulter.config import LIMIT_TYPE_CONTAINER


def limit_item(limit_type=LIMIT_TYPE_CONTAINER, min=None, max=None, default=None,
               default_request=None, max_limit_request_ratio=None):
    return client.V1LimitRangeItem(
        type=limit_type,
        min=min,
        max=max,
        default=default,
        default_request=default_request,
        max_limit_request_ratio=max_limit_request_ratio,
    )


def limit_range(*items, name='limits', namespace='ns'):
    return client.V1LimitRange(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace),
        spec=client.V1LimitRangeSpec(limits=list(items)),
    )


def container(name, requests=None, limits=None, no_resources=False):
    resources = None
    if not no_resources:
        resources = client.V1ResourceRequirements(requests=requests, limits=limits)
    return client.V1Container(name=name, resources=resources)


def pod(containers, init_containers=None, name='pod', namespace='ns'):
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace),
        spec=client.V1PodSpec(containers=containers, init_containers=init_containers),
    )
