"""Configuration settings for the LimitRange defaulter."""

# Resource names that receive defaults, in iteration order
RESOURCE_CPU = "cpu"
RESOURCE_MEMORY = "memory"
RESOURCE_EPHEMERAL_STORAGE = "ephemeral-storage"
RESOURCE_NAMES = (RESOURCE_CPU, RESOURCE_MEMORY, RESOURCE_EPHEMERAL_STORAGE)

# Resources divided in whole units, the rest in milli units
WHOLE_UNIT_RESOURCES = (RESOURCE_MEMORY, RESOURCE_EPHEMERAL_STORAGE)

# LimitRange item types
LIMIT_TYPE_CONTAINER = "Container"
LIMIT_TYPE_POD = "Pod"

# Name given to the LimitRange merged from several objects
VIRTUAL_LIMIT_RANGE_NAME = "virtual-limit-range"

# API settings
API_REQUEST_TIMEOUT_SECONDS = 30

# CLI defaults
DEFAULT_NAMESPACE = "default"
