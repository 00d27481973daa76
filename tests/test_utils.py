from decimal import Decimal

import pytest

from limitrange_defaulter.utils import (
    BINARY_SI,
    DECIMAL_EXPONENT,
    DECIMAL_SI,
    compare,
    deserialize,
    format_quantity,
    is_zero,
    milli_value,
    new_milli_quantity,
    new_quantity,
    parse,
    quantity_format,
    serialize,
    take_the_max,
    value,
)


@pytest.mark.parametrize('quantity, expected', (
    (None, Decimal(0)),
    ('', Decimal(0)),
    ('100m', Decimal('0.1')),
    ('2', Decimal(2)),
    ('1Ki', Decimal(1024)),
    ('1e3', Decimal(1000)),
))
def test_parse(quantity, expected):
    assert parse(quantity) == expected


def test_parse_malformed():
    with pytest.raises(ValueError):
        parse('lots')


@pytest.mark.parametrize('quantity', ('NaN', 'Infinity', '-Infinity'))
def test_parse_non_finite(quantity):
    with pytest.raises(ValueError):
        parse(quantity)


@pytest.mark.parametrize('quantity, expected', (
    (None, True),
    ('0', True),
    ('0m', True),
    ('0Mi', True),
    ('1m', False),
    ('1Ki', False),
))
def test_is_zero(quantity, expected):
    assert is_zero(quantity) == expected


@pytest.mark.parametrize('a, b, expected', (
    ('1', '1000m', 0),
    ('1Ki', '1000', 1),
    ('100m', '1', -1),
    (None, '1m', -1),
    (None, None, 0),
))
def test_compare(a, b, expected):
    assert compare(a, b) == expected


@pytest.mark.parametrize('current, default, minimum, expected', (
    ('100m', '200m', '150m', '200m'),
    ('300m', '200m', '100m', '300m'),
    ('100m', '200m', '250m', '250m'),
    (None, '0', '50m', '50m'),
    (None, None, None, None),
    # Ties keep the earlier value
    ('1', '1000m', None, '1'),
))
def test_take_the_max(current, default, minimum, expected):
    assert take_the_max(current, default, minimum) == expected


def test_value_rounds_up():
    assert value('1.5') == 2
    assert value('300Mi') == 314572800
    assert value(None) == 0


def test_milli_value_rounds_up():
    assert milli_value('500m') == 500
    assert milli_value('2') == 2000
    assert milli_value('0.1666') == 167


@pytest.mark.parametrize('quantity, expected', (
    (None, DECIMAL_SI),
    ('300Mi', BINARY_SI),
    ('1Gi', BINARY_SI),
    ('500m', DECIMAL_SI),
    ('2', DECIMAL_SI),
    ('1G', DECIMAL_SI),
    ('1E', DECIMAL_SI),
    ('1e3', DECIMAL_EXPONENT),
    ('5E-3', DECIMAL_EXPONENT),
))
def test_quantity_format(quantity, expected):
    assert quantity_format(quantity) == expected


@pytest.mark.parametrize('amount, fmt, expected', (
    (0, BINARY_SI, '0'),
    (Decimal('0.25'), DECIMAL_SI, '250m'),
    (Decimal('0.166'), DECIMAL_SI, '166m'),
    (2, DECIMAL_SI, '2'),
    (1500000, DECIMAL_SI, '1500k'),
    (78643200, BINARY_SI, '75Mi'),
    (1024 ** 3, BINARY_SI, '1Gi'),
    (314572800 // 7, BINARY_SI, '44938971'),
    (512, BINARY_SI, '512'),
    (Decimal('0.5'), BINARY_SI, '500m'),
    (1000, DECIMAL_EXPONENT, '1e3'),
    (Decimal('0.5'), DECIMAL_EXPONENT, '500e-3'),
    (Decimal('1E-12'), DECIMAL_SI, '1n'),
))
def test_format_quantity(amount, fmt, expected):
    assert format_quantity(amount, fmt) == expected


def test_new_quantities():
    assert new_milli_quantity(166, DECIMAL_SI) == '166m'
    assert new_milli_quantity(2000, DECIMAL_SI) == '2'
    assert new_quantity(78643200, BINARY_SI) == '75Mi'
    assert new_quantity(0, DECIMAL_SI) == '0'


def test_deserialize_and_serialize_pod():
    manifest = {
        'apiVersion': 'v1',
        'kind': 'Pod',
        'metadata': {'name': 'build'},
        'spec': {
            'initContainers': [{'name': 'prepare'}],
            'containers': [{'name': 'step', 'resources': {'requests': {'cpu': '1'}}}],
        },
    }
    pod = deserialize(manifest, 'V1Pod')

    assert pod.metadata.name == 'build'
    assert pod.spec.init_containers[0].resources is None
    assert pod.spec.containers[0].resources.requests == {'cpu': '1'}
    assert serialize(pod) == manifest
