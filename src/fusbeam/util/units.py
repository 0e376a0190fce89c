from __future__ import annotations

from fusbeam.util.errors import InvalidUnit

_PREFIXES = {
    'pico': 1.0e-12, 'p': 1.0e-12,
    'nano': 1.0e-9, 'n': 1.0e-9,
    'micro': 1.0e-6, 'u': 1.0e-6, 'µ': 1.0e-6, 'μ': 1.0e-6,
    'milli': 1.0e-3, 'm': 1.0e-3,
    'centi': 1.0e-2, 'c': 1.0e-2,
    'deci': 1.0e-1, 'd': 1.0e-1,
    '': 1.0,
    'kilo': 1.0e3, 'k': 1.0e3,
    'mega': 1.0e6, 'M': 1.0e6,
    'giga': 1.0e9, 'G': 1.0e9,
    'tera': 1.0e12, 'T': 1.0e12,
}

_TIME_PREFIXES = {
    'min': 60.0, 'mins': 60.0, 'minute': 60.0, 'minutes': 60.0,
    'hour': 3600.0, 'hours': 3600.0, 'hr': 3600.0, 'hrs': 3600.0,
    'day': 86400.0, 'days': 86400.0, 'd': 86400.0,
}

_ANGLE_SCALES = {
    'rad': 1.0, 'radian': 1.0, 'radians': 1.0,
    'deg': 3.14159265358979323846 / 180, 'degree': 3.14159265358979323846 / 180,
    'degrees': 3.14159265358979323846 / 180, '°': 3.14159265358979323846 / 180,
}


def getunittype(unit: str) -> str:
    """Classify a unit string as 'distance', 'time', 'angle', 'area', 'volume', 'frequency', 'pressure', 'watt' or 'other'."""
    if not isinstance(unit, str):
        raise InvalidUnit(f"Units must be a string, got {type(unit).__name__}")
    unit = unit.lower()
    if unit in ['micron', 'microns']:
        return 'distance'
    elif unit in _TIME_PREFIXES:
        return 'time'
    elif unit in _ANGLE_SCALES:
        return 'angle'
    elif 'sec' in unit:
        return 'time'
    elif 'meter' in unit:
        return 'distance'
    elif unit.endswith('s'):
        return 'time'
    elif unit.endswith('m'):
        return 'distance'
    elif unit.endswith(('m2', 'm^2')):
        return 'area'
    elif unit.endswith(('m3', 'm^3')):
        return 'volume'
    elif unit.endswith('hz'):
        return 'frequency'
    elif unit.endswith('pa'):
        return 'pressure'
    elif unit.endswith('w'):
        return 'watt'
    else:
        return 'other'


def getsiscale(unit: str, type: str) -> float:
    """Return the factor that converts one `unit` of the given type to SI."""
    type = type.lower()

    if type == 'angle':
        return _ANGLE_SCALES[unit.lower()]
    if type == 'time' and unit.lower() in _TIME_PREFIXES:
        return _TIME_PREFIXES[unit.lower()]

    if type in ['distance', 'area', 'volume']:
        if unit.lower() in ['micron', 'microns']:
            prefix = 'micro'
        else:
            idx = unit.find('meter')
            if idx == -1:
                idx = unit.rfind('m')
                if idx == -1:
                    idx = len(unit)
            prefix = unit[:idx]
    elif type == 'time':
        idx = unit.find('sec')
        if idx == -1:
            idx = unit.rfind('s')
            if idx == -1:
                idx = len(unit)
        prefix = unit[:idx]
    elif type in ['frequency', 'pressure']:
        prefix = unit[:len(unit) - 2]
    elif type == 'watt':
        prefix = unit[:len(unit) - 1]
    else:
        prefix = unit[:len(unit) - len(type) + 1]

    if prefix not in _PREFIXES:
        raise InvalidUnit(f'Unknown prefix {prefix} in unit {unit}')
    scl = _PREFIXES[prefix]

    if type == 'area':
        scl = scl ** 2.0
    elif type == 'volume':
        scl = scl ** 3.0

    return scl


def getunitconversion(from_unit: str, to_unit: str) -> float:
    """Return the factor `scl` such that `value_in_to_unit = scl * value_in_from_unit`.

    Ratio units such as "m/s" are converted numerator and denominator separately.
    """
    if not from_unit or from_unit == to_unit:
        return 1.0

    slash0 = from_unit.find('/')
    slash1 = to_unit.find('/')

    if slash0 != -1 and slash1 != -1:
        num0, denom0 = from_unit.split('/', 1)
        num1, denom1 = to_unit.split('/', 1)
        return getunitconversion(num0, num1) / getunitconversion(denom0, denom1)
    elif slash0 != -1 or slash1 != -1:
        raise InvalidUnit(f'Unit ratio mismatch ({from_unit} vs {to_unit})')

    type0 = getunittype(from_unit)
    type1 = getunittype(to_unit)
    if type0 != type1:
        raise InvalidUnit(f'Unit type mismatch ({type0}) vs ({type1})')

    if type0 == 'other':
        # Same trailing base unit (e.g. "kg" -> "g"), compare the prefixes
        n = 0
        while n < min(len(from_unit), len(to_unit)) and from_unit[-(n + 1):] == to_unit[-(n + 1):]:
            n += 1
        if n == 0:
            raise InvalidUnit(f'Cannot convert {from_unit} to {to_unit}')
        prefix0, prefix1 = from_unit[:-n], to_unit[:-n]
        if prefix0 not in _PREFIXES or prefix1 not in _PREFIXES:
            raise InvalidUnit(f'Cannot convert {from_unit} to {to_unit}')
        return _PREFIXES[prefix0] / _PREFIXES[prefix1]

    return getsiscale(from_unit, type0) / getsiscale(to_unit, type0)


def is_distance_unit(unit) -> bool:
    """Whether `unit` is a recognized length unit."""
    try:
        validate_distance_unit(unit)
    except InvalidUnit:
        return False
    return True


def validate_distance_unit(unit) -> str:
    """Return `unit` unchanged if it is a recognized length unit, otherwise raise InvalidUnit."""
    if getunittype(unit) != 'distance':
        raise InvalidUnit(f"Expected a distance unit, got '{unit}'")
    getsiscale(unit, 'distance')
    return unit


def validate_angle_unit(unit) -> str:
    if getunittype(unit) != 'angle':
        raise InvalidUnit(f"Expected an angle unit, got '{unit}'")
    return unit
