"""
Unit of Measure conversion engine
Builds a bidirectional graph of conversion factors (global defaults plus
tenant overrides) and resolves quantities between any two connected units.

Factor convention: 1 x FROM x factor = TO
    BOX -> DOZEN, factor 2   (1 BOX = 2 DOZEN)
The inverse edge (DOZEN -> BOX, 1/2) is added automatically.
"""
import math
from collections import deque, namedtuple
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

SCOPE_GLOBAL = 'global'
SCOPE_TENANT = 'tenant'

UNIT_FAMILIES = ('mass', 'volume', 'length', 'area', 'time', 'count', 'other')


class UOMConversionError(Exception):
    """Base class for conversion engine errors"""


class InvalidFactor(UOMConversionError, ValueError):
    """Conversion factor is zero, negative or not a finite number"""


class InvalidQuantity(UOMConversionError, ValueError):
    """Quantity to convert is not a finite number"""


class NoConversionPath(UOMConversionError):
    """The two units are not connected in the conversion graph"""

    def __init__(self, from_unit, to_unit, message=None):
        self.from_unit = from_unit
        self.to_unit = to_unit
        super().__init__(message or f'No conversion path between {from_unit} and {to_unit}')


class UnknownUnit(NoConversionPath):
    """One of the endpoints does not appear in the conversion graph at all"""

    def __init__(self, from_unit, to_unit, unit):
        self.unit = unit
        super().__init__(from_unit, to_unit, f'Unknown unit {unit}: no conversion path between {from_unit} and {to_unit}')


Edge = namedtuple('Edge', ['to', 'factor'])


class ConversionRecord(namedtuple('ConversionRecord', ['from_unit', 'to_unit', 'factor', 'scope', 'tenant_id'])):
    """1 from_unit = factor to_unit, either global or scoped to one tenant"""
    __slots__ = ()

    def __new__(cls, from_unit, to_unit, factor, scope=SCOPE_GLOBAL, tenant_id=None):
        return super().__new__(cls, from_unit, to_unit, factor, scope, tenant_id)

    @property
    def is_tenant_scoped(self):
        return self.scope == SCOPE_TENANT


class UnitRef(namedtuple('UnitRef', ['id', 'code', 'name', 'family'])):
    __slots__ = ()

    def __new__(cls, id, code, name=None, family=None):
        return super().__new__(cls, id, code, name, family)


def normalize_code(code) -> str:
    return str(code or '').strip().upper()


def coerce_factor(value) -> Optional[float]:
    """Return the factor as a float, or None when it cannot be used as an edge"""
    try:
        factor = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(factor) or factor <= 0:
        return None
    return factor


def validate_factor(value) -> float:
    """Like coerce_factor, but raises InvalidFactor for unusable values"""
    factor = coerce_factor(value)
    if factor is None:
        raise InvalidFactor(f'Conversion factor must be a finite number greater than 0, got {value!r}')
    return factor


class ConversionGraph:
    """
    Adjacency map from unit id to a list of Edge(to, factor), plus a
    code -> id index used to resolve unit references by code.

    Instances are built by build_graph() and not modified afterwards.
    """

    def __init__(self, adjacency: Dict[Hashable, List[Edge]], codes: Dict[str, Hashable] = None,
                 unit_codes: Dict[Hashable, str] = None):
        self._adjacency = adjacency
        self._codes = codes or {}
        self._unit_codes = unit_codes or {}

    def __contains__(self, unit_id):
        return unit_id in self._adjacency

    def __len__(self):
        return len(self._adjacency)

    def __repr__(self):
        edges = sum(len(e) for e in self._adjacency.values())
        return f'<ConversionGraph {len(self._adjacency)} units, {edges} edges>'

    @property
    def units(self):
        return list(self._adjacency)

    def neighbors(self, unit_id) -> List[Edge]:
        return list(self._adjacency.get(unit_id, ()))

    def code_of(self, unit_id) -> Optional[str]:
        return self._unit_codes.get(unit_id)

    def resolve(self, ref):
        """Map an external unit reference (id or code, any case) to a canonical id"""
        if ref is None or ref == '':
            return None
        if ref in self._adjacency or ref in self._unit_codes:
            return ref
        return self._codes.get(normalize_code(ref), ref)

    def same_unit(self, a, b) -> bool:
        """True for equal ids, or for two ids carrying the same code"""
        if a is None or b is None:
            return False
        if a == b:
            return True
        code_a = self.code_of(a)
        return bool(code_a) and code_a == self.code_of(b)


def build_graph(records: Iterable, units: Iterable = None) -> ConversionGraph:
    """
    Build a conversion graph from conversion records.

    Records are expected global first, tenant-scoped after. For each ordered
    (from, to) pair a tenant-scoped record replaces the global one; within a
    scope the last record wins. Malformed records (missing unit, unusable
    factor, self-conversion) are skipped.
    """
    retained = {}
    for record in records or ():
        from_unit, to_unit = record.from_unit, record.to_unit
        if from_unit is None or from_unit == '' or to_unit is None or to_unit == '':
            continue
        if from_unit == to_unit:
            continue
        factor = coerce_factor(record.factor)
        if factor is None:
            continue

        key = (from_unit, to_unit)
        current = retained.get(key)
        if current is not None and current[1] and record.scope != SCOPE_TENANT:
            # a global row never displaces a tenant override
            continue
        retained[key] = (factor, record.scope == SCOPE_TENANT)

    adjacency = {}
    for (from_unit, to_unit), (factor, _) in retained.items():
        adjacency.setdefault(from_unit, []).append(Edge(to_unit, factor))
        adjacency.setdefault(to_unit, []).append(Edge(from_unit, 1.0 / factor))

    codes = {}
    unit_codes = {}
    for unit in units or ():
        code = normalize_code(unit.code)
        if not code:
            continue
        unit_codes[unit.id] = code
        codes.setdefault(code, unit.id)

    return ConversionGraph(adjacency, codes, unit_codes)


def check_quantity(qty) -> float:
    """Return qty as a float; raises InvalidQuantity for NaN, inf or non-numeric values"""
    if isinstance(qty, bool):
        raise InvalidQuantity(f'Invalid quantity {qty!r}')
    try:
        value = float(qty)
    except (TypeError, ValueError):
        raise InvalidQuantity(f'Invalid quantity {qty!r}')
    if not math.isfinite(value):
        raise InvalidQuantity(f'Invalid quantity {qty!r}')
    return value


def find_path(from_unit, to_unit, graph: ConversionGraph) -> Tuple[List, float]:
    """
    Breadth-first search for a path between two units.

    Returns (path, factor) where path lists the unit ids from source to target
    and factor is the product of the edge factors along it. The first path
    discovered wins; with several disagreeing paths the adjacency insertion
    order decides, not hop count or override scope.
    """
    source = graph.resolve(from_unit)
    target = graph.resolve(to_unit)

    if source is None or target is None:
        raise NoConversionPath(from_unit, to_unit)
    if graph.same_unit(source, target):
        return [source], 1.0
    if source not in graph:
        raise UnknownUnit(from_unit, to_unit, from_unit)
    if target not in graph:
        raise UnknownUnit(from_unit, to_unit, to_unit)

    parents = {source: None}
    queue = deque([(source, 1.0)])
    while queue:
        unit_id, acc = queue.popleft()
        for edge in graph.neighbors(unit_id):
            if edge.to in parents:
                continue
            parents[edge.to] = unit_id
            factor = acc * edge.factor
            if edge.to == target:
                path = [target]
                while parents[path[-1]] is not None:
                    path.append(parents[path[-1]])
                path.reverse()
                return path, factor
            queue.append((edge.to, factor))

    raise NoConversionPath(from_unit, to_unit)


def conversion_factor(from_unit, to_unit, graph: ConversionGraph) -> float:
    return find_path(from_unit, to_unit, graph)[1]


def convert(qty, from_unit, to_unit, graph: ConversionGraph) -> float:
    """
    Convert qty from one unit to another.

    Raises NoConversionPath (UnknownUnit for an id missing from the graph)
    when the units are not connected, and InvalidQuantity for NaN/inf.
    The same unit, or two units sharing a code, returns the quantity unchanged
    (as a float, like every other result).
    """
    value = check_quantity(qty)
    source = graph.resolve(from_unit)
    target = graph.resolve(to_unit)
    if graph.same_unit(source, target):
        return value
    return value * conversion_factor(source, target, graph)


def try_convert(qty, from_unit, to_unit, graph: Optional[ConversionGraph]) -> Optional[float]:
    """Non-raising convert(): returns None when there is no usable result"""
    if graph is None:
        return None
    try:
        return convert(qty, from_unit, to_unit, graph)
    except UOMConversionError:
        return None


def can_convert(from_unit, to_unit, graph: Optional[ConversionGraph]) -> bool:
    if graph is None:
        return False
    try:
        find_path(from_unit, to_unit, graph)
    except NoConversionPath:
        return False
    return True
