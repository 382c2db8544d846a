"""
Ledger entities and their byte encoding.

Entities are plain dataclasses. Their encoded form is the msgpack map of
their fields in declaration order, so equal entities always encode to
identical bytes. Decoding is strict: a record with a missing or mistyped
field raises CodecError instead of producing a partial object.
"""
import msgpack
from enum import IntEnum
from typing import Optional
from dataclasses import dataclass, field, asdict


class CodecError(ValueError):
    """Raised when bytes cannot be decoded into the requested entity."""
    pass


class PropertyValueType(IntEnum):
    NUMBER = 0
    STRING = 1
    BYTES = 2
    LOCATION = 3


class UnitOfMeasure(IntEnum):
    UNIT = 0
    KILOS = 1
    LITRE = 2
    METRE = 3


class ProposalStatus(IntEnum):
    ISSUED = 0
    ACCEPTED = 1
    REJECTED = 2
    CANCELED = 3


class FinalizationReason(IntEnum):
    WITHDRAWN = 0
    EXPIRED = 1
    DESTROYED = 2
    CONSUMED = 3


class EventTypology(IntEnum):
    DESCRIPTION = 0
    TRANSFORMATION = 1


# --- Field readers ---

def _get(data: dict, key: str):
    if key not in data:
        raise CodecError(f"Missing field '{key}'")
    return data[key]


def _str(data: dict, key: str) -> str:
    value = _get(data, key)
    if not isinstance(value, str):
        raise CodecError(f"Field '{key}' must be a string")
    return value


def _int(data: dict, key: str) -> int:
    value = _get(data, key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise CodecError(f"Field '{key}' must be an integer")
    return value


def _float(data: dict, key: str) -> float:
    value = _get(data, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CodecError(f"Field '{key}' must be a number")
    return float(value)


def _bytes(data: dict, key: str) -> bytes:
    value = _get(data, key)
    if not isinstance(value, bytes):
        raise CodecError(f"Field '{key}' must be bytes")
    return value


def _bool(data: dict, key: str) -> bool:
    value = _get(data, key)
    if not isinstance(value, bool):
        raise CodecError(f"Field '{key}' must be a boolean")
    return value


def _str_list(data: dict, key: str) -> list[str]:
    value = _get(data, key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise CodecError(f"Field '{key}' must be a list of strings")
    return list(value)


def _map(value, key: str) -> dict:
    if not isinstance(value, dict):
        raise CodecError(f"Field '{key}' must be a map")
    return value


def _map_list(data: dict, key: str) -> list[dict]:
    value = _get(data, key)
    if not isinstance(value, list):
        raise CodecError(f"Field '{key}' must be a list")
    return [_map(v, key) for v in value]


class Entity:
    """Base for every record stored in the ledger."""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict):
        raise NotImplementedError


# --- Identities ---

@dataclass
class SystemAdmin(Entity):
    public_key: str
    timestamp: int

    @classmethod
    def from_dict(cls, data: dict) -> 'SystemAdmin':
        return cls(public_key=_str(data, 'public_key'), timestamp=_int(data, 'timestamp'))


@dataclass
class CompanyAdmin(Entity):
    public_key: str
    company: str  # Company address
    timestamp: int

    @classmethod
    def from_dict(cls, data: dict) -> 'CompanyAdmin':
        return cls(
            public_key=_str(data, 'public_key'),
            company=_str(data, 'company'),
            timestamp=_int(data, 'timestamp'),
        )


@dataclass
class Operator(Entity):
    public_key: str
    company: str  # Company address
    task: str  # Task Type address
    timestamp: int

    @classmethod
    def from_dict(cls, data: dict) -> 'Operator':
        return cls(
            public_key=_str(data, 'public_key'),
            company=_str(data, 'company'),
            task=_str(data, 'task'),
            timestamp=_int(data, 'timestamp'),
        )


@dataclass
class CertificationAuthority(Entity):
    public_key: str
    name: str
    website: str
    products: list[str]  # Product Type addresses
    timestamp: int

    @classmethod
    def from_dict(cls, data: dict) -> 'CertificationAuthority':
        return cls(
            public_key=_str(data, 'public_key'),
            name=_str(data, 'name'),
            website=_str(data, 'website'),
            products=_str_list(data, 'products'),
            timestamp=_int(data, 'timestamp'),
        )


# --- Types ---

@dataclass
class TaskType(Entity):
    id: str
    role: str

    @classmethod
    def from_dict(cls, data: dict) -> 'TaskType':
        return cls(id=_str(data, 'id'), role=_str(data, 'role'))


@dataclass
class DerivedProduct(Entity):
    derived_product_type: str  # Product Type address
    conversion_rate: float

    @classmethod
    def from_dict(cls, data: dict) -> 'DerivedProduct':
        return cls(
            derived_product_type=_str(data, 'derived_product_type'),
            conversion_rate=_float(data, 'conversion_rate'),
        )


@dataclass
class ProductType(Entity):
    id: str
    name: str
    description: str
    measure: int
    derived_products: list[DerivedProduct] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'ProductType':
        return cls(
            id=_str(data, 'id'),
            name=_str(data, 'name'),
            description=_str(data, 'description'),
            measure=_int(data, 'measure'),
            derived_products=[
                DerivedProduct.from_dict(d) for d in _map_list(data, 'derived_products')
            ],
        )


@dataclass
class PropertyType(Entity):
    id: str
    name: str
    measure: int
    type: int
    enabled_task_types: list[str]
    enabled_product_types: list[str]

    @classmethod
    def from_dict(cls, data: dict) -> 'PropertyType':
        return cls(
            id=_str(data, 'id'),
            name=_str(data, 'name'),
            measure=_int(data, 'measure'),
            type=_int(data, 'type'),
            enabled_task_types=_str_list(data, 'enabled_task_types'),
            enabled_product_types=_str_list(data, 'enabled_product_types'),
        )


@dataclass
class EventParameterType(Entity):
    id: str
    name: str
    type: int

    @classmethod
    def from_dict(cls, data: dict) -> 'EventParameterType':
        return cls(id=_str(data, 'id'), name=_str(data, 'name'), type=_int(data, 'type'))


@dataclass
class EventParameter(Entity):
    parameter_type: str  # Event Parameter Type address
    required: bool = False
    min_value: int = 0
    max_value: int = 0
    min_length: int = 0
    max_length: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> 'EventParameter':
        return cls(
            parameter_type=_str(data, 'parameter_type'),
            required=_bool(data, 'required'),
            min_value=_int(data, 'min_value'),
            max_value=_int(data, 'max_value'),
            min_length=_int(data, 'min_length'),
            max_length=_int(data, 'max_length'),
        )

    @classmethod
    def from_input(cls, data: dict) -> 'EventParameter':
        """Builds a parameter from action input, where unset bounds may be omitted."""
        values = cls('').to_dict()
        del values['parameter_type']
        values.update(_map(data, 'parameters'))
        return cls.from_dict(values)


@dataclass
class EventType(Entity):
    id: str
    typology: int
    name: str
    description: str
    parameters: list[EventParameter]
    enabled_task_types: list[str]
    enabled_product_types: list[str]
    derived_product_types: list[str]

    @classmethod
    def from_dict(cls, data: dict) -> 'EventType':
        return cls(
            id=_str(data, 'id'),
            typology=_int(data, 'typology'),
            name=_str(data, 'name'),
            description=_str(data, 'description'),
            parameters=[EventParameter.from_dict(p) for p in _map_list(data, 'parameters')],
            enabled_task_types=_str_list(data, 'enabled_task_types'),
            enabled_product_types=_str_list(data, 'enabled_product_types'),
            derived_product_types=_str_list(data, 'derived_product_types'),
        )



# --- Companies and Fields ---

@dataclass
class Location(Entity):
    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, data: dict) -> 'Location':
        return cls(latitude=_float(data, 'latitude'), longitude=_float(data, 'longitude'))


@dataclass
class Company(Entity):
    id: str
    name: str
    description: str
    website: str
    admin_public_key: str
    enabled_product_types: list[str]
    fields: list[str]  # Field addresses
    operators: list[str]  # Operator public keys
    batches: list[str]  # Batch ids
    timestamp: int

    @classmethod
    def from_dict(cls, data: dict) -> 'Company':
        return cls(
            id=_str(data, 'id'),
            name=_str(data, 'name'),
            description=_str(data, 'description'),
            website=_str(data, 'website'),
            admin_public_key=_str(data, 'admin_public_key'),
            enabled_product_types=_str_list(data, 'enabled_product_types'),
            fields=_str_list(data, 'fields'),
            operators=_str_list(data, 'operators'),
            batches=_str_list(data, 'batches'),
            timestamp=_int(data, 'timestamp'),
        )


@dataclass
class Field(Entity):
    id: str
    description: str
    company: str  # Company address
    product: str  # Product Type address
    quantity: float
    location: Location
    events: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'Field':
        return cls(
            id=_str(data, 'id'),
            description=_str(data, 'description'),
            company=_str(data, 'company'),
            product=_str(data, 'product'),
            quantity=_float(data, 'quantity'),
            location=Location.from_dict(_map(_get(data, 'location'), 'location')),
            events=_str_list(data, 'events'),
        )


# --- Batches ---

@dataclass
class PropertyValue(Entity):
    float_value: float = 0.0
    string_value: str = ''
    bytes_value: bytes = b''
    location_value: Optional[Location] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'PropertyValue':
        location = _get(data, 'location_value')
        return cls(
            float_value=_float(data, 'float_value'),
            string_value=_str(data, 'string_value'),
            bytes_value=_bytes(data, 'bytes_value'),
            location_value=(
                Location.from_dict(_map(location, 'location_value'))
                if location is not None else None
            ),
        )

    @classmethod
    def from_input(cls, data: dict) -> 'PropertyValue':
        """Builds a value from action input, where unset members may be omitted."""
        defaults = cls().to_dict()
        defaults.update(_map(data, 'property_value'))
        return cls.from_dict(defaults)


@dataclass
class BatchProperty(Entity):
    property_type_id: str
    values: list[PropertyValue]

    @classmethod
    def from_dict(cls, data: dict) -> 'BatchProperty':
        return cls(
            property_type_id=_str(data, 'property_type_id'),
            values=[PropertyValue.from_dict(v) for v in _map_list(data, 'values')],
        )


@dataclass
class Certificate(Entity):
    authority: str  # Certification Authority public key
    link: str
    hash: str
    timestamp: int

    @classmethod
    def from_dict(cls, data: dict) -> 'Certificate':
        return cls(
            authority=_str(data, 'authority'),
            link=_str(data, 'link'),
            hash=_str(data, 'hash'),
            timestamp=_int(data, 'timestamp'),
        )


@dataclass
class Proposal(Entity):
    sender_company: str  # Company id
    receiver_company: str  # Company id
    status: int
    notes: str
    timestamp: int
    motivation: str = ''

    @classmethod
    def from_dict(cls, data: dict) -> 'Proposal':
        return cls(
            sender_company=_str(data, 'sender_company'),
            receiver_company=_str(data, 'receiver_company'),
            status=_int(data, 'status'),
            notes=_str(data, 'notes'),
            timestamp=_int(data, 'timestamp'),
            motivation=_str(data, 'motivation'),
        )


@dataclass
class Finalization(Entity):
    reason: int
    reporter: str  # Operator public key
    explanation: str

    @classmethod
    def from_dict(cls, data: dict) -> 'Finalization':
        return cls(
            reason=_int(data, 'reason'),
            reporter=_str(data, 'reporter'),
            explanation=_str(data, 'explanation'),
        )


@dataclass
class Batch(Entity):
    id: str
    company: str  # Company address
    product: str  # Product Type address
    source_field: str  # Field address the batch was harvested from
    timestamp: int
    properties: list[BatchProperty] = field(default_factory=list)
    certificates: list[Certificate] = field(default_factory=list)
    proposals: list[Proposal] = field(default_factory=list)
    finalization: Optional[Finalization] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Batch':
        finalization = _get(data, 'finalization')
        return cls(
            id=_str(data, 'id'),
            company=_str(data, 'company'),
            product=_str(data, 'product'),
            source_field=_str(data, 'source_field'),
            timestamp=_int(data, 'timestamp'),
            properties=[BatchProperty.from_dict(p) for p in _map_list(data, 'properties')],
            certificates=[Certificate.from_dict(c) for c in _map_list(data, 'certificates')],
            proposals=[Proposal.from_dict(p) for p in _map_list(data, 'proposals')],
            finalization=(
                Finalization.from_dict(_map(finalization, 'finalization'))
                if finalization is not None else None
            ),
        )


# --- Codec ---

def encode(entity: Entity) -> bytes:
    """Returns the canonical byte representation of an entity."""
    return msgpack.packb(entity.to_dict(), use_bin_type=True)


def decode(cls, data: bytes):
    """
    Decodes bytes into an instance of `cls`.

    Raises CodecError on empty input, invalid msgpack, a non-map
    payload, or any missing or mistyped field.
    """
    if not data:
        raise CodecError(f"No data to decode as {cls.__name__}")
    try:
        raw = msgpack.unpackb(data, raw=False)
    except (ValueError, TypeError, msgpack.UnpackException) as e:
        raise CodecError(f"Invalid {cls.__name__} encoding: {e}") from e
    if not isinstance(raw, dict):
        raise CodecError(f"{cls.__name__} encoding is not a map")
    return cls.from_dict(raw)
