"""
Deterministic ledger addressing.

Every address is NAMESPACE (6 hex) | kind prefix (2 hex) | suffix (62 hex).
User and type addresses spend the first two suffix characters on a
sub-prefix, so all addresses share the same 70 character length.
"""
import re
from .crypto import hash_and_slice

FAMILY_NAME = 'supplychain'
FAMILY_VERSION = '1.0'

NAMESPACE = hash_and_slice(FAMILY_NAME, 6)
ADDRESS_LENGTH = 70
SUFFIX_LENGTH = ADDRESS_LENGTH - len(NAMESPACE) - 2

PREFIXES = {
    'USERS': '00',
    'TYPES': '01',
    'COMPANY': '02',
    'FIELD': '03',
    'BATCH': '04',
}

USER_PREFIXES = {
    'SYSTEM_ADMIN': '00',
    'COMPANY_ADMIN': '01',
    'OPERATOR': '02',
    'CERTIFICATION_AUTHORITY': '03',
}

TYPE_PREFIXES = {
    'TASK_TYPE': '00',
    'PRODUCT_TYPE': '01',
    'PROPERTY_TYPE': '02',
    'EVENT_PARAMETER_TYPE': '03',
    'EVENT_TYPE': '04',
}

FULL_PREFIXES = {kind: NAMESPACE + prefix for kind, prefix in PREFIXES.items()}

# Prefixes a caller can check a referenced address against.
KIND_PREFIXES = {
    'SYSTEM_ADMIN': FULL_PREFIXES['USERS'] + USER_PREFIXES['SYSTEM_ADMIN'],
    'COMPANY_ADMIN': FULL_PREFIXES['USERS'] + USER_PREFIXES['COMPANY_ADMIN'],
    'OPERATOR': FULL_PREFIXES['USERS'] + USER_PREFIXES['OPERATOR'],
    'CERTIFICATION_AUTHORITY': FULL_PREFIXES['USERS'] + USER_PREFIXES['CERTIFICATION_AUTHORITY'],
    'TASK_TYPE': FULL_PREFIXES['TYPES'] + TYPE_PREFIXES['TASK_TYPE'],
    'PRODUCT_TYPE': FULL_PREFIXES['TYPES'] + TYPE_PREFIXES['PRODUCT_TYPE'],
    'PROPERTY_TYPE': FULL_PREFIXES['TYPES'] + TYPE_PREFIXES['PROPERTY_TYPE'],
    'EVENT_PARAMETER_TYPE': FULL_PREFIXES['TYPES'] + TYPE_PREFIXES['EVENT_PARAMETER_TYPE'],
    'EVENT_TYPE': FULL_PREFIXES['TYPES'] + TYPE_PREFIXES['EVENT_TYPE'],
    'COMPANY': FULL_PREFIXES['COMPANY'],
    'FIELD': FULL_PREFIXES['FIELD'],
    'BATCH': FULL_PREFIXES['BATCH'],
}

# Field addresses split the suffix between the company salt and the id.
FIELD_COMPANY_LENGTH = 20
FIELD_ID_LENGTH = SUFFIX_LENGTH - FIELD_COMPANY_LENGTH

COMPANY_ID_LENGTH = 10

_ADDRESS_PATTERN = re.compile(
    '^' + NAMESPACE + '[0-9A-Fa-f]{' + str(ADDRESS_LENGTH - len(NAMESPACE)) + '}$'
)


def _user_address(role: str, public_key: str) -> str:
    return KIND_PREFIXES[role] + hash_and_slice(public_key, SUFFIX_LENGTH - 2)


def _type_address(kind: str, type_id: str) -> str:
    return KIND_PREFIXES[kind] + hash_and_slice(type_id, SUFFIX_LENGTH - 2)


def get_system_admin_address() -> str:
    """The well-known singleton address of the System Admin."""
    return KIND_PREFIXES['SYSTEM_ADMIN'] + '0' * (SUFFIX_LENGTH - 2)


def get_company_admin_address(public_key: str) -> str:
    return _user_address('COMPANY_ADMIN', public_key)


def get_operator_address(public_key: str) -> str:
    return _user_address('OPERATOR', public_key)


def get_certification_authority_address(public_key: str) -> str:
    return _user_address('CERTIFICATION_AUTHORITY', public_key)


def get_identity_addresses(public_key: str) -> list[str]:
    """All role addresses a public key could occupy, besides the System Admin."""
    return [
        get_company_admin_address(public_key),
        get_operator_address(public_key),
        get_certification_authority_address(public_key),
    ]


def get_task_type_address(type_id: str) -> str:
    return _type_address('TASK_TYPE', type_id)


def get_product_type_address(type_id: str) -> str:
    return _type_address('PRODUCT_TYPE', type_id)


def get_property_type_address(type_id: str) -> str:
    return _type_address('PROPERTY_TYPE', type_id)


def get_event_parameter_type_address(type_id: str) -> str:
    return _type_address('EVENT_PARAMETER_TYPE', type_id)


def get_event_type_address(type_id: str) -> str:
    return _type_address('EVENT_TYPE', type_id)


def get_company_id(admin_public_key: str) -> str:
    """A Company id is derived from its admin's public key."""
    return hash_and_slice(admin_public_key, COMPANY_ID_LENGTH)


def get_company_address(company_id: str) -> str:
    return FULL_PREFIXES['COMPANY'] + hash_and_slice(company_id, SUFFIX_LENGTH)


def get_field_address(field_id: str, company_id: str) -> str:
    """
    Field ids are unique per company: the address hashes the company id
    and the field id separately and concatenates the truncated digests.
    """
    return (
        FULL_PREFIXES['FIELD'] +
        hash_and_slice(company_id, FIELD_COMPANY_LENGTH) +
        hash_and_slice(field_id, FIELD_ID_LENGTH)
    )


def get_batch_address(batch_id: str) -> str:
    return FULL_PREFIXES['BATCH'] + hash_and_slice(batch_id, SUFFIX_LENGTH)


def is_valid_address(address) -> bool:
    """
    True if the value is a string of ADDRESS_LENGTH hex characters
    starting with the family namespace.
    """
    if not isinstance(address, str):
        return False
    return _ADDRESS_PATTERN.match(address) is not None


def has_kind(address, kind: str) -> bool:
    """True if the address is valid and carries the prefix of `kind`."""
    return is_valid_address(address) and address.startswith(KIND_PREFIXES[kind])
