"""
Shared precondition checks used by the action handlers.

Checks work on a state snapshot: the mapping returned by a single
Context.get_state call. They never read or write state themselves.
"""
import re
from typing import Iterable, Mapping
from .addressing import (
    get_system_admin_address,
    get_identity_addresses,
    has_kind,
)
from .core import CodecError, SystemAdmin, decode
from .crypto import is_valid_public_key
from .errors import (
    MissingField,
    InvalidIdentity,
    IdentityConflict,
    UnknownReference,
    NotEnabled,
    InvalidValue,
)

SHA512_HEX_PATTERN = re.compile(r'^[0-9A-Fa-f]{128}$')


def require_non_empty(value, name: str):
    """Rejects with MissingField if `value` is absent or empty."""
    if value is None or (hasattr(value, '__len__') and len(value) == 0):
        raise MissingField(f"No {name} specified")
    return value


def require_valid_public_key(public_key, name: str = 'public key'):
    if not is_valid_public_key(public_key):
        raise InvalidIdentity(f"The {name} field doesn't contain a valid public key")
    return public_key


def identity_read_set(public_key: str) -> list[str]:
    """Addresses require_unused_identity needs in its snapshot."""
    return [get_system_admin_address()] + get_identity_addresses(public_key)


def require_unused_identity(state: Mapping[str, bytes], public_key: str):
    """
    Rejects with IdentityConflict if the key already holds any role.

    A public key may hold at most one role: System Admin, Company Admin,
    Operator or Certification Authority.
    """
    system_admin_bytes = state.get(get_system_admin_address())
    if system_admin_bytes:
        system_admin = load_entity(state, get_system_admin_address(), SystemAdmin, 'System Admin')
        if system_admin.public_key == public_key:
            raise IdentityConflict("The public key belongs to the System Admin")

    for address in get_identity_addresses(public_key):
        if state.get(address):
            raise IdentityConflict("The public key belongs to another authorized user")


def require_existing_of_kind(state: Mapping[str, bytes], addresses: Iterable[str],
                             kind: str, name: str):
    """
    Rejects with UnknownReference unless every address is well formed,
    carries the prefix of `kind` and holds a record in the snapshot.
    """
    for address in addresses:
        if not has_kind(address, kind):
            raise UnknownReference(f"The address {address} is not a valid {name} address")
        if not state.get(address):
            raise UnknownReference(f"The address {address} doesn't match an existing {name}")


def valid_addresses_of_kind(addresses: Iterable[str], kind: str) -> list[str]:
    """The subset of `addresses` that may be dereferenced for `kind`."""
    return [address for address in addresses if has_kind(address, kind)]


def require_member(collection, value, name: str):
    """Rejects with NotEnabled if `value` is not in `collection`."""
    if value not in collection:
        raise NotEnabled(f"The provided value {value} doesn't match {name}")


def require_sha512_hex(value, name: str = 'hash'):
    if not isinstance(value, str) or not SHA512_HEX_PATTERN.match(value):
        raise InvalidValue(f"Provided {name} doesn't contain a valid SHA-512 value")
    return value


def require_string(value, name: str):
    """Rejects with InvalidValue if a present value is not a string."""
    if not isinstance(value, str):
        raise InvalidValue(f"The {name} field must be a string")
    return value


def require_string_list(value, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidValue(f"The {name} field must be a list of strings")
    return list(value)


def require_enum(value, enum_cls, name: str):
    """Returns the enum member for `value`, rejecting unknown codes with InvalidValue."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidValue(f"Provided value for {name} doesn't match any possible value")
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidValue(f"Provided value for {name} doesn't match any possible value")


def load_entity(state: Mapping[str, bytes], address: str, cls, name: str,
                error=UnknownReference):
    """
    Decodes the record at `address`.

    An empty slot raises `error`. Bytes that do not decode as `cls` always
    raise UnknownReference: a corrupt record is never half-read.
    """
    data = state.get(address)
    if not data:
        raise error(f"The address {address} doesn't match an existing {name}")
    try:
        return decode(cls, data)
    except CodecError as e:
        raise UnknownReference(f"The record at {address} is not a valid {name}: {e}")
