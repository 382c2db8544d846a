"""
Action handlers for the supply chain domain operations.

Every handler has the signature

    handler(context, signer_public_key, timestamp, data) -> write-set

It reads what it needs through `context.get_state`, checks its
preconditions in a fixed order and returns the map of addresses to new
encoded records. It never calls `context.set_state`; a failed check
raises a ValidationError and nothing is described.
"""
import math
import logging
from typing import Iterable
from .addressing import (
    get_system_admin_address,
    get_company_admin_address,
    get_operator_address,
    get_certification_authority_address,
    get_property_type_address,
    get_company_id,
    get_company_address,
    get_field_address,
    get_batch_address,
)
from .core import (
    CodecError,
    SystemAdmin,
    CompanyAdmin,
    Operator,
    CertificationAuthority,
    PropertyType,
    PropertyValueType,
    Company,
    Field,
    Location,
    PropertyValue,
    BatchProperty,
    Certificate,
    Proposal,
    ProposalStatus,
    Finalization,
    FinalizationReason,
    Batch,
    encode,
)
from .errors import (
    InvalidIdentity,
    UnknownReference,
    InvalidValue,
    StateConflict,
    AuthorizationDenied,
)
from .validation import (
    require_non_empty,
    require_valid_public_key,
    require_unused_identity,
    require_existing_of_kind,
    require_member,
    require_sha512_hex,
    require_string,
    require_string_list,
    require_enum,
    identity_read_set,
    valid_addresses_of_kind,
    load_entity,
)

logger = logging.getLogger(__name__)


# --- Input and state helpers ---

def text_field(data: dict, key: str, name: str) -> str:
    """A required, non-empty string member of the action data."""
    value = data.get(key)
    require_non_empty(value, name)
    return require_string(value, name)


def optional_text_field(data: dict, key: str, name: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    return require_string(value, name)


def read_state(context, addresses: Iterable[str]) -> dict[str, bytes]:
    """Reads every address in one call, each address once, in first-seen order."""
    return context.get_state(list(dict.fromkeys(addresses)))


def require_system_admin(state: dict, signer_public_key: str):
    address = get_system_admin_address()
    if not state.get(address):
        raise AuthorizationDenied("The signer is not the System Admin")
    system_admin = load_entity(state, address, SystemAdmin, 'System Admin')
    if system_admin.public_key != signer_public_key:
        raise AuthorizationDenied("The signer is not the System Admin")
    return system_admin


def load_signer(state: dict, address: str, cls, message: str):
    """Decodes the signer's role record, rejecting with InvalidIdentity if absent."""
    if not state.get(address):
        raise InvalidIdentity(message)
    return load_entity(state, address, cls, cls.__name__)


def load_operator(context, signer_public_key: str) -> Operator:
    address = get_operator_address(signer_public_key)
    state = read_state(context, [address])
    return load_signer(state, address, Operator, "You must be an Operator for a Company")


def parse_location(value, name: str = 'location') -> Location:
    try:
        if not isinstance(value, dict):
            raise CodecError(f"Field '{name}' must be a map")
        return Location.from_dict(value)
    except CodecError as e:
        raise InvalidValue(f"Provided {name} is not valid: {e}")


def check_property_value(value: PropertyValue, value_type: int):
    """Checks that the member matching the property's declared kind is set."""
    if value_type == PropertyValueType.NUMBER:
        valid = math.isfinite(value.float_value) and value.float_value != 0.0
    elif value_type == PropertyValueType.STRING:
        valid = len(value.string_value) > 0
    elif value_type == PropertyValueType.BYTES:
        valid = len(value.bytes_value) > 0
    elif value_type == PropertyValueType.LOCATION:
        valid = value.location_value is not None
    else:
        raise InvalidValue(f"Unknown property value type {value_type}")

    if not valid:
        raise InvalidValue(
            f"No correct value field is provided for property of type "
            f"{PropertyValueType(value_type).name}"
        )


# --- Companies and Fields ---

def create_company(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """Record a new Company and its Company Admin. Only the System Admin may do this."""
    name = text_field(data, 'name', 'name')
    description = text_field(data, 'description', 'description')
    website = text_field(data, 'website', 'website')
    admin = data.get('admin')
    require_valid_public_key(admin, 'admin')
    enabled_product_types = require_string_list(
        data.get('enabled_product_types'), 'enabled product types'
    )

    state = read_state(
        context,
        identity_read_set(admin) +
        valid_addresses_of_kind(enabled_product_types, 'PRODUCT_TYPE')
    )

    require_system_admin(state, signer_public_key)
    require_unused_identity(state, admin)
    require_existing_of_kind(state, enabled_product_types, 'PRODUCT_TYPE', 'Product Type')

    company_id = get_company_id(admin)
    company_address = get_company_address(company_id)

    updates = {}

    updates[get_company_admin_address(admin)] = encode(CompanyAdmin(
        public_key=admin,
        company=company_address,
        timestamp=timestamp,
    ))

    updates[company_address] = encode(Company(
        id=company_id,
        name=name,
        description=description,
        website=website,
        admin_public_key=admin,
        enabled_product_types=enabled_product_types,
        fields=[],
        operators=[],
        batches=[],
        timestamp=timestamp,
    ))

    return updates


def create_field(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """
    Record a new Field and append it to the signer's Company.

    Field ids are scoped to the creating Company Admin: the same id may
    be used by another company without conflict.
    """
    field_id = text_field(data, 'id', 'id')
    description = text_field(data, 'description', 'description')
    location = require_non_empty(data.get('location'), 'location')
    location = parse_location(location)
    product = data.get('product')
    quantity = data.get('quantity')

    company_admin_address = get_company_admin_address(signer_public_key)
    state = read_state(
        context,
        [company_admin_address] + valid_addresses_of_kind([product], 'PRODUCT_TYPE')
    )

    company_admin = load_signer(
        state, company_admin_address, CompanyAdmin,
        "You must be a Company Admin with a Company to create a Field"
    )

    require_existing_of_kind(state, [product], 'PRODUCT_TYPE', 'Product Type')

    field_address = get_field_address(field_id, get_company_id(signer_public_key))
    state = read_state(context, [field_address, company_admin.company])

    company = load_entity(state, company_admin.company, Company, 'Company')

    require_member(company.enabled_product_types, product, "an enabled Company Product Type")

    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or \
            not math.isfinite(quantity) or not quantity > 0:
        raise InvalidValue(
            f"Specified quantity is not a finite number greater than zero: {quantity}"
        )

    if state.get(field_address):
        raise StateConflict(f"The id {field_id} belongs to another company Field")

    updates = {}

    updates[field_address] = encode(Field(
        id=field_id,
        description=description,
        company=company_admin.company,
        product=product,
        quantity=float(quantity),
        location=location,
        events=[],
    ))

    company.fields.append(field_address)
    updates[company_admin.company] = encode(company)

    return updates


# --- Batches ---

def create_batch(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """Record a new Batch harvested from one of the Operator's Company Fields."""
    batch_id = text_field(data, 'id', 'id')
    field_address = text_field(data, 'field', 'field')

    operator = load_operator(context, signer_public_key)

    batch_address = get_batch_address(batch_id)
    state = read_state(
        context,
        [operator.company, batch_address] + valid_addresses_of_kind([field_address], 'FIELD')
    )

    company = load_entity(state, operator.company, Company, 'Company')

    if field_address not in company.fields:
        raise AuthorizationDenied(f"The provided field {field_address} is not a Company Field")

    require_existing_of_kind(state, [field_address], 'FIELD', 'Field')

    if state.get(batch_address):
        raise StateConflict(f"The id {batch_id} belongs to another Batch")

    field = load_entity(state, field_address, Field, 'Field')

    updates = {}

    updates[batch_address] = encode(Batch(
        id=batch_id,
        company=operator.company,
        product=field.product,
        source_field=field_address,
        timestamp=timestamp,
    ))

    company.batches.append(batch_id)
    updates[operator.company] = encode(company)

    return updates


def add_batch_certificate(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """
    Append a Certificate to a Batch. The signer must be a Certification
    Authority enabled for the Batch's Product Type.

    Identical certificates are not deduplicated: each submission is appended.
    """
    batch_id = text_field(data, 'batch', 'batch')
    company_id = text_field(data, 'company', 'company')
    link = text_field(data, 'link', 'link')
    hash_value = text_field(data, 'hash', 'hash')

    require_sha512_hex(hash_value)

    authority_address = get_certification_authority_address(signer_public_key)
    company_address = get_company_address(company_id)
    batch_address = get_batch_address(batch_id)

    state = read_state(context, [authority_address, company_address, batch_address])

    authority = load_signer(
        state, authority_address, CertificationAuthority,
        "You must be a Certification Authority to certify a Batch"
    )

    company = load_entity(state, company_address, Company, 'Company')

    if batch_id not in company.batches:
        raise UnknownReference(f"The provided batch {batch_id} is not a Company Batch")

    batch = load_entity(state, batch_address, Batch, 'Batch')

    require_member(authority.products, batch.product, "a Product Type the authority may certify")

    batch.certificates.append(Certificate(
        authority=signer_public_key,
        link=link,
        hash=hash_value,
        timestamp=timestamp,
    ))

    return {batch_address: encode(batch)}


def record_batch_property(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """
    Append a value to a Batch property's history.

    The first value for a Property Type creates the property record;
    later values are appended to it in call order.
    """
    batch_id = text_field(data, 'batch', 'batch')
    property_id = text_field(data, 'property', 'property')
    raw_value = require_non_empty(data.get('property_value'), 'property value')

    operator = load_operator(context, signer_public_key)

    property_type_address = get_property_type_address(property_id)
    batch_address = get_batch_address(batch_id)

    state = read_state(context, [property_type_address, operator.company, batch_address])

    property_type = load_entity(state, property_type_address, PropertyType, 'Property Type')

    company = load_entity(state, operator.company, Company, 'Company')

    if batch_id not in company.batches:
        raise AuthorizationDenied(f"The provided batch {batch_id} is not a Company Batch")

    batch = load_entity(state, batch_address, Batch, 'Batch')

    require_member(property_type.enabled_task_types, operator.task,
                   "an enabled Task Type for this Property")
    require_member(property_type.enabled_product_types, batch.product,
                   "an enabled Product Type for this Property")

    try:
        value = PropertyValue.from_input(raw_value)
    except CodecError as e:
        raise InvalidValue(f"Provided property value is not valid: {e}")
    check_property_value(value, property_type.type)

    for batch_property in batch.properties:
        if batch_property.property_type_id == property_id:
            batch_property.values.append(value)
            break
    else:
        batch.properties.append(BatchProperty(
            property_type_id=property_id,
            values=[value],
        ))

    return {batch_address: encode(batch)}


# --- Proposals ---

def create_proposal(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """Offer one of the Operator's Company Batches to another Company."""
    batch_id = text_field(data, 'batch', 'batch')
    receiver_company_id = text_field(data, 'receiver_company', 'receiver company')
    notes = optional_text_field(data, 'notes', 'notes')

    operator = load_operator(context, signer_public_key)

    receiver_address = get_company_address(receiver_company_id)
    batch_address = get_batch_address(batch_id)

    state = read_state(context, [operator.company, receiver_address, batch_address])

    sender = load_entity(state, operator.company, Company, 'Company')

    if batch_id not in sender.batches:
        raise AuthorizationDenied(f"The provided batch {batch_id} is not a Company Batch")

    receiver = load_entity(state, receiver_address, Company, 'Company')

    if receiver_address == operator.company:
        raise InvalidValue("The receiver Company must differ from the sender Company")

    batch = load_entity(state, batch_address, Batch, 'Batch')

    require_member(receiver.enabled_product_types, batch.product,
                   "an enabled Product Type of the receiver Company")

    if any(p.status == ProposalStatus.ISSUED for p in batch.proposals):
        raise StateConflict(f"The provided batch {batch_id} already has an issued Proposal")

    batch.proposals.append(Proposal(
        sender_company=sender.id,
        receiver_company=receiver_company_id,
        status=int(ProposalStatus.ISSUED),
        notes=notes,
        timestamp=timestamp,
    ))

    return {batch_address: encode(batch)}


def answer_proposal(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """
    Move the issued Proposal between two companies to a terminal status.

    ISSUED -> ACCEPTED | REJECTED (receiver side) or CANCELED (sender side).
    An accepted proposal also moves the Batch to the receiver Company.
    If several issued proposals match, the last one in the list is answered.
    """
    batch_id = text_field(data, 'batch', 'batch')
    sender_company_id = text_field(data, 'sender_company', 'sender company')
    receiver_company_id = text_field(data, 'receiver_company', 'receiver company')
    response = require_non_empty(data.get('response'), 'response')
    response = require_enum(response, ProposalStatus, 'response')
    if response == ProposalStatus.ISSUED:
        raise InvalidValue("A Proposal cannot be answered with the ISSUED status")
    motivation = optional_text_field(data, 'motivation', 'motivation')

    operator_address = get_operator_address(signer_public_key)
    sender_address = get_company_address(sender_company_id)
    receiver_address = get_company_address(receiver_company_id)
    batch_address = get_batch_address(batch_id)

    state = read_state(
        context, [operator_address, sender_address, receiver_address, batch_address]
    )

    sender = load_entity(state, sender_address, Company, 'Company')
    receiver = load_entity(state, receiver_address, Company, 'Company')

    if batch_id not in sender.batches:
        raise UnknownReference(f"The provided batch {batch_id} is not a sender Company Batch")

    operator = load_signer(
        state, operator_address, Operator, "You must be an Operator for a Company"
    )

    if response == ProposalStatus.CANCELED and operator.company != sender_address:
        raise AuthorizationDenied(
            "You must be an Operator from the sender Company to cancel a Proposal"
        )

    if response in (ProposalStatus.ACCEPTED, ProposalStatus.REJECTED) and \
            operator.company != receiver_address:
        raise AuthorizationDenied(
            "You must be an Operator from the receiver Company to accept or reject a Proposal"
        )

    batch = load_entity(state, batch_address, Batch, 'Batch')

    issued_proposal = None
    for proposal in batch.proposals:
        if (proposal.sender_company == sender_company_id and
                proposal.receiver_company == receiver_company_id and
                proposal.status == ProposalStatus.ISSUED):
            issued_proposal = proposal

    if issued_proposal is None:
        raise StateConflict(
            f"The provided batch {batch_id} has no issued Proposal between these companies"
        )

    issued_proposal.status = int(response)
    issued_proposal.motivation = motivation

    updates = {}

    if response == ProposalStatus.ACCEPTED and sender_address != receiver_address:
        logger.debug(f"Batch {batch_id} moves from {sender_company_id} to {receiver_company_id}")
        sender.batches.remove(batch_id)
        receiver.batches.append(batch_id)
        batch.company = receiver_address

        updates[sender_address] = encode(sender)
        updates[receiver_address] = encode(receiver)

    updates[batch_address] = encode(batch)

    return updates


def finalize_batch(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """Set, or overwrite, the Batch finalization record."""
    batch_id = text_field(data, 'batch', 'batch')
    reason = require_enum(data.get('reason'), FinalizationReason, 'reason')
    explanation = optional_text_field(data, 'explanation', 'explanation')

    operator = load_operator(context, signer_public_key)

    batch_address = get_batch_address(batch_id)
    state = read_state(context, [operator.company, batch_address])

    company = load_entity(state, operator.company, Company, 'Company')

    if batch_id not in company.batches:
        raise AuthorizationDenied(f"The provided batch {batch_id} is not a Company Batch")

    batch = load_entity(state, batch_address, Batch, 'Batch')

    batch.finalization = Finalization(
        reason=int(reason),
        reporter=signer_public_key,
        explanation=explanation,
    )

    return {batch_address: encode(batch)}
