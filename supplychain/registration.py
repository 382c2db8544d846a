"""
Registration of identities and types.

These actions populate the reference data the supply chain handlers
depend on: the System Admin, Task, Product, Property and Event Types,
Operators and Certification Authorities.
"""
import math
from .addressing import (
    get_system_admin_address,
    get_company_admin_address,
    get_operator_address,
    get_certification_authority_address,
    get_task_type_address,
    get_product_type_address,
    get_property_type_address,
    get_event_parameter_type_address,
    get_event_type_address,
)
from .core import (
    CodecError,
    SystemAdmin,
    CompanyAdmin,
    Operator,
    CertificationAuthority,
    TaskType,
    DerivedProduct,
    ProductType,
    PropertyType,
    PropertyValueType,
    UnitOfMeasure,
    EventParameterType,
    EventParameter,
    EventType,
    EventTypology,
    Company,
    encode,
)
from .errors import MissingField, InvalidValue, StateConflict
from .handlers import (
    text_field,
    read_state,
    require_system_admin,
    load_signer,
)
from .validation import (
    require_non_empty,
    require_valid_public_key,
    require_unused_identity,
    require_existing_of_kind,
    require_member,
    require_string_list,
    require_enum,
    identity_read_set,
    valid_addresses_of_kind,
    load_entity,
)


def create_system_admin(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """Genesis bootstrap: the first signer becomes the System Admin."""
    require_valid_public_key(signer_public_key, 'signer')

    state = read_state(context, identity_read_set(signer_public_key))

    if state.get(get_system_admin_address()):
        raise StateConflict("A System Admin is already registered")

    require_unused_identity(state, signer_public_key)

    return {
        get_system_admin_address(): encode(SystemAdmin(
            public_key=signer_public_key,
            timestamp=timestamp,
        ))
    }


def create_task_type(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    type_id = text_field(data, 'id', 'id')
    role = text_field(data, 'role', 'role')

    task_type_address = get_task_type_address(type_id)
    state = read_state(context, [get_system_admin_address(), task_type_address])

    require_system_admin(state, signer_public_key)

    if state.get(task_type_address):
        raise StateConflict(f"The id {type_id} belongs to another Task Type")

    return {task_type_address: encode(TaskType(id=type_id, role=role))}


def _parse_derived_products(value) -> list[DerivedProduct]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(d, dict) for d in value):
        raise InvalidValue("The derived products field must be a list of maps")

    derived_products = []
    for entry in value:
        address = entry.get('derived_product_type')
        rate = entry.get('conversion_rate', 0.0)
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or not math.isfinite(rate):
            raise InvalidValue(f"Conversion rate {rate!r} is not a finite number")
        derived_products.append(DerivedProduct(
            derived_product_type=address,
            conversion_rate=float(rate),
        ))
    return derived_products


def create_product_type(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """
    Record a Product Type. Derived products must reference existing
    Product Types and convert at a rate greater than zero.
    """
    type_id = text_field(data, 'id', 'id')
    name = text_field(data, 'name', 'name')
    description = text_field(data, 'description', 'description')
    measure = require_enum(data.get('measure'), UnitOfMeasure, 'measure')
    derived_products = _parse_derived_products(data.get('derived_products'))
    derived_addresses = [d.derived_product_type for d in derived_products]

    product_type_address = get_product_type_address(type_id)
    state = read_state(
        context,
        [get_system_admin_address(), product_type_address] +
        valid_addresses_of_kind(derived_addresses, 'PRODUCT_TYPE')
    )

    require_system_admin(state, signer_public_key)
    require_existing_of_kind(state, derived_addresses, 'PRODUCT_TYPE', 'Product Type')

    for derived_product in derived_products:
        if not derived_product.conversion_rate > 0:
            raise InvalidValue(
                f"Conversion rate for {derived_product.derived_product_type} "
                f"is not greater than zero"
            )

    if state.get(product_type_address):
        raise StateConflict(f"The id {type_id} belongs to another Product Type")

    return {product_type_address: encode(ProductType(
        id=type_id,
        name=name,
        description=description,
        measure=int(measure),
        derived_products=derived_products,
    ))}


def create_property_type(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    type_id = text_field(data, 'id', 'id')
    name = text_field(data, 'name', 'name')
    value_type = require_enum(data.get('type'), PropertyValueType, 'type')
    measure = require_enum(data.get('measure', int(UnitOfMeasure.UNIT)), UnitOfMeasure, 'measure')
    enabled_task_types = require_string_list(data.get('enabled_task_types'), 'enabled task types')
    require_non_empty(enabled_task_types, 'enabled task types')
    enabled_product_types = require_string_list(
        data.get('enabled_product_types'), 'enabled product types'
    )
    require_non_empty(enabled_product_types, 'enabled product types')

    property_type_address = get_property_type_address(type_id)
    state = read_state(
        context,
        [get_system_admin_address(), property_type_address] +
        valid_addresses_of_kind(enabled_task_types, 'TASK_TYPE') +
        valid_addresses_of_kind(enabled_product_types, 'PRODUCT_TYPE')
    )

    require_system_admin(state, signer_public_key)
    require_existing_of_kind(state, enabled_task_types, 'TASK_TYPE', 'Task Type')
    require_existing_of_kind(state, enabled_product_types, 'PRODUCT_TYPE', 'Product Type')

    if state.get(property_type_address):
        raise StateConflict(f"The id {type_id} belongs to another Property Type")

    return {property_type_address: encode(PropertyType(
        id=type_id,
        name=name,
        measure=int(measure),
        type=int(value_type),
        enabled_task_types=enabled_task_types,
        enabled_product_types=enabled_product_types,
    ))}


def create_event_parameter_type(context, signer_public_key: str, timestamp: int,
                                data: dict) -> dict:
    type_id = text_field(data, 'id', 'id')
    name = text_field(data, 'name', 'name')
    value_type = require_enum(data.get('type'), PropertyValueType, 'type')

    parameter_type_address = get_event_parameter_type_address(type_id)
    state = read_state(context, [get_system_admin_address(), parameter_type_address])

    require_system_admin(state, signer_public_key)

    if state.get(parameter_type_address):
        raise StateConflict(f"The id {type_id} belongs to another Event Parameter Type")

    return {parameter_type_address: encode(EventParameterType(
        id=type_id,
        name=name,
        type=int(value_type),
    ))}


def _parse_event_parameters(value) -> list[EventParameter]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidValue("The parameters field must be a list of maps")
    try:
        return [EventParameter.from_input(p) for p in value]
    except CodecError as e:
        raise InvalidValue(f"Provided event parameter is not valid: {e}")


def create_event_type(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """
    Record an Event Type.

    A TRANSFORMATION event turns a Batch into one of the derived products
    of its Product Type, so it must list the derived Product Types it may
    produce, each one a derived product of an enabled Product Type. A
    DESCRIPTION event lists none.
    """
    type_id = text_field(data, 'id', 'id')
    typology = require_enum(data.get('typology'), EventTypology, 'typology')
    name = text_field(data, 'name', 'name')
    description = text_field(data, 'description', 'description')
    enabled_task_types = require_string_list(data.get('enabled_task_types'), 'enabled task types')
    require_non_empty(enabled_task_types, 'enabled task types')
    enabled_product_types = require_string_list(
        data.get('enabled_product_types'), 'enabled product types'
    )
    require_non_empty(enabled_product_types, 'enabled product types')
    parameters = _parse_event_parameters(data.get('parameters'))
    parameter_types = [p.parameter_type for p in parameters]
    derived_product_types = require_string_list(
        data.get('derived_product_types'), 'derived product types'
    )

    event_type_address = get_event_type_address(type_id)
    state = read_state(
        context,
        [get_system_admin_address(), event_type_address] +
        valid_addresses_of_kind(parameter_types, 'EVENT_PARAMETER_TYPE') +
        valid_addresses_of_kind(enabled_task_types, 'TASK_TYPE') +
        valid_addresses_of_kind(enabled_product_types, 'PRODUCT_TYPE') +
        valid_addresses_of_kind(derived_product_types, 'PRODUCT_TYPE')
    )

    require_system_admin(state, signer_public_key)
    require_existing_of_kind(state, parameter_types, 'EVENT_PARAMETER_TYPE',
                             'Event Parameter Type')
    require_existing_of_kind(state, enabled_task_types, 'TASK_TYPE', 'Task Type')
    require_existing_of_kind(state, enabled_product_types, 'PRODUCT_TYPE', 'Product Type')

    if typology == EventTypology.TRANSFORMATION and not derived_product_types:
        raise MissingField("A transformation Event Type must list its derived Product Types")
    if typology == EventTypology.DESCRIPTION and derived_product_types:
        raise InvalidValue("A description Event Type cannot list derived Product Types")

    require_existing_of_kind(state, derived_product_types, 'PRODUCT_TYPE', 'Product Type')

    convertible = set()
    for address in enabled_product_types:
        product_type = load_entity(state, address, ProductType, 'Product Type')
        convertible.update(d.derived_product_type for d in product_type.derived_products)
    for address in derived_product_types:
        require_member(convertible, address, "a derived product of the enabled Product Types")

    if state.get(event_type_address):
        raise StateConflict(f"The id {type_id} belongs to another Event Type")

    return {event_type_address: encode(EventType(
        id=type_id,
        typology=int(typology),
        name=name,
        description=description,
        parameters=parameters,
        enabled_task_types=enabled_task_types,
        enabled_product_types=enabled_product_types,
        derived_product_types=derived_product_types,
    ))}


def create_operator(context, signer_public_key: str, timestamp: int, data: dict) -> dict:
    """Record an Operator for the signer's Company and list it on the Company."""
    public_key = data.get('public_key')
    require_valid_public_key(public_key, 'public key')
    task = text_field(data, 'task', 'task')

    company_admin_address = get_company_admin_address(signer_public_key)
    state = read_state(
        context,
        [company_admin_address] +
        identity_read_set(public_key) +
        valid_addresses_of_kind([task], 'TASK_TYPE')
    )

    company_admin = load_signer(
        state, company_admin_address, CompanyAdmin,
        "You must be a Company Admin to create an Operator"
    )

    require_unused_identity(state, public_key)
    require_existing_of_kind(state, [task], 'TASK_TYPE', 'Task Type')

    state = read_state(context, [company_admin.company])
    company = load_entity(state, company_admin.company, Company, 'Company')

    updates = {}

    updates[get_operator_address(public_key)] = encode(Operator(
        public_key=public_key,
        company=company_admin.company,
        task=task,
        timestamp=timestamp,
    ))

    company.operators.append(public_key)
    updates[company_admin.company] = encode(company)

    return updates


def create_certification_authority(context, signer_public_key: str, timestamp: int,
                                   data: dict) -> dict:
    public_key = data.get('public_key')
    require_valid_public_key(public_key, 'public key')
    name = text_field(data, 'name', 'name')
    website = text_field(data, 'website', 'website')
    products = require_string_list(data.get('enabled_product_types'), 'enabled product types')

    state = read_state(
        context,
        identity_read_set(public_key) + valid_addresses_of_kind(products, 'PRODUCT_TYPE')
    )

    require_system_admin(state, signer_public_key)
    require_unused_identity(state, public_key)
    require_existing_of_kind(state, products, 'PRODUCT_TYPE', 'Product Type')

    return {get_certification_authority_address(public_key): encode(CertificationAuthority(
        public_key=public_key,
        name=name,
        website=website,
        products=products,
        timestamp=timestamp,
    ))}
