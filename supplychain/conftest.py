"""
Shared fixtures: an in-memory ledger driven through the real handler,
and a populated supply chain to run domain actions against.
"""
import pytest
from types import SimpleNamespace
from supplychain.addressing import (
    get_company_id,
    get_company_address,
    get_field_address,
    get_task_type_address,
    get_product_type_address,
)
from supplychain.core import PropertyValueType, UnitOfMeasure
from supplychain.payload import Action
from supplychain.testing import Ledger, new_public_key


@pytest.fixture
def ledger():
    return Ledger()


@pytest.fixture
def world(ledger):
    """
    A System Admin, two task types, two product types, one property type
    per value kind, three companies with admins and operators, two
    certification authorities, one field and one batch owned by company A.
    """
    w = SimpleNamespace(ledger=ledger)

    w.system_admin = new_public_key()
    ledger.must(Action.CREATE_SYSTEM_ADMIN, w.system_admin, {})

    ledger.must(Action.CREATE_TASK_TYPE, w.system_admin, {'id': 'harvest', 'role': 'Harvester'})
    ledger.must(Action.CREATE_TASK_TYPE, w.system_admin, {'id': 'transport', 'role': 'Driver'})
    w.harvest = get_task_type_address('harvest')
    w.transport = get_task_type_address('transport')

    for product_id, name in (('grape', 'Grape'), ('olive', 'Olive')):
        ledger.must(Action.CREATE_PRODUCT_TYPE, w.system_admin, {
            'id': product_id,
            'name': name,
            'description': f"{name} harvest",
            'measure': int(UnitOfMeasure.KILOS),
        })
    w.grape = get_product_type_address('grape')
    w.olive = get_product_type_address('olive')

    for property_id, value_type in (('temperature', PropertyValueType.NUMBER),
                                    ('notes', PropertyValueType.STRING),
                                    ('photo', PropertyValueType.BYTES),
                                    ('position', PropertyValueType.LOCATION)):
        ledger.must(Action.CREATE_PROPERTY_TYPE, w.system_admin, {
            'id': property_id,
            'name': property_id.title(),
            'type': int(value_type),
            'enabled_task_types': [w.harvest],
            'enabled_product_types': [w.grape],
        })

    w.admin_a, w.admin_b, w.admin_c = new_public_key(), new_public_key(), new_public_key()
    for admin, name, products in ((w.admin_a, 'Vineyard A', [w.grape, w.olive]),
                                  (w.admin_b, 'Winery B', [w.grape]),
                                  (w.admin_c, 'Press C', [w.olive])):
        ledger.must(Action.CREATE_COMPANY, w.system_admin, {
            'name': name,
            'description': f"{name} description",
            'website': 'https://example.com',
            'admin': admin,
            'enabled_product_types': products,
        })
    w.company_a = get_company_id(w.admin_a)
    w.company_b = get_company_id(w.admin_b)
    w.company_c = get_company_id(w.admin_c)
    w.company_a_address = get_company_address(w.company_a)
    w.company_b_address = get_company_address(w.company_b)
    w.company_c_address = get_company_address(w.company_c)

    w.operator_a, w.driver_a, w.operator_b, w.operator_c = (
        new_public_key(), new_public_key(), new_public_key(), new_public_key()
    )
    for admin, operator, task in ((w.admin_a, w.operator_a, w.harvest),
                                  (w.admin_a, w.driver_a, w.transport),
                                  (w.admin_b, w.operator_b, w.harvest),
                                  (w.admin_c, w.operator_c, w.harvest)):
        ledger.must(Action.CREATE_OPERATOR, admin, {'public_key': operator, 'task': task})

    w.authority = new_public_key()
    ledger.must(Action.CREATE_CERTIFICATION_AUTHORITY, w.system_admin, {
        'public_key': w.authority,
        'name': 'Grape Certifier',
        'website': 'https://cert.example.com',
        'enabled_product_types': [w.grape],
    })
    w.olive_authority = new_public_key()
    ledger.must(Action.CREATE_CERTIFICATION_AUTHORITY, w.system_admin, {
        'public_key': w.olive_authority,
        'name': 'Olive Certifier',
        'website': 'https://olive.example.com',
        'enabled_product_types': [w.olive],
    })

    ledger.must(Action.CREATE_FIELD, w.admin_a, {
        'id': 'vineyard-1',
        'description': 'South slope',
        'product': w.grape,
        'quantity': 100,
        'location': {'latitude': 43.77, 'longitude': 11.25},
    })
    w.field = get_field_address('vineyard-1', w.company_a)

    w.batch = 'batch-1'
    ledger.must(Action.CREATE_BATCH, w.operator_a, {'id': w.batch, 'field': w.field})

    return w
