"""
Tests for the genesis state tool.
"""
import json
import os
import pytest
from supplychain.addressing import (
    get_system_admin_address,
    get_task_type_address,
    get_product_type_address,
    get_company_address,
    get_company_id,
)
from supplychain.config import Config
from supplychain.core import SystemAdmin, Company, ProductType, decode
from supplychain.db import DB
from supplychain.genesis_tool import (
    create_genesis_state,
    apply_payload_file,
    generate_sample_config,
    genesis_payloads,
    main,
)
from supplychain.payload import Action, Payload
from supplychain.state import DBContext
from supplychain.testing import new_public_key


@pytest.fixture
def config(tmp_path):
    config = Config.default()
    config.database.path = str(tmp_path / "ledger")
    return config


@pytest.fixture
def genesis_file(tmp_path):
    path = tmp_path / "genesis.json"
    system_admin = generate_sample_config(str(path))
    return path, system_admin


def read(config, address, cls):
    with DB(config.database.path) as db:
        return decode(cls, DBContext(db).get_state([address])[address])


def test_genesis_payload_order():
    payloads = genesis_payloads({
        'task_types': [{'id': 'harvest', 'role': 'Harvester'}],
        'product_types': [{'id': 'grape', 'name': 'Grape', 'description': 'd', 'measure': 1}],
    }, timestamp=10)
    assert [p.action for p in payloads] == [
        Action.CREATE_SYSTEM_ADMIN, Action.CREATE_TASK_TYPE, Action.CREATE_PRODUCT_TYPE
    ]
    assert all(p.timestamp == 10 for p in payloads)


def test_sample_config_is_valid_json(genesis_file):
    path, system_admin = genesis_file
    genesis = json.loads(path.read_text())
    assert genesis['system_admin'] == system_admin
    assert genesis['task_types'] and genesis['product_types']


def test_create_genesis_state(config, genesis_file):
    path, system_admin = genesis_file
    assert create_genesis_state(str(path), config)

    assert read(config, get_system_admin_address(), SystemAdmin).public_key == system_admin
    grape = read(config, get_product_type_address('grape'), ProductType)
    assert grape.name == 'Grape'
    with DB(config.database.path) as db:
        assert db.exists(get_task_type_address('quality-control'))


def test_refuses_existing_database(config, genesis_file):
    path, _ = genesis_file
    assert create_genesis_state(str(path), config)
    assert not create_genesis_state(str(path), config)


def test_stops_at_rejected_payload(config, tmp_path):
    path = tmp_path / "genesis.json"
    path.write_text(json.dumps({
        'system_admin': new_public_key(),
        'task_types': [{'id': 'harvest', 'role': 'Harvester'},
                       {'id': 'harvest', 'role': 'Picker'}],
    }))
    assert not create_genesis_state(str(path), config)
    assert not os.path.exists(config.database.path)


def test_rejects_genesis_without_system_admin(config, tmp_path):
    path = tmp_path / "genesis.json"
    path.write_text(json.dumps({'task_types': [{'id': 'harvest', 'role': 'Harvester'}]}))
    assert not create_genesis_state(str(path), config)
    assert not os.path.exists(config.database.path)



def test_apply_payload_file(config, genesis_file, tmp_path):
    path, system_admin = genesis_file
    assert create_genesis_state(str(path), config)

    admin = new_public_key()
    payload_path = tmp_path / "create_company.msgpack"
    payload_path.write_bytes(Payload(Action.CREATE_COMPANY, 1, {
        'name': 'Vineyard',
        'description': 'Estate',
        'website': 'https://vineyard.example.com',
        'admin': admin,
        'enabled_product_types': [get_product_type_address('grape')],
    }).to_bytes())

    assert not apply_payload_file(str(payload_path), admin, config)
    assert apply_payload_file(str(payload_path), system_admin, config)

    company = read(config, get_company_address(get_company_id(admin)), Company)
    assert company.admin_public_key == admin


def test_command_line(tmp_path):
    genesis = tmp_path / "genesis.json"
    db_path = tmp_path / "ledger"

    assert main(["sample-config", "--output", str(genesis)]) == 0
    assert main(["create", "--genesis", str(genesis), "--output-db", str(db_path)]) == 0
    assert main(["create", "--genesis", str(genesis), "--output-db", str(db_path)]) == 1
