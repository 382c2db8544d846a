"""
Tests for Batch creation, certification, property recording and finalization.
"""
import hashlib
import pytest
from supplychain.addressing import get_batch_address, get_field_address, get_company_id
from supplychain.core import (
    Batch,
    Company,
    Certificate,
    FinalizationReason,
    Location,
    PropertyValue,
)
from supplychain.errors import (
    MissingField,
    InvalidIdentity,
    UnknownReference,
    NotEnabled,
    InvalidValue,
    StateConflict,
    AuthorizationDenied,
)
from supplychain.payload import Action

DOCUMENT_HASH = hashlib.sha512(b"certificate document").hexdigest()


def certificate_data(world, **overrides):
    data = {
        'batch': world.batch,
        'company': world.company_a,
        'link': 'https://cert.example.com/doc/1',
        'hash': DOCUMENT_HASH,
    }
    data.update(overrides)
    return data


def load_batch(world, batch_id=None) -> Batch:
    return world.ledger.get(get_batch_address(batch_id or world.batch), Batch)


class TestCreateBatch:

    def test_batch_inherits_field_product_and_company(self, world):
        batch = load_batch(world)
        assert batch.id == world.batch
        assert batch.company == world.company_a_address
        assert batch.product == world.grape
        assert batch.source_field == world.field
        assert batch.properties == batch.certificates == batch.proposals == []
        assert batch.finalization is None

        company = world.ledger.get(world.company_a_address, Company)
        assert company.batches == [world.batch]

    def test_rejects_duplicate_batch_id(self, world):
        result = world.ledger.submit(Action.CREATE_BATCH, world.operator_a,
                                     {'id': world.batch, 'field': world.field})
        assert isinstance(result.error, StateConflict)

    def test_rejects_field_of_another_company(self, world):
        result = world.ledger.submit(Action.CREATE_BATCH, world.operator_b,
                                     {'id': 'batch-x', 'field': world.field})
        assert isinstance(result.error, AuthorizationDenied)

    def test_rejects_non_operator(self, world):
        result = world.ledger.submit(Action.CREATE_BATCH, world.admin_a,
                                     {'id': 'batch-x', 'field': world.field})
        assert isinstance(result.error, InvalidIdentity)

    def test_rejects_missing_id(self, world):
        result = world.ledger.submit(Action.CREATE_BATCH, world.operator_a, {'field': world.field})
        assert isinstance(result.error, MissingField)


class TestAddBatchCertificate:

    def test_hash_of_127_characters_is_rejected(self, world):
        data = certificate_data(world, hash=DOCUMENT_HASH[:127])
        result = world.ledger.submit(Action.ADD_BATCH_CERTIFICATE, world.authority, data)
        assert isinstance(result.error, InvalidValue)

    def test_valid_hash_appends_certificate(self, world):
        before = len(load_batch(world).certificates)

        world.ledger.must(Action.ADD_BATCH_CERTIFICATE, world.authority, certificate_data(world))

        batch = load_batch(world)
        assert len(batch.certificates) == before + 1
        assert batch.certificates[-1] == Certificate(
            authority=world.authority,
            link='https://cert.example.com/doc/1',
            hash=DOCUMENT_HASH,
            timestamp=world.ledger.timestamp,
        )

    def test_duplicate_certificates_are_appended(self, world):
        world.ledger.must(Action.ADD_BATCH_CERTIFICATE, world.authority, certificate_data(world))
        world.ledger.must(Action.ADD_BATCH_CERTIFICATE, world.authority, certificate_data(world))
        certificates = load_batch(world).certificates
        assert len(certificates) == 2
        assert certificates[0].hash == certificates[1].hash

    @pytest.mark.parametrize("missing", ['batch', 'company', 'link', 'hash'])
    def test_rejects_missing_fields(self, world, missing):
        result = world.ledger.submit(Action.ADD_BATCH_CERTIFICATE, world.authority,
                                     certificate_data(world, **{missing: ''}))
        assert isinstance(result.error, MissingField)

    def test_rejects_non_hex_hash(self, world):
        data = certificate_data(world, hash='z' * 128)
        result = world.ledger.submit(Action.ADD_BATCH_CERTIFICATE, world.authority, data)
        assert isinstance(result.error, InvalidValue)

    def test_rejects_signer_not_authority(self, world):
        result = world.ledger.submit(Action.ADD_BATCH_CERTIFICATE, world.operator_a,
                                     certificate_data(world))
        assert isinstance(result.error, InvalidIdentity)

    def test_rejects_unknown_company(self, world):
        result = world.ledger.submit(Action.ADD_BATCH_CERTIFICATE, world.authority,
                                     certificate_data(world, company='0000000000'))
        assert isinstance(result.error, UnknownReference)

    def test_rejects_batch_of_another_company(self, world):
        result = world.ledger.submit(Action.ADD_BATCH_CERTIFICATE, world.authority,
                                     certificate_data(world, company=world.company_b))
        assert isinstance(result.error, UnknownReference)

    def test_rejects_product_authority_cannot_certify(self, world):
        result = world.ledger.submit(Action.ADD_BATCH_CERTIFICATE, world.olive_authority,
                                     certificate_data(world))
        assert isinstance(result.error, NotEnabled)


def record(world, property_id, value, signer=None):
    return world.ledger.submit(Action.RECORD_BATCH_PROPERTY, signer or world.operator_a, {
        'batch': world.batch,
        'property': property_id,
        'property_value': value,
    })


class TestRecordBatchProperty:

    def test_two_values_build_ordered_history(self, world):
        assert record(world, 'temperature', {'float_value': 18.5}).ok
        assert record(world, 'temperature', {'float_value': 21.0}).ok

        properties = load_batch(world).properties
        assert len(properties) == 1
        assert properties[0].property_type_id == 'temperature'
        assert [v.float_value for v in properties[0].values] == [18.5, 21.0]

    def test_distinct_properties_get_distinct_records(self, world):
        assert record(world, 'temperature', {'float_value': 18.5}).ok
        assert record(world, 'notes', {'string_value': 'ripe'}).ok
        assert record(world, 'temperature', {'float_value': 19.5}).ok

        properties = load_batch(world).properties
        assert [p.property_type_id for p in properties] == ['temperature', 'notes']
        assert len(properties[0].values) == 2
        assert properties[1].values == [PropertyValue(string_value='ripe')]

    @pytest.mark.parametrize("property_id,value", [
        ('temperature', {'float_value': -3.5}),
        ('notes', {'string_value': 'sunny'}),
        ('photo', {'bytes_value': b'\x89PNG'}),
        ('position', {'location_value': {'latitude': 1.0, 'longitude': 2.0}}),
    ])
    def test_accepts_well_formed_values(self, world, property_id, value):
        assert record(world, property_id, value).ok

    @pytest.mark.parametrize("property_id,value", [
        ('temperature', {'float_value': 0.0}),
        ('temperature', {'float_value': float('nan')}),
        ('temperature', {'float_value': float('inf')}),
        ('temperature', {'string_value': 'hot'}),
        ('notes', {'string_value': ''}),
        ('photo', {'bytes_value': b''}),
        ('position', {'float_value': 4.0}),
        ('temperature', {'float_value': 'hot'}),
    ])
    def test_rejects_value_not_matching_kind(self, world, property_id, value):
        assert isinstance(record(world, property_id, value).error, InvalidValue)

    def test_location_value_is_stored(self, world):
        record(world, 'position', {'location_value': {'latitude': 1.0, 'longitude': 2.0}})
        value = load_batch(world).properties[0].values[0]
        assert value.location_value == Location(1.0, 2.0)

    def test_rejects_missing_value(self, world):
        assert isinstance(record(world, 'temperature', None).error, MissingField)

    def test_rejects_non_operator(self, world):
        result = record(world, 'temperature', {'float_value': 1.0}, signer=world.admin_a)
        assert isinstance(result.error, InvalidIdentity)

    def test_rejects_unknown_property_type(self, world):
        result = record(world, 'humidity', {'float_value': 1.0})
        assert isinstance(result.error, UnknownReference)

    def test_rejects_batch_of_another_company(self, world):
        result = record(world, 'temperature', {'float_value': 1.0}, signer=world.operator_b)
        assert isinstance(result.error, AuthorizationDenied)

    def test_rejects_operator_task_not_enabled(self, world):
        result = record(world, 'temperature', {'float_value': 1.0}, signer=world.driver_a)
        assert isinstance(result.error, NotEnabled)

    def test_rejects_batch_product_not_enabled(self, world):
        world.ledger.must(Action.CREATE_FIELD, world.admin_a, {
            'id': 'olive-grove',
            'description': 'Olives',
            'product': world.olive,
            'quantity': 5,
            'location': {'latitude': 1.0, 'longitude': 1.0},
        })
        field = get_field_address('olive-grove', get_company_id(world.admin_a))
        world.ledger.must(Action.CREATE_BATCH, world.operator_a, {'id': 'olives-1', 'field': field})

        result = world.ledger.submit(Action.RECORD_BATCH_PROPERTY, world.operator_a, {
            'batch': 'olives-1',
            'property': 'temperature',
            'property_value': {'float_value': 1.0},
        })
        assert isinstance(result.error, NotEnabled)


class TestFinalizeBatch:

    def test_sets_finalization(self, world):
        world.ledger.must(Action.FINALIZE_BATCH, world.operator_a, {
            'batch': world.batch,
            'reason': int(FinalizationReason.DESTROYED),
            'explanation': 'Hail storm',
        })
        finalization = load_batch(world).finalization
        assert finalization.reason == FinalizationReason.DESTROYED
        assert finalization.reporter == world.operator_a
        assert finalization.explanation == 'Hail storm'

    def test_second_finalization_overwrites_first(self, world):
        for reason in (FinalizationReason.EXPIRED, FinalizationReason.CONSUMED):
            world.ledger.must(Action.FINALIZE_BATCH, world.driver_a,
                              {'batch': world.batch, 'reason': int(reason)})
        finalization = load_batch(world).finalization
        assert finalization.reason == FinalizationReason.CONSUMED
        assert finalization.reporter == world.driver_a

    def test_finalized_batch_still_accepts_properties(self, world):
        world.ledger.must(Action.FINALIZE_BATCH, world.operator_a,
                          {'batch': world.batch, 'reason': int(FinalizationReason.WITHDRAWN)})
        assert record(world, 'temperature', {'float_value': 4.0}).ok

    def test_membership_lists_are_untouched(self, world):
        before = world.ledger.raw(world.company_a_address)
        result = world.ledger.must(Action.FINALIZE_BATCH, world.operator_a,
                                   {'batch': world.batch, 'reason': 0})
        assert list(result.writes) == [get_batch_address(world.batch)]
        assert world.ledger.raw(world.company_a_address) == before

    @pytest.mark.parametrize("reason", [None, 99, -1, 'EXPIRED'])
    def test_rejects_unknown_reason(self, world, reason):
        result = world.ledger.submit(Action.FINALIZE_BATCH, world.operator_a,
                                     {'batch': world.batch, 'reason': reason})
        assert isinstance(result.error, InvalidValue)

    def test_rejects_missing_batch(self, world):
        result = world.ledger.submit(Action.FINALIZE_BATCH, world.operator_a, {'reason': 0})
        assert isinstance(result.error, MissingField)

    def test_rejects_operator_of_another_company(self, world):
        result = world.ledger.submit(Action.FINALIZE_BATCH, world.operator_b,
                                     {'batch': world.batch, 'reason': 0})
        assert isinstance(result.error, AuthorizationDenied)

    def test_rejects_non_operator(self, world):
        result = world.ledger.submit(Action.FINALIZE_BATCH, world.admin_a,
                                     {'batch': world.batch, 'reason': 0})
        assert isinstance(result.error, InvalidIdentity)
