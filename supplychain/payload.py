"""
Inbound transaction payload.

The wire form is a msgpack map:

    {'action': 'CREATE_FIELD', 'timestamp': 1700000000, 'create_field': {...}}

where the nested struct is keyed by the lower-cased action name.
"""
import msgpack
from enum import Enum
from .errors import MissingField, InvalidValue


class Action(str, Enum):
    CREATE_SYSTEM_ADMIN = 'CREATE_SYSTEM_ADMIN'
    CREATE_TASK_TYPE = 'CREATE_TASK_TYPE'
    CREATE_PRODUCT_TYPE = 'CREATE_PRODUCT_TYPE'
    CREATE_PROPERTY_TYPE = 'CREATE_PROPERTY_TYPE'
    CREATE_EVENT_PARAMETER_TYPE = 'CREATE_EVENT_PARAMETER_TYPE'
    CREATE_EVENT_TYPE = 'CREATE_EVENT_TYPE'
    CREATE_COMPANY = 'CREATE_COMPANY'
    CREATE_OPERATOR = 'CREATE_OPERATOR'
    CREATE_CERTIFICATION_AUTHORITY = 'CREATE_CERTIFICATION_AUTHORITY'
    CREATE_FIELD = 'CREATE_FIELD'
    CREATE_BATCH = 'CREATE_BATCH'
    ADD_BATCH_CERTIFICATE = 'ADD_BATCH_CERTIFICATE'
    RECORD_BATCH_PROPERTY = 'RECORD_BATCH_PROPERTY'
    CREATE_PROPOSAL = 'CREATE_PROPOSAL'
    ANSWER_PROPOSAL = 'ANSWER_PROPOSAL'
    FINALIZE_BATCH = 'FINALIZE_BATCH'

    @property
    def data_key(self) -> str:
        """Key of the nested struct carrying this action's fields."""
        return self.value.lower()


class Payload:
    def __init__(self, action: Action, timestamp: int, data: dict):
        self.action = action
        self.timestamp = timestamp
        self.data = data

    @classmethod
    def from_dict(cls, raw: dict) -> 'Payload':
        """
        Validates and builds a Payload from a decoded map.

        Rejects a missing action or timestamp, an unknown action, a
        non-integer timestamp and a missing or non-map action struct.
        """
        if not isinstance(raw, dict):
            raise InvalidValue("Payload must be a map")

        action = raw.get('action')
        if not action:
            raise MissingField("Action is required")
        try:
            action = Action(action)
        except ValueError:
            raise InvalidValue(f"Invalid action: {action}")

        timestamp = raw.get('timestamp')
        if timestamp is None:
            raise MissingField("Timestamp is not set")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise InvalidValue(f"Timestamp must be an integer: {timestamp!r}")

        data = raw.get(action.data_key)
        if data is None:
            raise MissingField(f"Action data field '{action.data_key}' is not set")
        if not isinstance(data, dict):
            raise InvalidValue(f"Action data field '{action.data_key}' must be a map")

        return cls(action=action, timestamp=timestamp, data=data)

    def to_dict(self) -> dict:
        return {
            'action': self.action.value,
            'timestamp': self.timestamp,
            self.action.data_key: self.data,
        }

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Payload':
        try:
            raw = msgpack.unpackb(data, raw=False)
        except (ValueError, TypeError, msgpack.UnpackException) as e:
            raise InvalidValue(f"Payload is not valid msgpack: {e}")
        return cls.from_dict(raw)

    def to_bytes(self) -> bytes:
        return msgpack.packb(self.to_dict(), use_bin_type=True)
