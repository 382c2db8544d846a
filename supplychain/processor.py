"""
Transaction dispatch: decodes a payload, routes it to its handler and
applies the resulting write-set.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Union
from . import handlers, registration
from .addressing import FAMILY_NAME, FAMILY_VERSION, NAMESPACE
from .errors import ValidationError
from .payload import Action, Payload

logger = logging.getLogger(__name__)

HANDLERS = {
    Action.CREATE_SYSTEM_ADMIN: registration.create_system_admin,
    Action.CREATE_TASK_TYPE: registration.create_task_type,
    Action.CREATE_PRODUCT_TYPE: registration.create_product_type,
    Action.CREATE_PROPERTY_TYPE: registration.create_property_type,
    Action.CREATE_EVENT_PARAMETER_TYPE: registration.create_event_parameter_type,
    Action.CREATE_EVENT_TYPE: registration.create_event_type,
    Action.CREATE_COMPANY: handlers.create_company,
    Action.CREATE_OPERATOR: registration.create_operator,
    Action.CREATE_CERTIFICATION_AUTHORITY: registration.create_certification_authority,
    Action.CREATE_FIELD: handlers.create_field,
    Action.CREATE_BATCH: handlers.create_batch,
    Action.ADD_BATCH_CERTIFICATE: handlers.add_batch_certificate,
    Action.RECORD_BATCH_PROPERTY: handlers.record_batch_property,
    Action.CREATE_PROPOSAL: handlers.create_proposal,
    Action.ANSWER_PROPOSAL: handlers.answer_proposal,
    Action.FINALIZE_BATCH: handlers.finalize_batch,
}

_unhandled = set(Action) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"Actions without a handler: {sorted(a.value for a in _unhandled)}")


@dataclass
class ApplyResult:
    """Outcome of one transaction: a write-set, or the rejection that stopped it."""
    writes: dict = field(default_factory=dict)
    error: Optional[ValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TransactionHandler:
    """Entry point the ledger runtime calls for every transaction of the family."""

    def __init__(self, family_name: str = FAMILY_NAME, family_version: str = FAMILY_VERSION):
        if family_name != FAMILY_NAME:
            raise ValueError(f"Unsupported transaction family: {family_name}")
        if family_version != FAMILY_VERSION:
            raise ValueError(f"Unsupported family version: {family_version}")
        self.family_name = family_name
        self.family_version = family_version

    @classmethod
    def from_config(cls, config) -> 'TransactionHandler':
        return cls(
            family_name=config.processor.family_name,
            family_version=config.processor.family_version,
        )

    @property
    def namespaces(self) -> list[str]:
        return [NAMESPACE]

    def process(self, payload: Union[bytes, Payload], signer_public_key: str,
                context) -> ApplyResult:
        """
        Validates a transaction and computes its write-set without writing it.

        Rejections come back as ApplyResult.error; any other exception is a
        fault of the call itself and propagates.
        """
        action = None
        try:
            if not isinstance(payload, Payload):
                payload = Payload.from_bytes(payload)
            action = payload.action
            handler = HANDLERS[action]
            writes = handler(context, signer_public_key, payload.timestamp, payload.data)
        except ValidationError as e:
            name = action.value if action else 'payload'
            logger.warning(f"Rejected {name}: {e.kind}: {e.reason}")
            return ApplyResult(error=e)

        return ApplyResult(writes=writes)

    def apply(self, payload: Union[bytes, Payload], signer_public_key: str,
              context) -> ApplyResult:
        """Processes a transaction and, if it is admissible, commits its write-set."""
        result = self.process(payload, signer_public_key, context)
        if result.ok:
            context.set_state(result.writes)
            logger.info(f"Applied transaction with {len(result.writes)} state updates")
        return result
