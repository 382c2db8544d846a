"""
Helpers for driving the transaction handler against in-memory state.
"""
from supplychain.core import decode
from supplychain.crypto import generate_key_pair, serialize_public_key
from supplychain.payload import Action, Payload
from supplychain.processor import TransactionHandler
from supplychain.state import InMemoryContext


def new_public_key() -> str:
    _, public_key = generate_key_pair()
    return serialize_public_key(public_key)


class Ledger:
    """Submits payloads through a TransactionHandler against in-memory state."""

    def __init__(self):
        self.context = InMemoryContext()
        self.handler = TransactionHandler()
        self.timestamp = 1_700_000_000

    def submit(self, action: Action, signer: str, data: dict):
        self.timestamp += 1
        payload = Payload(action, self.timestamp, data)
        return self.handler.apply(payload, signer, self.context)

    def must(self, action: Action, signer: str, data: dict):
        result = self.submit(action, signer, data)
        assert result.ok, f"{action.value} rejected: {result.error!r}"
        return result

    def get(self, address: str, cls):
        return decode(cls, self.context.get_state([address])[address])

    def raw(self, address: str) -> bytes:
        return self.context.get_state([address])[address]

    def put(self, address: str, data: bytes):
        self.context.set_state({address: data})
