"""
Error taxonomy for the fragment store and the reflection service.

Stores and engines raise these synchronously to their caller and never
retry internally. A failed operation leaves previously persisted state
unchanged.
"""


class FragmentMirrorError(Exception):
    """Base class for all fragment-mirror errors."""


class NotInitializedError(FragmentMirrorError):
    """A store operation was invoked before ``initialize()`` completed."""

    def __init__(self, store_name: str):
        self.store_name = store_name
        super().__init__(f"{store_name} is not initialized; call initialize() first")


class NotFoundError(FragmentMirrorError, KeyError):
    """No metadata record exists for the requested id."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")

    def __str__(self) -> str:
        return self.args[0]


class PayloadMissingError(FragmentMirrorError):
    """A metadata record references a binary payload that is absent."""

    def __init__(self, fragment_id: str, payload_key: str):
        self.fragment_id = fragment_id
        self.payload_key = payload_key
        super().__init__(f"Payload {payload_key} referenced by fragment {fragment_id} is missing")


class ValidationError(FragmentMirrorError, ValueError):
    """Caller-supplied data falls outside its declared range."""
