"""
Custom Payload Store Example

Demonstrates keeping fragment payloads on disk by implementing the
PayloadStore protocol, while fragment metadata stays in the in-memory
fragment store.
"""

import tempfile
from pathlib import Path
from typing import Optional

from fragment_mirror.models import Fragment, FragmentVariation
from fragment_mirror.storage import InMemoryFragmentStore


class DirectoryPayloadStore:
    """
    Stores each payload as a file named after its key.

    Implements PayloadStore protocol via duck typing.
    """

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def put(self, key: str, data: bytes) -> None:
        (self.root / key).write_bytes(data)

    def get(self, key: str) -> Optional[bytes]:
        path = self.root / key
        return path.read_bytes() if path.exists() else None

    def delete(self, key: str) -> bool:
        path = self.root / key
        if not path.exists():
            return False
        path.unlink()
        return True

    def exists(self, key: str) -> bool:
        return (self.root / key).exists()


def main():
    with tempfile.TemporaryDirectory() as tmp:
        payloads = DirectoryPayloadStore(Path(tmp))
        store = InMemoryFragmentStore(payload_store=payloads)
        store.initialize()

        fragment = Fragment(duration_ms=30_000, payload=b"original clip")
        fragment = fragment.model_copy(
            update={
                "variations": [
                    FragmentVariation(parent_id=fragment.id, effect="sepia", payload=b"sepia clip")
                ]
            }
        )
        store.save(fragment)

        print(f"Payload files: {sorted(p.name for p in Path(tmp).iterdir())}")

        loaded = store.get(fragment.id)
        print(f"Loaded payload: {loaded.payload!r}, variation: {loaded.variations[0].payload!r}")

        store.delete(fragment.id)
        print(f"Payload files after delete: {sorted(p.name for p in Path(tmp).iterdir())}")


if __name__ == "__main__":
    main()
