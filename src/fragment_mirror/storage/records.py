"""
Payload-free metadata records for fragment storage.

A Fragment is split in two before it is persisted: its binary payloads go
to a keyed payload collection, and everything else goes into a
FragmentRecord that only holds ``payload_key`` references. Metadata scans
therefore never touch binary data.
"""

from datetime import datetime
from typing import Callable, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field

from fragment_mirror.errors import PayloadMissingError
from fragment_mirror.models import (
    EmotionTag,
    Fragment,
    FragmentMetadata,
    FragmentRating,
    FragmentVariation,
    ResponseFragment,
    ResponseType,
)


class VariationRecord(BaseModel):
    id: str
    parent_id: str
    effect: str
    effect_settings: dict = Field(default_factory=dict)
    payload_key: str
    timestamp: datetime


class ResponseRecord(BaseModel):
    id: str
    parent_id: str
    payload_key: str
    timestamp: datetime
    response_type: ResponseType
    notes: Optional[str] = None


class FragmentRecord(BaseModel):
    """Stored form of a Fragment, with payloads replaced by keys."""

    id: str
    created_at: datetime
    duration_ms: int
    payload_key: str
    title: Optional[str] = None
    notes: Optional[str] = None
    tags: List[EmotionTag] = Field(default_factory=list)
    ratings: List[FragmentRating] = Field(default_factory=list)
    variations: List[VariationRecord] = Field(default_factory=list)
    responses: List[ResponseRecord] = Field(default_factory=list)
    metadata: FragmentMetadata

    def payload_keys(self) -> List[str]:
        """Every payload key this record references (own, variations, responses)."""
        keys = [self.payload_key]
        keys.extend(v.payload_key for v in self.variations)
        keys.extend(r.payload_key for r in self.responses)
        return keys


def split_fragment(fragment: Fragment) -> Tuple[FragmentRecord, List[Tuple[str, bytes]]]:
    """
    Split a fragment into its metadata record and its (key, payload) pairs.

    Payload keys are the owning object's id, so a re-save overwrites in place.
    """
    payloads = [(fragment.id, fragment.payload)]
    variations = []
    for variation in fragment.variations:
        payloads.append((variation.id, variation.payload))
        variations.append(
            VariationRecord(
                id=variation.id,
                parent_id=variation.parent_id,
                effect=variation.effect,
                effect_settings=variation.effect_settings,
                payload_key=variation.id,
                timestamp=variation.timestamp,
            )
        )

    responses = []
    for response in fragment.responses:
        payloads.append((response.id, response.payload))
        responses.append(
            ResponseRecord(
                id=response.id,
                parent_id=response.parent_id,
                payload_key=response.id,
                timestamp=response.timestamp,
                response_type=response.response_type,
                notes=response.notes,
            )
        )

    record = FragmentRecord(
        id=fragment.id,
        created_at=fragment.created_at,
        duration_ms=fragment.duration_ms,
        payload_key=fragment.id,
        title=fragment.title,
        notes=fragment.notes,
        tags=list(fragment.tags),
        ratings=list(fragment.ratings),
        variations=variations,
        responses=responses,
        metadata=fragment.metadata,
    )
    return record, payloads


def join_fragment(record: FragmentRecord, load_payload: Callable[[str], Optional[bytes]]) -> Fragment:
    """
    Rehydrate a Fragment from its record.

    Args:
        record: The stored metadata record
        load_payload: Returns the payload for a key, or None when absent

    Raises:
        PayloadMissingError: if any referenced payload is absent
    """

    def _load(key: str) -> bytes:
        data = load_payload(key)
        if data is None:
            raise PayloadMissingError(record.id, key)
        return data

    return Fragment(
        id=record.id,
        created_at=record.created_at,
        duration_ms=record.duration_ms,
        payload=_load(record.payload_key),
        title=record.title,
        notes=record.notes,
        tags=record.tags,
        ratings=record.ratings,
        variations=[
            FragmentVariation(
                id=v.id,
                parent_id=v.parent_id,
                effect=v.effect,
                effect_settings=v.effect_settings,
                payload=_load(v.payload_key),
                timestamp=v.timestamp,
            )
            for v in record.variations
        ],
        responses=[
            ResponseFragment(
                id=r.id,
                parent_id=r.parent_id,
                payload=_load(r.payload_key),
                timestamp=r.timestamp,
                response_type=r.response_type,
                notes=r.notes,
            )
            for r in record.responses
        ],
        metadata=record.metadata,
    )


def iter_stale_keys(old: Optional[FragmentRecord], new: FragmentRecord) -> Iterator[str]:
    """Payload keys referenced by the old record but not by its replacement."""
    if old is None:
        return iter(())
    keep = set(new.payload_keys())
    return (key for key in old.payload_keys() if key not in keep)
