# src/cache/models.py — v2
"""Cache domain models: Fingerprint and backend descriptors.

A Fingerprint is serialized as
``{"content_digest", "perceptual_digest", "size", "modified"}``, with the
perceptual digest written as a JSON array of byte values.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer, field_validator

from fpcache.cache.fingerprint import perceptual_distance

_UINT64_MAX = 2**64 - 1


class Fingerprint(BaseModel):
    """Stored summary of one file's content plus the metadata it was computed against."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    exact_digest: int = Field(alias="content_digest", ge=0, le=_UINT64_MAX)
    perceptual_digest: bytes | None = None
    observed_size: int = Field(alias="size", ge=0, le=_UINT64_MAX)
    observed_mtime: int = Field(alias="modified", ge=0, le=_UINT64_MAX)

    @field_validator("perceptual_digest", mode="before")
    @classmethod
    def decode_byte_array(cls, v: object) -> object:
        if isinstance(v, (list, tuple)):
            try:
                return bytes(v)
            except TypeError as e:
                raise ValueError(f"perceptual digest items must be integers 0-255: {e}") from e
        return v

    @field_serializer("perceptual_digest")
    def encode_byte_array(self, v: bytes | None) -> list[int] | None:
        return None if v is None else list(v)

    @property
    def has_perceptual_digest(self) -> bool:
        return self.perceptual_digest is not None

    def content_equal(self, other: Fingerprint) -> bool:
        """True iff both fingerprints carry the same exact digest."""
        return self.exact_digest == other.exact_digest

    def perceptual_distance(self, other: Fingerprint) -> int:
        """Hamming distance between the two perceptual digests.

        Raises:
            ValueError: If either fingerprint has no perceptual digest.
        """
        if self.perceptual_digest is None or other.perceptual_digest is None:
            raise ValueError("Both fingerprints need a perceptual digest")
        return perceptual_distance(self.perceptual_digest, other.perceptual_digest)

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)


# Whole local store file: path key -> record.
FingerprintMap = TypeAdapter(dict[str, Fingerprint])


class LocalBackend(BaseModel):
    """Descriptor for the JSON file-backed store."""

    kind: Literal["local"] = "local"
    path: Path


class RedisBackend(BaseModel):
    """Descriptor for the Redis-backed store."""

    kind: Literal["redis"] = "redis"
    url: str
    timeout: float = 5.0
    key_prefix: str = ""
    verify: bool = False


BackendDescriptor = Annotated[
    Union[LocalBackend, RedisBackend], Field(discriminator="kind")
]
