from __future__ import annotations

import re
from dataclasses import dataclass, field

from bucketfs.errors import MalformedAddress
from bucketfs.io.glob import GLOB_METACHARACTERS, is_glob

DEFAULT_SCHEME = "s3"

_ADDRESS = re.compile(
    r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.\-]*)://(?P<bucket>[^/]*)(?:/(?P<key>.*))?$", re.DOTALL
)


@dataclass(frozen=True)
class PathIdentifier:
    """A ``scheme://bucket/key`` object address.

    ``key`` is stored without the separating slash; an empty key denotes the bucket
    root. Serialization always emits the separating slash, so a bucket root prints
    as ``s3://bucket/``. Equality and hashing use bucket and key only.
    """

    bucket: str
    key: str = ""
    scheme: str = field(default=DEFAULT_SCHEME, compare=False)

    def __post_init__(self) -> None:
        if not self.bucket:
            raise MalformedAddress("bucket is required")
        if "/" in self.bucket:
            raise MalformedAddress(f"bucket must not contain '/': {self.bucket}")
        if is_glob(self.bucket):
            raise MalformedAddress(f"bucket must not contain glob characters: {self.bucket}")
        if not self.scheme:
            raise MalformedAddress("scheme is required")

    @classmethod
    def from_uri(cls, uri: str, *, scheme: str = DEFAULT_SCHEME) -> PathIdentifier:
        if not uri:
            raise MalformedAddress("uri is required")
        found = _ADDRESS.match(uri)
        if found is None:
            raise MalformedAddress(f"Invalid {scheme} URI: {uri}")
        if found.group("scheme").lower() != scheme.lower():
            raise MalformedAddress(f"Expected scheme '{scheme}': {uri}")
        bucket = found.group("bucket")
        if not bucket:
            raise MalformedAddress(f"URI missing bucket: {uri}")
        return cls(bucket=bucket, key=found.group("key") or "", scheme=found.group("scheme"))

    @classmethod
    def from_components(
        cls, bucket: str, key: str = "", *, scheme: str = DEFAULT_SCHEME
    ) -> PathIdentifier:
        if key.startswith("/"):
            key = key[1:]
        return cls(bucket=bucket, key=key, scheme=scheme)

    def __str__(self) -> str:
        return f"{self.scheme}://{self.bucket}/{self.key}"

    @property
    def uri(self) -> str:
        return str(self)

    @property
    def is_wildcard(self) -> bool:
        return is_glob(self.key)

    @property
    def key_non_wildcard_prefix(self) -> str:
        """Literal part of the key before its first glob metacharacter."""

        for idx, char in enumerate(self.key):
            if char in GLOB_METACHARACTERS:
                return self.key[:idx]
        return self.key

    @property
    def is_directory(self) -> bool:
        return not self.key or self.key.endswith("/")

    @property
    def filename(self) -> str | None:
        if not self.key:
            return None
        trimmed = self.key[:-1] if self.key.endswith("/") else self.key
        return trimmed.rsplit("/", 1)[-1]

    @property
    def current_directory(self) -> PathIdentifier:
        if self.is_directory:
            return self
        return self._with_key(self.key[: self.key.rfind("/") + 1])

    def resolve(self, other: str, *, is_directory: bool = False) -> PathIdentifier:
        """Resolve ``other`` against this directory.

        ``other`` may be a relative segment or a full address; ``..`` climbs to the
        parent when resolving a directory.
        """

        if not self.is_directory:
            raise ValueError(f"Expected a directory, got {self}")

        if is_directory:
            if other == "..":
                if not self.key:
                    return self
                parent_end = self.key[:-1].rfind("/")
                return self._with_key(self.key[: parent_end + 1])
            if other == "":
                return self
            if not other.endswith("/"):
                other += "/"
        else:
            if other.endswith("/"):
                raise ValueError(f"Cannot resolve a file with a directory path: {other}")
            if other == "..":
                raise ValueError(f"Cannot resolve parent as file: {other}")

        if _ADDRESS.match(other):
            return PathIdentifier.from_uri(other, scheme=self.scheme)
        return self._with_key(self.key + other)

    def _with_key(self, key: str) -> PathIdentifier:
        return PathIdentifier(bucket=self.bucket, key=key, scheme=self.scheme)


def parse_address(uri: str, *, scheme: str = DEFAULT_SCHEME) -> PathIdentifier:
    return PathIdentifier.from_uri(uri, scheme=scheme)
