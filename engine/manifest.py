"""Pydantic schema for file manifests plus JSON/YAML (de)serialization.

The document layout is the durable contract between a backup run and a
later restore run:

    fileName: disk.img
    totalSize: 629145600
    blobsLocation: /here
    algorithm: sha1
    chunks:
      - {start: 0, end: 262143999, content: 3f78..., isEmpty: false}
      - {start: 262144000, end: 524287999, content: '', isEmpty: true}

`algorithm` is optional; manifests without it were hashed with sha1.
"""

import json
import re
from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from common.constants import DEFAULT_DIGEST_ALGORITHM
from engine.content_addresser import SUPPORTED_ALGORITHMS, digest_length
from engine.exceptions import ManifestError

HEX_PATTERN = re.compile(r"^[0-9a-f]+$")

MANIFEST_FORMATS = ("json", "yaml")


class ChunkDescriptor(BaseModel):
    """One chunk of a manifest; offsets are inclusive."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)
    content_digest: str = Field(default="", alias="content")
    is_empty: bool = Field(default=False, alias="isEmpty")

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @model_validator(mode="after")
    def check_content(self) -> 'ChunkDescriptor':
        if self.end < self.start:
            raise ValueError(f"chunk end {self.end} precedes start {self.start}")
        if self.is_empty and self.content_digest:
            raise ValueError(f"empty chunk at {self.start} must not carry a digest")
        if not self.is_empty and not HEX_PATTERN.match(self.content_digest):
            raise ValueError(f"chunk at {self.start} needs a lowercase hex digest")
        return self


class FileManifest(BaseModel):
    """Chunk layout and file metadata needed to rebuild one file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file_name: str = Field(alias="fileName")
    total_size: int = Field(gt=0, alias="totalSize")
    blobs_location: str = Field(default="", alias="blobsLocation")
    algorithm: str = DEFAULT_DIGEST_ALGORITHM
    chunks: List[ChunkDescriptor]

    @model_validator(mode="after")
    def check_partition(self) -> 'FileManifest':
        if self.algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"unsupported digest algorithm {self.algorithm!r}")
        if not self.chunks:
            raise ValueError("manifest has no chunks")

        expected_start = 0
        for chunk in self.chunks:
            if chunk.start != expected_start:
                raise ValueError(f"chunk starts at {chunk.start}, expected {expected_start}")
            expected_start = chunk.end + 1
        if expected_start != self.total_size:
            raise ValueError(f"chunks cover {expected_start} bytes, totalSize is {self.total_size}")

        chunk_size = self.chunks[0].length
        for chunk in self.chunks[:-1]:
            if chunk.length != chunk_size:
                raise ValueError(f"chunk at {chunk.start} is {chunk.length} bytes, expected {chunk_size}")
        if self.chunks[-1].length > chunk_size:
            raise ValueError("final chunk is longer than the chunk size")

        width = digest_length(self.algorithm)
        for chunk in self.chunks:
            if not chunk.is_empty and len(chunk.content_digest) != width:
                raise ValueError(f"chunk at {chunk.start} has a digest that is not {self.algorithm}")
        return self

    @property
    def chunk_size(self) -> int:
        return self.chunks[0].length

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


def build_manifest(**fields) -> FileManifest:
    """
    Construct a manifest, converting validation failures to ManifestError.
    """
    try:
        return FileManifest(**fields)
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest: {e}") from e


def dump_manifest(manifest: FileManifest, fmt: str = "json") -> str:
    """
    Serialize a manifest as a JSON or YAML document.

    Raises:
        ValueError: If fmt is not one of MANIFEST_FORMATS
    """
    document = manifest.to_document()
    if fmt == "json":
        return json.dumps(document, indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(document, sort_keys=False)
    raise ValueError(f"Unknown manifest format: {fmt}")


def parse_manifest(text: str) -> FileManifest:
    """
    Parse a JSON or YAML manifest document.

    JSON is tried first; anything else goes through the YAML loader.

    Raises:
        ManifestError: If the document is malformed or violates the schema
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ManifestError(f"Manifest is neither JSON nor YAML: {e}") from e

    if not isinstance(document, dict):
        raise ManifestError("Manifest document must be a mapping")
    try:
        return FileManifest.model_validate(document)
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest: {e}") from e


def load_manifest(path) -> FileManifest:
    """
    Read and parse the manifest stored at path.

    Raises:
        OSError: If the file cannot be read
        ManifestError: If its content is not a valid manifest
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ManifestError(f"Manifest {path} is not UTF-8 text: {e}") from e
    return parse_manifest(text)
