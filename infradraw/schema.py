"""Versioned provider schema catalog.

The catalog turns a provider schema document (the output of
``terraform providers schema -json``) into ordered, typed property
definitions per resource type.  Documents are stored one per version under
a directory whose name is the version with separators replaced by
underscores, e.g. ``schemas/5_92_0/schema.json``.

When no document can be loaded the catalog serves the hand-written table
from :mod:`infradraw.builtin_properties` so the application keeps working
offline and with malformed input.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .builtin_properties import FALLBACK_PROPERTIES
from .constants import NO_RESOURCE_DESCRIPTION, PROVIDER_SOURCE
from .resource_types import ResourceType, by_canonical_name
from .types import Block, PropertyDefinition, PropertyKind

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).with_name("schemas")
SCHEMA_FILE_NAME = "schema.json"

_POLICY_NAME_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (r"_policy$", r"^policy$", r"policy_", r"_document$", r"^document$", r"^assume_role_", r"^trust_")
)
_POLICY_DESCRIPTION_KEYWORDS = (
    "policy document",
    "json document",
    "json formatted",
    "json policy",
    "policy statement",
    "trust relationship",
)
# Attributes that point at a policy rather than embed one.
_REFERENCE_SUFFIXES = ("_arn", "_arns", "_id", "_ids", "_name")


CatalogEntries = Dict[ResourceType, List[PropertyDefinition]]


class SchemaError(Exception):
    """Raised when a schema document cannot be turned into catalog entries."""


class SchemaNotFound(SchemaError):
    """Raised when no schema document exists for a requested version."""

    def __init__(self, version: str, available: List[str]):
        self.version = version
        self.available = list(available)
        listing = ", ".join(self.available) if self.available else "none"
        super().__init__(f"Schema not found for AWS provider version {version}. Available versions: {listing}")


def version_to_dir_name(version: str) -> str:
    return re.sub(r"[.\-+]", "_", version)


def dir_name_to_version(name: str) -> str:
    return name.replace("_", ".")


def _version_key(version: str) -> Tuple[Tuple[int, Union[int, str]], ...]:
    parts = []
    for part in re.split(r"[._\-]", version):
        if part.isdigit():
            parts.append((0, int(part)))
        else:
            parts.append((1, part))
    return tuple(parts)


def is_policy_field(name: str, description: str = "") -> bool:
    """Return True when an attribute holds an embedded JSON/policy document."""
    lowered = name.lower()
    if lowered.endswith(_REFERENCE_SUFFIXES):
        return False
    if any(pattern.search(lowered) for pattern in _POLICY_NAME_PATTERNS):
        return True
    text = description.lower()
    return any(keyword in text for keyword in _POLICY_DESCRIPTION_KEYWORDS)


def infer_kind(name: str, attribute: Dict[str, Any]) -> PropertyKind:
    declared = attribute.get("type")
    if declared == "string":
        description = str(attribute.get("description") or "")
        return PropertyKind.JSON if is_policy_field(name, description) else PropertyKind.STRING
    if declared == "number":
        return PropertyKind.NUMBER
    if declared == "bool":
        return PropertyKind.BOOLEAN
    return PropertyKind.STRING


def _definition_from_attribute(name: str, attribute: Any) -> PropertyDefinition:
    if not isinstance(attribute, dict):
        raise SchemaError(f"Attribute {name!r} is not an object")
    return PropertyDefinition(
        name=name,
        kind=infer_kind(name, attribute),
        required=bool(attribute.get("required", False)),
        deprecated=bool(attribute.get("deprecated", False)),
        description=str(attribute.get("description") or ""),
    )


def _nested_policy_definitions(block: Dict[str, Any]) -> List[PropertyDefinition]:
    definitions: List[PropertyDefinition] = []
    for block_name, nested in (block.get("block_types") or {}).items():
        lowered = block_name.lower()
        if "policy" not in lowered and "document" not in lowered:
            continue
        attributes = (nested.get("block") or {}).get("attributes") or {}
        for attr_name, attribute in attributes.items():
            description = str(attribute.get("description") or "")
            if not is_policy_field(attr_name, description):
                continue
            definitions.append(
                PropertyDefinition(
                    name=f"{block_name}.{attr_name}",
                    kind=PropertyKind.JSON,
                    required=False,
                    deprecated=bool(attribute.get("deprecated", False)),
                    description=description,
                )
            )
    return definitions


@dataclass
class CatalogSnapshot:
    """Everything the catalog serves, built for one version (or the fallback)."""

    version: Optional[str]
    entries: CatalogEntries = field(default_factory=dict)
    descriptions: Dict[ResourceType, str] = field(default_factory=dict)
    is_fallback: bool = False


def fallback_snapshot() -> CatalogSnapshot:
    entries = {resource_type: list(definitions) for resource_type, definitions in FALLBACK_PROPERTIES.items()}
    return CatalogSnapshot(version=None, entries=entries, is_fallback=True)


class SchemaCatalog:
    """Typed property definitions per resource type for one provider version.

    The catalog starts out serving the built-in fallback table.  Call
    :meth:`reload` to load a schema document; the swap is explicit so tests
    and background reloads stay deterministic.
    """

    def __init__(self, schema_dir: Optional[Union[str, Path]] = None, provider: str = PROVIDER_SOURCE):
        self._schema_dir = Path(schema_dir) if schema_dir is not None else SCHEMA_DIR
        self._provider = provider
        self._snapshot = fallback_snapshot()

    # --- Properties ---------------------------------------------------------
    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    @property
    def version(self) -> Optional[str]:
        return self._snapshot.version

    @property
    def is_fallback(self) -> bool:
        return self._snapshot.is_fallback

    # --- Loading ------------------------------------------------------------
    def available_versions(self) -> List[str]:
        if not self._schema_dir.is_dir():
            return []
        versions = [
            dir_name_to_version(child.name)
            for child in self._schema_dir.iterdir()
            if child.is_dir() and (child / SCHEMA_FILE_NAME).is_file()
        ]
        return sorted(versions, key=_version_key)

    def latest_version(self) -> Optional[str]:
        versions = self.available_versions()
        if not versions:
            return None
        return max(versions, key=_version_key)

    def schema_path(self, version: str) -> Path:
        return self._schema_dir / version_to_dir_name(version) / SCHEMA_FILE_NAME

    def load(self, version: str) -> CatalogEntries:
        """Build the entry map for ``version`` without touching the catalog state.

        Raises:
            SchemaNotFound: no document exists for the version.
            SchemaError: the document is unreadable or malformed.
        """
        return self._read_snapshot(version).entries

    def _read_snapshot(self, version: str) -> CatalogSnapshot:
        path = self.schema_path(version)
        if not path.is_file():
            raise SchemaNotFound(version, self.available_versions())

        try:
            with path.open(encoding="utf-8") as handle:
                document = json.load(handle)
        except (OSError, ValueError) as exc:
            raise SchemaError(f"Could not read schema document {path}: {exc}") from exc

        try:
            resource_schemas = document["provider_schemas"][self._provider]["resource_schemas"]
        except (KeyError, TypeError) as exc:
            raise SchemaError(f"Schema document {path} has no resource schemas for {self._provider}") from exc
        if not isinstance(resource_schemas, dict):
            raise SchemaError(f"Schema document {path} has malformed resource schemas")

        snapshot = CatalogSnapshot(version=version)
        for canonical_name, resource_schema in resource_schemas.items():
            resource_type = by_canonical_name(canonical_name)
            if resource_type is ResourceType.UNKNOWN:
                continue
            try:
                block = resource_schema["block"]
                attributes = block.get("attributes") or {}
                definitions = [
                    _definition_from_attribute(name, attribute) for name, attribute in attributes.items()
                ]
                definitions.extend(_nested_policy_definitions(block))
            except (KeyError, TypeError, AttributeError) as exc:
                raise SchemaError(f"Malformed schema for {canonical_name}: {exc}") from exc

            snapshot.entries[resource_type] = definitions
            description = block.get("description")
            if description:
                snapshot.descriptions[resource_type] = str(description)

        logger.info(
            "Loaded %d resource schemas for provider version %s from %s",
            len(snapshot.entries),
            version,
            path,
        )
        return snapshot

    def prepare(self, version: Optional[str] = None) -> CatalogSnapshot:
        """Load ``version`` (or the latest one), degrading to the fallback table.

        Never raises.  Safe to call off the GUI thread because it does not
        mutate the catalog; pass the result to :meth:`apply`.
        """
        target = version or self.latest_version()
        if target is None:
            logger.warning("No schema documents found in %s; using built-in properties", self._schema_dir)
            return fallback_snapshot()
        try:
            return self._read_snapshot(target)
        except SchemaError as exc:
            logger.warning("%s; using built-in properties", exc)
            return fallback_snapshot()

    def apply(self, snapshot: CatalogSnapshot) -> None:
        self._snapshot = snapshot

    def pinned(self) -> "SchemaCatalog":
        """A catalog that keeps serving the current snapshot after this one reloads.

        Snapshots are replaced, never mutated, so sharing one is safe across
        threads.
        """
        catalog = SchemaCatalog(schema_dir=self._schema_dir, provider=self._provider)
        catalog._snapshot = self._snapshot
        return catalog

    def reload(self, version: Optional[str] = None) -> bool:
        """Reinitialise from a schema document.

        Returns True when a document was loaded, False when the catalog fell
        back to the built-in table.
        """
        snapshot = self.prepare(version)
        self.apply(snapshot)
        return not snapshot.is_fallback

    # --- Lookups ------------------------------------------------------------
    def properties_for(self, resource_type: ResourceType) -> List[PropertyDefinition]:
        return list(self._snapshot.entries.get(resource_type, []))

    def properties_for_block(self, block: Block) -> List[PropertyDefinition]:
        return self.properties_for(block.resource_type)

    def property_definition(self, resource_type: ResourceType, name: str) -> Optional[PropertyDefinition]:
        for definition in self._snapshot.entries.get(resource_type, []):
            if definition.name == name:
                return definition
        return None

    def default_properties(self, resource_type: ResourceType) -> Dict[str, str]:
        return {
            definition.name: definition.default
            for definition in self._snapshot.entries.get(resource_type, [])
            if definition.default is not None
        }

    def resource_description(self, resource_type: ResourceType) -> str:
        return self._snapshot.descriptions.get(resource_type, NO_RESOURCE_DESCRIPTION)

    def supported_types(self) -> List[ResourceType]:
        return list(self._snapshot.entries)
