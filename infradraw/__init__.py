"""infradraw: Terraform infrastructure as a block diagram, built with PySide6.

A schema catalog types every resource property, a configuration parser turns
``.tf`` files into blocks and connections, and a Qt graph model holds the
diagram the user edits.
"""

from .config import AppConfig
from .generator import generate_configuration, write_configuration
from .importer import RepositoryImporter
from .model import GraphModel
from .parser import ConfigurationParser, ParseResult, ResourceRecord
from .resource_types import ResourceType, by_canonical_name, by_display_name, canonical_name_of
from .schema import SchemaCatalog, SchemaNotFound
from .types import (
    Block,
    BlockCategory,
    CompositeBlock,
    Connection,
    ConnectionPointKind,
    Point,
    PropertyDefinition,
    PropertyKind,
)
from .variables import VariableModel, VariableRecord, VariableType

__all__ = [
    "AppConfig",
    "Block",
    "BlockCategory",
    "CompositeBlock",
    "ConfigurationParser",
    "Connection",
    "ConnectionPointKind",
    "GraphModel",
    "ParseResult",
    "Point",
    "PropertyDefinition",
    "PropertyKind",
    "RepositoryImporter",
    "ResourceRecord",
    "ResourceType",
    "SchemaCatalog",
    "SchemaNotFound",
    "VariableModel",
    "VariableRecord",
    "VariableType",
    "by_canonical_name",
    "by_display_name",
    "canonical_name_of",
    "generate_configuration",
    "write_configuration",
]
