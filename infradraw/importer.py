"""Background import of Terraform configurations into the graph.

Fetching and parsing run on a ``QThreadPool``.  Results come back to the
importer's thread through a queued signal and are published in one step
(``GraphModel.replace_contents`` plus ``VariableModel.set_variables``).
Every import bumps a generation counter; a completion from an older
generation is dropped when it arrives, so a superseded fetch can never
overwrite a newer graph.  Each import converts against the catalog snapshot
that was current when it started.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from PySide6.QtCore import (
    Property,
    QCoreApplication,
    QObject,
    QRunnable,
    QThreadPool,
    Signal,
    Slot,
)

from .config import AppConfig
from .model import GraphModel
from .parser import ConfigurationParser
from .schema import CatalogSnapshot, SchemaCatalog
from .sources import GithubSource, LocalDirectorySource, parse_github_url
from .types import Block, Connection
from .variables import VariableModel, VariableRecord

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE = "Invalid GitHub URL format"
NOTHING_FOUND_MESSAGE = "No Terraform resources or variables found in files"


class ConfigurationSource(Protocol):
    description: str
    empty_message: str

    def load_files(self) -> List[str]: ...


@dataclass
class ImportOutcome:
    """What one import produced, or the user-facing reason it produced nothing."""

    blocks: List[Block] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    variables: List[VariableRecord] = field(default_factory=list)
    error: str = ""


def run_import(source: ConfigurationSource, parser: ConfigurationParser) -> ImportOutcome:
    """Fetch, parse and convert one source.  Blocking; never raises for fetch failures."""
    texts = source.load_files()
    if not texts:
        return ImportOutcome(error=source.empty_message)

    result = parser.parse_files(texts)
    if result.is_empty():
        return ImportOutcome(error=NOTHING_FOUND_MESSAGE)

    blocks, connections = parser.convert(result)
    logger.info(
        "Imported %d blocks, %d connections and %d variables from %s",
        len(blocks),
        len(connections),
        len(result.variables),
        source.description,
    )
    return ImportOutcome(blocks=blocks, connections=connections, variables=list(result.variables))


class _TaskSignals(QObject):
    importDone = Signal(int, object)
    schemaDone = Signal(object)


class _ImportTask(QRunnable):
    def __init__(self, generation: int, source: ConfigurationSource, parser: ConfigurationParser):
        super().__init__()
        self.setAutoDelete(False)
        self.generation = generation
        self.source = source
        self.parser = parser
        self.signals = _TaskSignals()

    def run(self) -> None:
        try:
            outcome = run_import(self.source, self.parser)
        except Exception as exc:  # reported through errorOccurred
            logger.exception("Import from %s failed", self.source.description)
            outcome = ImportOutcome(error=f"Import failed: {exc}")
        self.signals.importDone.emit(self.generation, outcome)


class _SchemaTask(QRunnable):
    def __init__(self, catalog: SchemaCatalog, version: Optional[str]):
        super().__init__()
        self.setAutoDelete(False)
        self.catalog = catalog
        self.version = version
        self.signals = _TaskSignals()

    def run(self) -> None:
        self.signals.schemaDone.emit(self.catalog.prepare(self.version))


class RepositoryImporter(QObject):
    """Runs imports and schema reloads off the GUI thread."""

    importStarted = Signal()
    importFinished = Signal(int, int)  # blocks, variables
    errorOccurred = Signal(str)
    loadingChanged = Signal()
    schemaReloaded = Signal(str)

    def __init__(
        self,
        graph: GraphModel,
        variables: VariableModel,
        config: Optional[AppConfig] = None,
        thread_pool: Optional[QThreadPool] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._graph = graph
        self._variables = variables
        self._config = config if config is not None else AppConfig()
        self._catalog = graph.catalog
        self._pool = thread_pool if thread_pool is not None else QThreadPool.globalInstance()
        self._generation = 0
        self._loading = False
        # Keep tasks (and their signal holders) alive until they report back.
        self._import_tasks: Dict[int, _ImportTask] = {}
        self._schema_tasks: List[_SchemaTask] = []

    @property
    def generation(self) -> int:
        return self._generation

    @Property(bool, notify=loadingChanged)
    def loading(self) -> bool:
        return self._loading

    def _set_loading(self, value: bool) -> None:
        if self._loading != value:
            self._loading = value
            self.loadingChanged.emit()

    # --- Imports ------------------------------------------------------------
    @Slot(str, result=bool)
    def importGithubUrl(self, url: str) -> bool:
        repo_info = parse_github_url(url)
        if repo_info is None:
            logger.warning("Invalid GitHub URL: %r", url)
            self.errorOccurred.emit(INVALID_URL_MESSAGE)
            return False
        source = GithubSource(
            repo_info,
            token=self._config.github_token,
            timeout=self._config.request_timeout,
        )
        self.start_import(source)
        return True

    @Slot(str, result=bool)
    def importDirectory(self, path: str) -> bool:
        if not path:
            return False
        self.start_import(LocalDirectorySource(path))
        return True

    def start_import(self, source: ConfigurationSource) -> int:
        """Clear the graph and start importing ``source``; returns the generation."""
        self._generation += 1
        generation = self._generation
        logger.info("Starting import #%d from %s", generation, source.description)

        self._graph.clearAll()
        self._variables.clear()
        self._set_loading(True)
        self.importStarted.emit()

        # A schema reload landing mid-import must not mix versions in one graph.
        parser = ConfigurationParser(self._catalog.pinned())
        task = _ImportTask(generation, source, parser)
        task.signals.importDone.connect(self._on_import_done)
        self._import_tasks[generation] = task
        self._pool.start(task)
        return generation

    @Slot(int, object)
    def _on_import_done(self, generation: int, outcome: ImportOutcome) -> None:
        self._import_tasks.pop(generation, None)
        if generation != self._generation:
            logger.info("Discarding result of superseded import #%d", generation)
            return

        self._set_loading(False)
        if outcome.error:
            logger.warning("Import #%d produced nothing: %s", generation, outcome.error)
            self.errorOccurred.emit(outcome.error)
            return

        self._graph.replace_contents(outcome.blocks, outcome.connections)
        self._variables.set_variables(outcome.variables)
        self.importFinished.emit(len(outcome.blocks), len(outcome.variables))

    # --- Schema -------------------------------------------------------------
    @Slot(str)
    def reloadSchema(self, version: str) -> None:
        """Reload the catalog for ``version`` ("" for the latest) in the background."""
        task = _SchemaTask(self._catalog, version or None)
        task.signals.schemaDone.connect(self._on_schema_done)
        self._schema_tasks.append(task)
        self._pool.start(task)

    @Slot(object)
    def _on_schema_done(self, snapshot: CatalogSnapshot) -> None:
        self._schema_tasks = [task for task in self._schema_tasks if task.signals is not self.sender()]
        self._catalog.apply(snapshot)
        self.schemaReloaded.emit(snapshot.version or "")

    def wait_for_done(self, msecs: int = -1) -> bool:
        """Block until background work finishes and deliver its results."""
        finished = self._pool.waitForDone(msecs)
        QCoreApplication.processEvents()
        return finished
