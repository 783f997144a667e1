"""
Workspace - Open documents of an authoring project

The workspace keeps an arena of every document it has handed out, keyed by
handle, and an ordered index of the ones currently open. Closing a document
only removes it from the index, so a later restore can put the very same
document object back.
"""
import logging
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from config import BUILDS_DIR_NAME
from avatars.schemas import DocumentSetup
from avatars.scene.asset_index import AssetIndex
from avatars.scene.document import SceneDocument
from avatars.scene.registry import ComponentRegistry, default_registry

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = "main"


class DocumentError(Exception):
    """Raised when a workspace operation cannot be carried out"""
    pass


class _OpenEntry:
    """Index entry for an open document"""

    def __init__(self, handle: str, is_loaded: bool = True, window: str = DEFAULT_WINDOW):
        self.handle = handle
        self.is_loaded = is_loaded
        self.window = window


class Workspace:
    """
    Workspace - documents open in an authoring project

    Args:
        project_root: Directory holding the project files
        registry: Component registry used to load documents
    """

    def __init__(self, project_root: Path, registry: Optional[ComponentRegistry] = None):
        self.project_root = Path(project_root).resolve()
        self.registry = registry or default_registry
        self.asset_index = AssetIndex(self.project_root, excluded=[BUILDS_DIR_NAME])

        self._arena: Dict[str, SceneDocument] = {}
        self._open: List[_OpenEntry] = []
        self.active_handle: Optional[str] = None

    # Arena

    def _handle_of(self, document: SceneDocument) -> Optional[str]:
        for handle, existing in self._arena.items():
            if existing is document:
                return handle
        return None

    def _add_to_arena(self, document: SceneDocument) -> str:
        handle = self._handle_of(document)
        if handle is None:
            handle = uuid.uuid4().hex
            self._arena[handle] = document
        return handle

    def _entry(self, handle: str) -> Optional[_OpenEntry]:
        return next((e for e in self._open if e.handle == handle), None)

    def resolve_path(self, path: Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.project_root / path

    def get_document(self, handle: str) -> SceneDocument:
        return self._arena[handle]

    def handle_for(self, document: SceneDocument) -> Optional[str]:
        return self._handle_of(document)

    # Opening and closing

    def new_document(
        self,
        name: str,
        path: Optional[Path] = None,
        additive: bool = True,
        window: str = DEFAULT_WINDOW
    ) -> SceneDocument:
        """Create an empty document and open it"""
        document = SceneDocument(name, path=self.resolve_path(path) if path else None, registry=self.registry)
        self.open(document, additive=additive, window=window)
        return document

    def open_document(self, path: Path, additive: bool = True, window: str = DEFAULT_WINDOW) -> SceneDocument:
        """
        Open a document from disk

        A document already in the arena for the same path is reused.
        """
        full_path = self.resolve_path(path).resolve()
        for document in self._arena.values():
            if document.path is not None and document.path.resolve() == full_path:
                self.open(document, additive=additive, window=window)
                return document

        if not full_path.exists():
            raise DocumentError(f"Document not found: {full_path}")

        document = SceneDocument.load(full_path, registry=self.registry)
        self.open(document, additive=additive, window=window)
        return document

    def open(self, document: SceneDocument, additive: bool = True, window: str = DEFAULT_WINDOW) -> str:
        """Put a document into the open index"""
        handle = self._add_to_arena(document)
        if not additive:
            self._open = [e for e in self._open if e.handle == handle]
        entry = self._entry(handle)
        if entry is None:
            self._open.append(_OpenEntry(handle, window=window))
        else:
            entry.is_loaded = True
            entry.window = window
        if self.active_handle is None or not additive:
            self.active_handle = handle
        logger.debug(f"[Workspace] Opened '{document.name}' ({handle})")
        return handle

    def close(self, document: SceneDocument) -> None:
        handle = self._handle_of(document)
        if handle is None or self._entry(handle) is None:
            return
        self._open = [e for e in self._open if e.handle != handle]
        if self.active_handle == handle:
            self.active_handle = self._open[0].handle if self._open else None
        logger.debug(f"[Workspace] Closed '{document.name}' ({handle})")

    def set_active(self, document: SceneDocument) -> None:
        handle = self._handle_of(document)
        if handle is None or self._entry(handle) is None:
            raise DocumentError(f"Document '{document.name}' is not open")
        self.active_handle = handle

    def set_loaded(self, document: SceneDocument, loaded: bool) -> None:
        entry = self._entry(self._handle_of(document) or "")
        if entry is None:
            raise DocumentError(f"Document '{document.name}' is not open")
        entry.is_loaded = loaded

    # Queries

    @property
    def documents(self) -> List[SceneDocument]:
        """Open documents, in open order"""
        return [self._arena[e.handle] for e in self._open]

    @property
    def active_document(self) -> Optional[SceneDocument]:
        return self._arena.get(self.active_handle) if self.active_handle else None

    def is_open(self, document: SceneDocument) -> bool:
        handle = self._handle_of(document)
        return handle is not None and self._entry(handle) is not None

    def is_loaded(self, document: SceneDocument) -> bool:
        entry = self._entry(self._handle_of(document) or "")
        return entry is not None and entry.is_loaded

    # Setup capture and restore

    def get_setup(self) -> List[DocumentSetup]:
        """Layout of the open documents"""
        setup = []
        for entry in self._open:
            document = self._arena[entry.handle]
            setup.append(DocumentSetup(
                handle=entry.handle,
                path=self.asset_index.relative_path(document.path) if document.path else None,
                is_loaded=entry.is_loaded,
                is_active=entry.handle == self.active_handle,
                window=entry.window,
            ))
        return setup

    def restore_setup(self, setup: List[DocumentSetup]) -> None:
        """
        Make the open documents match a captured setup

        Documents are taken back from the arena; a handle the arena does not
        know is reloaded from its path.

        Raises:
            DocumentError: If a document can be found neither in the arena nor on disk
        """
        restored: List[_OpenEntry] = []
        active = None
        for record in setup:
            handle = record.handle
            if handle not in self._arena:
                if not record.path:
                    raise DocumentError(f"Cannot restore unsaved document {handle}")
                self._arena[handle] = SceneDocument.load(self.resolve_path(record.path), registry=self.registry)
            restored.append(_OpenEntry(handle, is_loaded=record.is_loaded, window=record.window))
            if record.is_active:
                active = handle

        self._open = restored
        self.active_handle = active
        logger.info(f"[Workspace] Restored setup with {len(restored)} document(s)")

    # Persistence

    def save_open_documents(self) -> bool:
        """
        Save every open, loaded document

        Returns:
            True if all documents were saved
        """
        ok = True
        for entry in self._open:
            if not entry.is_loaded:
                continue
            document = self._arena[entry.handle]
            try:
                document.save()
            except (OSError, ValueError) as e:
                logger.error(f"[Workspace] Failed to save '{document.name}': {e}")
                ok = False
        return ok

    def find_document(self, node) -> Optional[SceneDocument]:
        """Open document owning a node, if any"""
        document = node.scene if node is not None else None
        if document is not None and self.is_open(document):
            return document
        return None


__all__ = ["Workspace", "DocumentError", "DEFAULT_WINDOW"]
