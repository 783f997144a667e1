"""
Scene Document - A file of root nodes that can be opened in a workspace

Documents are persisted as JSON (DocumentModel). Loading resolves component
types through a ComponentRegistry.
"""
import json
import logging
from pathlib import Path
from typing import Iterator, List, Optional

from avatars.schemas import DocumentModel, NodeModel
from avatars.scene.graph import Node
from avatars.scene.registry import ComponentRegistry, default_registry

logger = logging.getLogger(__name__)


def node_to_model(node: Node, registry: ComponentRegistry) -> NodeModel:
    """Serialize a node and its subtree"""
    return NodeModel(
        name=node.name,
        active=node.active,
        locked=node.locked,
        components=[registry.serialize(c) for c in node.components if c is not None],
        children=[node_to_model(child, registry) for child in node.children],
    )


def node_from_model(model: NodeModel, registry: ComponentRegistry) -> Node:
    """Rebuild a live node tree from its serialized form"""
    node = Node(model.name, active=model.active)
    for component_model in model.components:
        node.add_component(registry.create(component_model))
    for child_model in model.children:
        node.add_child(node_from_model(child_model, registry))
    # Lock last so loading can attach components
    node.locked = model.locked
    return node


class SceneDocument:
    """An authoring document holding one or more root nodes"""

    def __init__(self, name: str, path: Optional[Path] = None, registry: Optional[ComponentRegistry] = None):
        self.name = name
        self.path = Path(path) if path else None
        self.registry = registry or default_registry
        self.roots: List[Node] = []
        self.is_dirty = False

    def add_root(self, node: Node) -> Node:
        if node.parent is not None:
            node.parent.children.remove(node)
            node.parent = None
        node.document = self
        self.roots.append(node)
        self.is_dirty = True
        return node

    def remove_root(self, node: Node) -> None:
        if node in self.roots:
            self.roots.remove(node)
            node.document = None
            self.is_dirty = True

    def iter_nodes(self) -> Iterator[Node]:
        for root in list(self.roots):
            yield from root.walk()

    def find(self, path: str) -> Optional[Node]:
        """Find a node by a slash separated path starting at a root name"""
        parts = [p for p in path.split("/") if p]
        if not parts:
            return None
        root = next((r for r in self.roots if r.name == parts[0]), None)
        if root is None or len(parts) == 1:
            return root
        return root.find("/".join(parts[1:]))

    def to_model(self) -> DocumentModel:
        return DocumentModel(
            name=self.name,
            roots=[node_to_model(root, self.registry) for root in self.roots],
        )

    def save(self, path: Optional[Path] = None) -> Path:
        """
        Write the document as JSON

        Args:
            path: Target path (defaults to the document's own path)

        Returns:
            The path written

        Raises:
            ValueError: If the document has never been given a path
            OSError: If the file cannot be written
        """
        target = Path(path) if path else self.path
        if target is None:
            raise ValueError(f"Document '{self.name}' has no path to save to")

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.to_model().model_dump_json(indent=2), encoding="utf-8")
        self.path = target
        self.is_dirty = False
        logger.debug(f"[SceneDocument] Saved '{self.name}' to {target}")
        return target

    @classmethod
    def load(cls, path: Path, registry: Optional[ComponentRegistry] = None) -> "SceneDocument":
        """Read a document written by save()"""
        path = Path(path)
        registry = registry or default_registry
        model = DocumentModel(**json.loads(path.read_text(encoding="utf-8")))

        document = cls(model.name, path=path, registry=registry)
        for root_model in model.roots:
            document.add_root(node_from_model(root_model, registry))
        document.is_dirty = False
        return document

    def __repr__(self):
        return f"<SceneDocument {self.name!r}>"


__all__ = ["SceneDocument", "node_to_model", "node_from_model"]
