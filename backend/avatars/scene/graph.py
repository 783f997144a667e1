"""
Scene Graph - Nodes, Components and Build Capabilities

The subject of a build is a tree of nodes. Each node carries an ordered list
of components. Components opt into the build pipeline by also subclassing a
capability:

- Compilable: runs before packaging, ordered by compile_order
- RemoveOnBuild: strips build-only scaffolding after compilation

A MissingComponent is a tombstone: a component whose implementation could
not be resolved when its document was loaded. Tombstones must be purged
before packaging.
"""
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Type, TypeVar

T = TypeVar("T")


class NodeLockedError(Exception):
    """Raised when removing a component from a node that refuses edits"""
    pass


class Component:
    """
    Base class for everything attached to a node.

    Components registered in a ComponentRegistry must be constructible
    without arguments; their state round-trips through get_state/set_state.
    """

    component_type: ClassVar[Optional[str]] = None
    is_missing: ClassVar[bool] = False

    def __init__(self):
        self.node: Optional["Node"] = None
        self.enabled = True
        self._destroyed = False

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        """Detach from the carrying node. Safe to call more than once."""
        if self.node is not None:
            self.node.remove_component(self)
        self._destroyed = True

    def get_state(self) -> Dict[str, Any]:
        """State written to documents and prefabs"""
        return {"enabled": self.enabled}

    def set_state(self, data: Dict[str, Any]) -> None:
        """Restore state read from a document"""
        self.enabled = data.get("enabled", True)

    def __repr__(self):
        owner = self.node.name if self.node else None
        return f"<{type(self).__name__} on {owner!r}>"


class MissingComponent(Component):
    """Tombstone for a component whose type could not be resolved"""

    is_missing: ClassVar[bool] = True

    def __init__(self, type_name: str = "", data: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.type_name = type_name
        self.data = dict(data or {})

    def get_state(self) -> Dict[str, Any]:
        return dict(self.data)

    def __repr__(self):
        return f"<MissingComponent {self.type_name!r}>"


class Compilable(ABC):
    """Capability: a pre-packaging transformation step"""

    compile_order: int = 0

    @abstractmethod
    def compile(self) -> None:
        """Synchronous phase"""

    async def compile_async(self) -> None:
        """Asynchronous phase, runs after compile()"""
        return None


class RemoveOnBuild(ABC):
    """Capability: build-only scaffolding stripped after compilation"""

    @abstractmethod
    def on_remove_on_build(self) -> None:
        """Called once before the carrier component is destroyed"""


def is_tombstone(component: Optional[Component]) -> bool:
    """True for unresolved or vanished components"""
    return component is None or component.is_missing


class Node:
    """A node in a scene document's ownership tree"""

    def __init__(self, name: str, active: bool = True, locked: bool = False):
        self.name = name
        self.active = active
        self.locked = locked
        self.parent: Optional["Node"] = None
        self.children: List["Node"] = []
        self.components: List[Optional[Component]] = []
        self.document = None  # set on roots by SceneDocument.add_root

    # Hierarchy

    def add_child(self, child: "Node") -> "Node":
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def walk(self) -> Iterator["Node"]:
        """Depth-first over this node and every descendant"""
        yield self
        for child in list(self.children):
            yield from child.walk()

    @property
    def root(self) -> "Node":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def scene(self):
        """The document owning this node's tree, if any"""
        return self.root.document

    @property
    def path(self) -> str:
        parts = []
        node = self
        while node is not None:
            parts.append(node.name)
            node = node.parent
        return "/".join(reversed(parts))

    @property
    def active_in_hierarchy(self) -> bool:
        node = self
        while node is not None:
            if not node.active:
                return False
            node = node.parent
        return True

    def find(self, path: str) -> Optional["Node"]:
        """Find a descendant by a slash separated path relative to this node"""
        node = self
        for part in [p for p in path.split("/") if p]:
            node = next((c for c in node.children if c.name == part), None)
            if node is None:
                return None
        return node

    # Components

    def add_component(self, component: T) -> T:
        if component is not None:
            if component.node is not None and component.node is not self:
                component.node.remove_component(component)
            component.node = self
        self.components.append(component)
        return component

    def remove_component(self, component: Optional[Component]) -> None:
        if self.locked:
            raise NodeLockedError(f"Node '{self.name}' is locked and cannot be edited")
        for index, existing in enumerate(self.components):
            if existing is component:
                del self.components[index]
                break
        else:
            return
        if component is not None:
            component.node = None

    def remove_missing_components(self) -> int:
        """Remove every tombstone on this node. Returns how many were removed."""
        missing = [c for c in self.components if is_tombstone(c)]
        if missing and self.locked:
            raise NodeLockedError(f"Node '{self.name}' is locked and cannot be edited")
        self.components = [c for c in self.components if not is_tombstone(c)]
        for component in missing:
            if component is not None:
                component.node = None
        return len(missing)

    def get_component(self, kind: Type[T]) -> Optional[T]:
        return next((c for c in self.components if isinstance(c, kind)), None)

    def get_components(self, kind: Optional[type] = None) -> list:
        if kind is None:
            return list(self.components)
        return [c for c in self.components if isinstance(c, kind)]

    def get_components_in_children(self, kind: type, include_inactive: bool = True) -> list:
        """Components of a kind on this node and its descendants, deduplicated by identity"""
        seen = set()
        found = []
        for node in self.walk():
            if not include_inactive and not node.active_in_hierarchy:
                continue
            for component in node.components:
                if isinstance(component, kind) and id(component) not in seen:
                    seen.add(id(component))
                    found.append(component)
        return found

    def __repr__(self):
        return f"<Node {self.path!r}>"


__all__ = [
    "Component",
    "MissingComponent",
    "Compilable",
    "RemoveOnBuild",
    "Node",
    "NodeLockedError",
    "is_tombstone",
]
