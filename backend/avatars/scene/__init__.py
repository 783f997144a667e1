"""
Scene model for avatar authoring

These are the collaborators the build pipeline works against:
1. Graph - Nodes, components and build capabilities
2. Registry - Component type resolution
3. Document - Persisted trees of nodes
4. Workspace - Open documents and asset index
5. Host - Editor environment state
6. Descriptor - Avatar root marker
"""
from .graph import (
    Component,
    MissingComponent,
    Compilable,
    RemoveOnBuild,
    Node,
    NodeLockedError,
    is_tombstone,
)
from .registry import ComponentRegistry, default_registry, register_component, create_component_registry
from .document import SceneDocument
from .asset_index import AssetIndex
from .workspace import Workspace, DocumentError
from .host import EditorHost
from .descriptor import AvatarDescriptor, AvatarModule, find_avatar_descriptor, find_avatar_root

__all__ = [
    "Component",
    "MissingComponent",
    "Compilable",
    "RemoveOnBuild",
    "Node",
    "NodeLockedError",
    "is_tombstone",
    "ComponentRegistry",
    "default_registry",
    "register_component",
    "create_component_registry",
    "SceneDocument",
    "AssetIndex",
    "Workspace",
    "DocumentError",
    "EditorHost",
    "AvatarDescriptor",
    "AvatarModule",
    "find_avatar_descriptor",
    "find_avatar_root",
]
