"""
Avatar Descriptor - Marks the root node of an avatar

The descriptor is itself a compile step. It runs last (compile_order 9999)
so every module has been compiled before it records them.
"""
from typing import Any, Dict, List, Optional

from avatars.schemas import Platform, current_platform
from avatars.scene.graph import Component, Compilable, Node
from avatars.scene.registry import register_component


class AvatarModule:
    """Marker base for components that add behavior to an avatar"""
    pass


@register_component()
class AvatarDescriptor(Component, Compilable):
    """Root component of an avatar"""

    compile_order = 9999

    def __init__(self):
        super().__init__()
        self.target = Platform.NONE
        self.is_compiled = False
        self.modules: List[AvatarModule] = []

    def compile(self) -> None:
        if self.target == Platform.NONE:
            self.target = current_platform()
        self.find_modules()
        self.is_compiled = True

    def find_modules(self) -> List[AvatarModule]:
        """Collect modules on the avatar root and its children"""
        modules = list(self.modules)
        if self.node is not None:
            for module in self.node.get_components_in_children(AvatarModule):
                if all(module is not existing for existing in modules):
                    modules.append(module)
        # Modules detached since the last search are dropped
        self.modules = [m for m in modules if getattr(m, "node", None) is not None]
        return self.modules

    def get_modules(self, kind: Optional[type] = None) -> List[AvatarModule]:
        if kind is None:
            return list(self.modules)
        return [m for m in self.modules if isinstance(m, kind)]

    def get_state(self) -> Dict[str, Any]:
        state = super().get_state()
        state.update({
            "target": self.target.value,
            "is_compiled": self.is_compiled,
        })
        return state

    def set_state(self, data: Dict[str, Any]) -> None:
        super().set_state(data)
        self.target = Platform(data.get("target", Platform.NONE.value))
        self.is_compiled = data.get("is_compiled", False)


def find_avatar_descriptor(document, active_only: bool = True) -> Optional[AvatarDescriptor]:
    """First avatar descriptor in a document, optionally skipping inactive nodes"""
    if document is None:
        return None
    for node in document.iter_nodes():
        if active_only and not node.active_in_hierarchy:
            continue
        descriptor = node.get_component(AvatarDescriptor)
        if descriptor is not None:
            return descriptor
    return None


def find_avatar_root(node: Node) -> Optional[Node]:
    """Nearest node at or above node that carries a descriptor"""
    while node is not None:
        if node.get_component(AvatarDescriptor) is not None:
            return node
        node = node.parent
    return None


__all__ = ["AvatarDescriptor", "AvatarModule", "find_avatar_descriptor", "find_avatar_root"]
