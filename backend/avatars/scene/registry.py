"""
Component Registry - Resolves component type names to implementations

Documents store components by type name. When a document is loaded the
registry turns each name back into a live component. Names the registry
does not know become MissingComponent tombstones instead of failing the load,
exactly like a missing script in an authoring tool.
"""
import logging
from typing import Callable, Dict, List, Optional, Type

from avatars.schemas import ComponentModel
from avatars.scene.graph import Component, MissingComponent

logger = logging.getLogger(__name__)


class ComponentRegistry:
    """
    Central registry for component types

    Documents use this to load components and to name them when saving.
    """

    def __init__(self):
        self._registry: Dict[str, Type[Component]] = {}

    def register(self, cls: Type[Component], name: Optional[str] = None) -> Type[Component]:
        """Register a component class under its type name"""
        type_name = name or cls.component_type or cls.__name__
        existing = self._registry.get(type_name)
        if existing is not None and existing is not cls:
            raise ValueError(f"Component type '{type_name}' is already registered to {existing.__name__}")
        self._registry[type_name] = cls
        return cls

    def unregister(self, name: str) -> None:
        self._registry.pop(name, None)

    def resolve(self, name: str) -> Optional[Type[Component]]:
        """Get the class registered under name, or None"""
        return self._registry.get(name)

    def type_name_for(self, component: Component) -> str:
        """Name a component is saved under"""
        if isinstance(component, MissingComponent):
            return component.type_name
        cls = type(component)
        for name, registered in self._registry.items():
            if registered is cls:
                return name
        return cls.component_type or cls.__name__

    def create(self, model: ComponentModel) -> Component:
        """Instantiate a component from its serialized form"""
        cls = self.resolve(model.type)
        if cls is None:
            logger.warning(f"[ComponentRegistry] Unknown component type '{model.type}', loading as missing")
            return MissingComponent(type_name=model.type, data=model.data)

        component = cls()
        component.set_state(model.data)
        return component

    def serialize(self, component: Component) -> ComponentModel:
        return ComponentModel(type=self.type_name_for(component), data=component.get_state())

    def list_types(self) -> List[str]:
        return list(self._registry.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._registry


# Registry used by documents unless one is passed explicitly
default_registry = ComponentRegistry()


def register_component(name: Optional[str] = None) -> Callable[[Type[Component]], Type[Component]]:
    """
    Class decorator registering a component in the default registry

    Usage:
        @register_component()
        class BlendshapeBaker(Component, Compilable):
            ...
    """
    def decorator(cls: Type[Component]) -> Type[Component]:
        return default_registry.register(cls, name)
    return decorator


def create_component_registry(include_defaults: bool = True) -> ComponentRegistry:
    """
    Factory function to create a component registry

    Args:
        include_defaults: Copy every type from the default registry

    Returns:
        A new, independent ComponentRegistry
    """
    registry = ComponentRegistry()
    if include_defaults:
        for name in default_registry.list_types():
            registry.register(default_registry.resolve(name), name)
    return registry


__all__ = [
    "ComponentRegistry",
    "default_registry",
    "register_component",
    "create_component_registry",
]
