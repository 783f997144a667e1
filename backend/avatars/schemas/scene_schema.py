"""
Scene Schema - Serialized Document Format

These models describe how documents, nodes and components are written to
disk. The live graph (avatars.scene.graph) converts to and from them.

They also carry the workspace layout records captured by snapshots.
"""
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone


class ComponentModel(BaseModel):
    """A serialized component attached to a node"""
    type: str = Field(..., description="Registered component type name")
    data: Dict[str, Any] = Field(default_factory=dict, description="Component state")


class NodeModel(BaseModel):
    """A serialized node and its subtree"""
    name: str
    active: bool = True
    locked: bool = Field(False, description="Node belongs to a nested template and refuses removals")
    components: List[ComponentModel] = Field(default_factory=list)
    children: List["NodeModel"] = Field(default_factory=list)


class DocumentModel(BaseModel):
    """A serialized scene document"""
    name: str
    roots: List[NodeModel] = Field(default_factory=list)


class DocumentSetup(BaseModel):
    """Layout record of one open document in the workspace"""
    handle: str = Field(..., description="Arena handle of the document")
    path: Optional[str] = Field(None, description="Project-relative path, if saved")
    is_loaded: bool = True
    is_active: bool = False
    window: str = Field("main", description="Window the document is docked in")


class WorkspaceSnapshot(BaseModel):
    """
    Restorable record of the workspace composition

    Captures which documents are open and how, not their content.
    """
    documents: List[DocumentSetup] = Field(default_factory=list)
    taken_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


NodeModel.model_rebuild()


__all__ = [
    "ComponentModel",
    "NodeModel",
    "DocumentModel",
    "DocumentSetup",
    "WorkspaceSnapshot",
]
