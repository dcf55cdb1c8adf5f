"""Data shapes exchanged between the checks and the cluster client.

All models are frozen: a query or verdict is built once per check and never mutated.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseModelFrozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class GroupKind(BaseModelFrozen):
    group: str = ""
    kind: str = ""

    def __str__(self) -> str:
        # User-facing identifier; keep the format stable.
        return f"{self.group}/{self.kind}"


class ResourceDescriptor(BaseModelFrozen):
    """What an access review asks about. Empty string means unscoped/any."""

    namespace: str = ""
    verb: str = ""
    group: str = ""
    version: str = ""
    resource: str = ""
    name: str = ""
    subresource: str = ""


class SubjectDescriptor(BaseModelFrozen):
    user: str = ""
    groups: List[str] = Field(default_factory=list)


class AccessQuery(BaseModelFrozen):
    resource: ResourceDescriptor
    # None => evaluate the caller's own credential (self-subject review).
    subject: Optional[SubjectDescriptor] = None

    @property
    def is_self(self) -> bool:
        return self.subject is None


class AccessVerdict(BaseModelFrozen):
    allowed: bool = False
    reason: str = ""


class CapabilityProbe(BaseModelFrozen):
    group_version: str
    expected_kind: str


class DiscoveredResource(BaseModelFrozen):
    name: str = ""
    kind: str = ""
    namespaced: bool = False
    verbs: List[str] = Field(default_factory=list)


class DiscoveredResourceList(BaseModelFrozen):
    group_version: str = ""
    resources: List[DiscoveredResource] = Field(default_factory=list)

    def has_kind(self, kind: str) -> bool:
        return any(r.kind == kind for r in self.resources)
