"""Failures produced by the authorization gate.

Transport errors from the cluster client (ApiException, timeouts, config errors) are
not represented here: they propagate unchanged.
"""

from __future__ import annotations

from meshauthz.authz.models import GroupKind


class AuthzError(Exception):
    """Base class for locally generated check failures."""


class NotAuthorizedError(AuthzError):
    def __init__(self, group_kind: GroupKind, reason: str = "") -> None:
        self.group_kind = group_kind
        self.reason = reason or ""
        if self.reason:
            msg = f"not authorized to access {group_kind}: {self.reason}"
        else:
            msg = f"not authorized to access {group_kind}"
        super().__init__(msg)


class CapabilityNotFoundError(AuthzError):
    """The probed group/version does not serve the expected kind."""

    def __init__(self, kind: str, *, crd: bool = False) -> None:
        self.kind = kind
        self.crd = crd
        super().__init__(f"{kind} CRD not found" if crd else f"{kind} resource not found")


class NoInstancesExistError(AuthzError):
    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"no {kind} resources exist in the cluster")
