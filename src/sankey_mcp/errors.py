"""Structural errors raised when a flow graph is accepted.

These are detected once, eagerly, when a ``FlowGraph`` is built.  None of
them derive from ``ValueError``: pydantic only wraps ``ValueError`` and
``AssertionError`` raised inside validators, so these propagate to the
caller unchanged and can be caught by kind.
"""

from __future__ import annotations

from typing import Optional


class FlowGraphError(Exception):
    """Base class for every rejected flow graph."""


class MissingRoleError(FlowGraphError):
    """A node has no role tag, or a tag that is not origin/hub/destination."""

    def __init__(self, node_id: Optional[str], role: object = None):
        self.node_id = node_id
        self.role = role
        if role is None:
            msg = f"Node '{node_id}' has no role"
        else:
            msg = f"Node '{node_id}' has invalid role {role!r} (expected origin, hub or destination)"
        super().__init__(msg)


class DuplicateNodeIdError(FlowGraphError):
    """Two nodes share the same id."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Duplicate node id '{node_id}'")


class DanglingLinkReferenceError(FlowGraphError):
    """A link names a node id that is not in the node set."""

    def __init__(self, source: str, target: str, missing: str):
        self.source = source
        self.target = target
        self.missing = missing
        super().__init__(f"Link {source} -> {target} references unknown node '{missing}'")


class NegativeValueError(FlowGraphError):
    """A node or link carries a negative flow value."""

    def __init__(self, owner: str, value: float):
        self.owner = owner
        self.value = value
        super().__init__(f"{owner} has negative value {value}")
