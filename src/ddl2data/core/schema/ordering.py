"""Dependency ordering of tables by foreign key edges."""

from __future__ import annotations

from collections import deque
from typing import Dict, List, Set

from ddl2data.core.schema.types import SchemaMetadata


def _parents(schema: SchemaMetadata) -> Dict[str, Set[str]]:
    """Map each table to the distinct tables it references (self-references ignored)."""
    parents: Dict[str, Set[str]] = {name: set() for name in schema.tables}
    for name, table in schema.tables.items():
        for fk in table.foreign_keys:
            ref = fk.reference_table
            if ref != name and ref in schema.tables:
                parents[name].add(ref)
    return parents


def _kahn(schema: SchemaMetadata) -> List[str]:
    parents = _parents(schema)
    position = {name: idx for idx, name in enumerate(schema.tables)}
    children: Dict[str, List[str]] = {name: [] for name in schema.tables}
    for child, refs in parents.items():
        for parent in refs:
            children[parent].append(child)

    in_degree = {name: len(refs) for name, refs in parents.items()}
    ready = deque(name for name in schema.tables if in_degree[name] == 0)
    ordered: List[str] = []

    while ready:
        name = ready.popleft()
        ordered.append(name)
        released = []
        for child in children[name]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                released.append(child)
        if released:
            # Ties resolve in declaration order
            ready = deque(sorted([*ready, *released], key=position.__getitem__))

    return ordered


def order_tables(schema: SchemaMetadata) -> List[str]:
    """Order tables so every referenced parent precedes its children.

    Kahn's algorithm with ties broken by declaration order. Tables caught in
    reference cycles are appended in declaration order.

    Args:
        schema: Parsed schema

    Returns:
        Every table name exactly once
    """
    ordered = _kahn(schema)
    placed = set(ordered)
    ordered.extend(name for name in schema.tables if name not in placed)
    return ordered


def find_cycles(schema: SchemaMetadata) -> List[str]:
    """Tables that could not be ordered because of reference cycles."""
    placed = set(_kahn(schema))
    return [name for name in schema.tables if name not in placed]
