# -*- coding: utf-8 -*-
"""
Factor Graph Walk

Iterative post-order traversal of the composite-factor dependency graph.
Nodes are factor codes in an arena keyed by code; edges point from a
composite factor to the factors it reads. Every node carries an explicit
VISITING/DONE marker, so cycles are found without recursion and the
traversal depth is bounded by ``max_depth``.

Zero-Hallucination Guarantees:
    - Traversal order is fully determined by root order and edge order
    - Cycle reports name every factor on the cycle
    - No recursion; depth overflow is reported, never a RecursionError

Example:
    >>> from qsengine.graph import post_order
    >>> order, depth = post_order({"G": ["F1", "F2"], "F1": [], "F2": []}, ["G"])
    >>> order
    ['F1', 'F2', 'G']
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from qsengine.exceptions import ConfigurationError, CyclicFactorError

logger = logging.getLogger(__name__)

_VISITING = 1
_DONE = 2

DEFAULT_MAX_DEPTH = 64


def post_order(
    nodes: Mapping[str, Sequence[str]],
    roots: Iterable[str],
    max_depth: int = DEFAULT_MAX_DEPTH,
    ruleset_id: Optional[str] = None,
) -> Tuple[List[str], int]:
    """Return the nodes reachable from ``roots`` in dependency-first order.

    Edges to codes missing from ``nodes`` are skipped; callers decide
    whether such references are errors.

    Args:
        nodes: Arena mapping each node code to its ordered child codes.
        roots: Codes to start from, in the order results should favour.
        max_depth: Longest chain of nodes allowed on the walk stack.
        ruleset_id: Optional ruleset id attached to raised errors.

    Returns:
        Tuple of (codes in post-order, deepest chain length seen).

    Raises:
        CyclicFactorError: If a node is reached while still being visited.
        ConfigurationError: If a chain exceeds ``max_depth`` nodes.
    """
    state: Dict[str, int] = {}
    order: List[str] = []
    deepest = 0

    for root in roots:
        if root not in nodes or state.get(root) == _DONE:
            continue

        state[root] = _VISITING
        stack: List[Tuple[str, Iterator[str]]] = [(root, iter(nodes[root]))]
        deepest = max(deepest, 1)

        while stack:
            code, children = stack[-1]
            descended = False
            for child in children:
                if child not in nodes:
                    continue
                marker = state.get(child)
                if marker == _DONE:
                    continue
                if marker == _VISITING:
                    path = [c for c, _ in stack]
                    cycle = path[path.index(child):] + [child]
                    logger.warning("Factor cycle detected: %s", " -> ".join(cycle))
                    raise CyclicFactorError(cycle, ruleset_id=ruleset_id)
                if len(stack) >= max_depth:
                    raise ConfigurationError(
                        f"Factor graph deeper than {max_depth} levels below {root}",
                        ruleset_id=ruleset_id,
                        context={"root": root, "max_depth": max_depth},
                    )
                state[child] = _VISITING
                stack.append((child, iter(nodes[child])))
                deepest = max(deepest, len(stack))
                descended = True
                break

            if not descended:
                stack.pop()
                state[code] = _DONE
                order.append(code)

    logger.debug("Post-order walk visited %d nodes, depth %d", len(order), deepest)
    return order, deepest


def find_cycles(nodes: Mapping[str, Sequence[str]]) -> List[List[str]]:
    """Collect every back-edge cycle in the graph without raising.

    Args:
        nodes: Arena mapping each node code to its ordered child codes.

    Returns:
        List of cycles, each a list of codes with the first repeated last.
    """
    state: Dict[str, int] = {}
    cycles: List[List[str]] = []

    for root in nodes:
        if state.get(root) == _DONE:
            continue
        state[root] = _VISITING
        stack: List[Tuple[str, Iterator[str]]] = [(root, iter(nodes[root]))]

        while stack:
            code, children = stack[-1]
            descended = False
            for child in children:
                if child not in nodes:
                    continue
                marker = state.get(child)
                if marker == _DONE:
                    continue
                if marker == _VISITING:
                    path = [c for c, _ in stack]
                    cycles.append(path[path.index(child):] + [child])
                    continue
                state[child] = _VISITING
                stack.append((child, iter(nodes[child])))
                descended = True
                break

            if not descended:
                stack.pop()
                state[code] = _DONE

    if cycles:
        logger.warning("Detected %d factor cycles", len(cycles))
    return cycles


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "post_order",
    "find_cycles",
]
