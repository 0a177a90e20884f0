"""Traversal and mutation helpers for ordered node forests.

Every helper walks depth-first, pre-order, visiting children in stored
order. Nodes own their children and hold no parent references, so parent
lookups re-traverse from the roots.
"""
from typing import Iterator, List, Optional, Sequence

from .node import Node


def iter_nodes(nodes: Sequence[Node]) -> Iterator[Node]:
    """Yield every node of a forest, parents before children."""
    for node in nodes:
        yield node
        if node.children:
            yield from iter_nodes(node.children)


def flatten(nodes: Sequence[Node]) -> List[Node]:
    """Return the forest as a depth-first list."""
    return list(iter_nodes(nodes))


def find_node(nodes: Sequence[Node], node_id: str) -> Optional[Node]:
    """Find a node by id; the first match in pre-order wins."""
    for node in iter_nodes(nodes):
        if node.id == node_id:
            return node
    return None


def collect_subtree_ids(node: Node) -> List[str]:
    """Ids of a node and all its descendants, pre-order."""
    return [n.id for n in iter_nodes([node])]


def remove_node(nodes: List[Node], node_id: str) -> bool:
    """
    Excise a node (and with it its subtree) from a forest in place.

    Returns:
        True if a node was removed
    """
    for index, node in enumerate(nodes):
        if node.id == node_id:
            del nodes[index]
            return True
    for node in nodes:
        if node.children and remove_node(node.children, node_id):
            return True
    return False


def reorder_siblings(nodes: List[Node], new_order_ids: Sequence[str]) -> List[Node]:
    """
    Re-sequence one sibling list.

    Nodes named in new_order_ids come first, in that order. Siblings that
    are not named follow in their original relative order. Unknown and
    repeated ids are ignored, so no node is ever dropped or duplicated.
    """
    by_id = {node.id: node for node in nodes}
    ordered: List[Node] = []
    placed = set()
    for node_id in new_order_ids:
        node = by_id.get(node_id)
        if node is not None and node_id not in placed:
            ordered.append(node)
            placed.add(node_id)
    remainder = [node for node in nodes if node.id not in placed]
    return ordered + remainder


def normalize_children(nodes: Sequence[Node]) -> None:
    """Replace empty children lists with None throughout a forest."""
    for node in nodes:
        if node.children:
            normalize_children(node.children)
        else:
            node.children = None
