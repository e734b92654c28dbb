"""
Backward-pass engine.

The engine works in two phases over the subgraph reachable from a root tensor:

1. Ordering: an iterative depth-first post-order walk (explicit stack and
   visited set, so deep graphs never hit the recursion limit), reversed so
   every node comes after all of its consumers. Resolving parents fails on
   any node an earlier pass already released, so a walk that cannot finish
   is rejected before a single gradient slot changes.
2. Propagation: pending gradients are kept per arena index. A node is only
   reached once every consumer has added its contribution, so its Function's
   backward runs exactly once, with the fully summed gradient, no matter how
   many paths lead to it.
"""

import logging
from typing import TYPE_CHECKING, Dict, List

import numpy as np

if TYPE_CHECKING:
    from babygrad.tensor import Tensor

logger = logging.getLogger(__name__)


def topological_order(root: "Tensor") -> List["Tensor"]:
    """
    Return every tensor reachable from ``root`` through parent links, in
    reverse topological order: ``root`` first, and each tensor after all of the
    tensors that consume it.

    Args:
        root (Tensor): The tensor to start from.

    Returns:
        List[Tensor]: The reachable tensors, consumers before producers.
    """
    post_order = []
    visited = set()
    stack = [(root, False)]  # node, has_visited_parents flag

    while stack:
        node, has_visited_parents = stack.pop()
        if node.node_id in visited:
            continue
        if not has_visited_parents:
            # first time we see this node, push it again with has_visited_parents=True
            stack.append((node, True))
            for parent in node.parents():
                if parent.node_id not in visited:
                    stack.append((parent, False))
        else:
            # all of its parents are already in post_order
            visited.add(node.node_id)
            post_order.append(node)

    post_order.reverse()
    return post_order


def backpropagate(
    root: "Tensor", seed: np.ndarray, retain_graph: bool = False
) -> None:
    """
    Propagate ``seed`` from ``root`` back to every ancestor, accumulating into
    each tensor's gradient slot.

    Without ``retain_graph`` every walked Context is released and the walked
    tensors are discarded from their arena, so a loop that builds and
    backpropagates a fresh graph each iteration keeps the arena bounded.

    Args:
        root (Tensor): The tensor ``seed`` is the gradient of.
        seed (np.ndarray): Gradient of the final output w.r.t. ``root``.
        retain_graph (bool, optional): Keep each node's saved Context, and the
            arena's ownership of each node, after the pass. Defaults to False.

    Raises:
        GraphReleasedError: If a node's Context was released by an earlier
            backward pass. This is detected while ordering, before any
            gradient slot is touched.
    """
    order = topological_order(root)
    logger.debug(f"Backward pass over {len(order)} node(s)")

    pending: Dict[int, np.ndarray] = {root.node_id: seed}
    for node in order:
        grad = pending.pop(node.node_id)
        node.accumulate_grad(grad)
        if node.is_leaf():
            continue

        history = node.history
        grads = history.function.run_backward(history.ctx, grad)
        for parent, parent_grad in zip(node.parents(), grads):
            parent_grad = node.backend.unbroadcast(
                np.asarray(parent_grad), parent.shape
            )
            if parent.node_id in pending:
                pending[parent.node_id] = node.backend.add(
                    pending[parent.node_id], parent_grad
                )
            else:
                pending[parent.node_id] = parent_grad

    if retain_graph:
        return
    # consumers come first, so each discard can free the parents after it
    for node in order:
        if not node.is_leaf():
            node.history.ctx.release()
        if node.graph is not None:
            node.graph.discard(node)
