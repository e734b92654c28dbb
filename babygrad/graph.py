import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from babygrad.errors import GraphReleasedError

if TYPE_CHECKING:
    from babygrad.tensor import Tensor

logger = logging.getLogger(__name__)


class Graph:
    """
    Arena that owns every `Tensor` created during one forward-graph
    construction.

    A tensor's parents are stored as integer indices into its arena rather
    than as object references, so resolving a parent can only ever hit a
    tensor the arena still owns. Indices are never reused: a backward pass
    that does not retain its graph discards the walked nodes nothing else in
    the arena still refers to, and a later lookup of one of them fails loudly
    instead of returning a stale node.
    Once the whole arena is released every lookup fails.

    Examples:
        >>> from babygrad.graph import Graph
        >>> from babygrad.tensor import Tensor
        >>> with Graph() as graph:
        ...     x = Tensor([2.0])
        ...     y = x * x
        ...     y.backward()
        >>> x.grad.data
        array([4.], dtype=float32)
        >>> graph.released
        True
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name or f"graph-{id(self):x}"
        self._nodes: Optional[Dict[int, "Tensor"]] = {}
        self._next_index = 0
        # index -> parent indices it was registered with, and
        # index -> number of live nodes listing it as a parent
        self._parents: Dict[int, Tuple[int, ...]] = {}
        self._consumers: Dict[int, int] = {}

    @property
    def released(self) -> bool:
        return self._nodes is None

    def add(self, tensor: "Tensor") -> int:
        """
        Take ownership of ``tensor`` and return its index in this arena.
        """
        self._check_alive()
        index = self._next_index
        self._nodes[index] = tensor
        self._next_index += 1

        history = tensor.history
        if history is not None and not history.ctx.released:
            self._parents[index] = history.parents
            for parent in history.parents:
                self._consumers[parent] = self._consumers.get(parent, 0) + 1
        return index

    def node(self, index: int) -> "Tensor":
        self._check_alive()
        try:
            return self._nodes[index]
        except KeyError:
            raise GraphReleasedError(
                f"Node {index} of {self.name} was freed by an earlier backward pass"
            ) from None

    def discard(self, tensor: "Tensor") -> bool:
        """
        Give up ownership of ``tensor`` unless a live node in this arena still
        lists it as a parent.

        A discarded tensor keeps its data and grad, and joins an arena again
        the next time it is used as a Function input.

        Returns:
            bool: Whether the tensor was discarded.
        """
        if tensor.graph is not self or self._nodes is None:
            return False
        index = tensor.node_id
        if self._consumers.get(index, 0) > 0:
            return False

        del self._nodes[index]
        for parent in self._parents.pop(index, ()):
            self._consumers[parent] -= 1
            if self._consumers[parent] == 0:
                del self._consumers[parent]
        tensor.graph = None
        tensor.node_id = None
        return True

    def release(self) -> None:
        """
        Tear down the arena. Tensors already handed out keep their data and
        grad, but their parents can no longer be resolved.
        """
        if self._nodes is None:
            return
        logger.debug(f"Releasing {self.name} ({len(self._nodes)} nodes)")
        self._nodes = None
        self._parents = {}
        self._consumers = {}

    def _check_alive(self) -> None:
        if self._nodes is None:
            raise GraphReleasedError(f"{self.name} has been released")

    def __len__(self) -> int:
        return 0 if self._nodes is None else len(self._nodes)

    def __enter__(self) -> "Graph":
        _graph_stack.append(self)
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        _graph_stack.remove(self)
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else f"{len(self)} nodes"
        return f"Graph(name={self.name!r}, {state})"


_default_graph = Graph(name="default")
_graph_stack: List[Graph] = []


def current_graph() -> Graph:
    """
    Return the arena new leaf tensors are created in: the innermost
    ``with Graph()`` block, or the process-wide default arena.
    """
    if _graph_stack:
        return _graph_stack[-1]
    return _default_graph


def reset_default_graph() -> Graph:
    """
    Release the default arena and replace it with a fresh one.

    A backward pass already frees the nodes it walks. This also drops graphs
    that were built but never backpropagated, or were walked with
    ``retain_graph=True``.
    """
    global _default_graph
    _default_graph.release()
    _default_graph = Graph(name="default")
    return _default_graph
