"""In-memory FFmpeg filter graph: typed pads, filter nodes, text rendering.

The composition builds a FilterGraph node by node and only turns it into the
``-filter_complex`` string at the very end, so ordering and labelling rules
can be checked on the structure itself.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
from pydantic import BaseModel


class StreamKind(str, Enum):
    """Media type carried by an edge of the graph."""

    VIDEO = "v"
    AUDIO = "a"


class Pad(BaseModel):
    """An edge of the graph: an input stream or a labelled filter output."""

    label: str
    kind: StreamKind
    input_index: Optional[int] = None

    model_config = {"frozen": True}

    @property
    def is_input(self) -> bool:
        return self.input_index is not None

    def ref(self) -> str:
        """Bracketed reference used in filter statements."""
        return f"[{self.label}]"

    def map_spec(self) -> str:
        """Value for ``-map`` selecting this stream."""
        if self.is_input:
            return self.label
        return f"[{self.label}]"


class FilterNode(BaseModel):
    """One filter statement: ``[in...]expr[out...]``."""

    expr: str
    kind: StreamKind
    inputs: Tuple[Pad, ...]
    outputs: Tuple[Pad, ...]

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        """First filter name of the expression (e.g. "overlay")."""
        return self.expr.split("=", 1)[0].split(",", 1)[0]

    def render(self) -> str:
        ins = "".join(p.ref() for p in self.inputs)
        outs = "".join(p.ref() for p in self.outputs)
        return f"{ins}{self.expr}{outs}"


class GraphError(ValueError):
    """Raised when a graph is wired inconsistently."""


class FilterGraph:
    """Ordered DAG of filter nodes."""

    def __init__(self):
        self.nodes: List[FilterNode] = []
        self.outputs: List[Pad] = []
        self._produced: Dict[str, Pad] = {}

    def __len__(self) -> int:
        return len(self.nodes)

    def __bool__(self) -> bool:
        return bool(self.nodes)

    @staticmethod
    def input(index: int, kind: StreamKind = StreamKind.VIDEO) -> Pad:
        """Pad for stream ``kind`` of FFmpeg input ``index``."""
        return Pad(label=f"{index}:{kind.value}", kind=kind, input_index=index)

    def add(
        self,
        expr: str,
        inputs: Sequence[Pad],
        label: str,
        kind: Optional[StreamKind] = None,
    ) -> Pad:
        """Append a single-output filter and return its output pad."""
        return self.add_multi(expr, inputs, [label], kind)[0]

    def add_multi(
        self,
        expr: str,
        inputs: Sequence[Pad],
        labels: Sequence[str],
        kind: Optional[StreamKind] = None,
    ) -> Tuple[Pad, ...]:
        """
        Append a filter with one or more outputs.

        Args:
            expr: Filter expression (may be a comma-joined chain)
            inputs: Pads consumed by the filter
            labels: Output labels, must be new to the graph
            kind: Stream kind of the node; defaults to the first input's kind

        Returns:
            The output pads, in label order
        """
        if not inputs:
            raise GraphError(f"Filter '{expr}' has no inputs")
        node_kind = kind or inputs[0].kind
        for pad in inputs:
            if pad.kind != node_kind:
                raise GraphError(
                    f"Filter '{expr}' mixes {pad.kind.name} input {pad.label} "
                    f"into a {node_kind.name} node"
                )
            if not pad.is_input and pad.label not in self._produced:
                raise GraphError(f"Filter '{expr}' consumes unknown label {pad.label}")

        outputs = []
        for label in labels:
            if label in self._produced:
                raise GraphError(f"Duplicate filter label: {label}")
            pad = Pad(label=label, kind=node_kind)
            self._produced[label] = pad
            outputs.append(pad)

        node = FilterNode(
            expr=expr, kind=node_kind, inputs=tuple(inputs), outputs=tuple(outputs)
        )
        self.nodes.append(node)
        return node.outputs

    def mark_output(self, pad: Pad) -> Pad:
        """Declare a pad as a graph output (consumed by ``-map``)."""
        self.outputs.append(pad)
        return pad

    def producer(self, label: str) -> Optional[FilterNode]:
        """Node producing ``label``, if any."""
        for node in self.nodes:
            if any(p.label == label for p in node.outputs):
                return node
        return None

    def consumers(self, pad: Pad) -> List[FilterNode]:
        """Nodes reading ``pad``, in graph order."""
        return [n for n in self.nodes if pad in n.inputs]

    def validate(self) -> None:
        """
        Check link invariants.

        Every labelled output must be consumed exactly once, either by a
        later node or as a declared graph output.
        """
        position = {}
        for i, node in enumerate(self.nodes):
            for pad in node.outputs:
                position[pad.label] = i

        uses: Dict[str, int] = {label: 0 for label in position}
        for i, node in enumerate(self.nodes):
            for pad in node.inputs:
                if pad.is_input:
                    continue
                if position.get(pad.label, len(self.nodes)) >= i:
                    raise GraphError(f"Label {pad.label} consumed before it is produced")
                uses[pad.label] += 1
        for pad in self.outputs:
            if not pad.is_input:
                uses[pad.label] = uses.get(pad.label, 0) + 1

        for label, count in uses.items():
            if count != 1:
                raise GraphError(f"Label {label} is consumed {count} times")

    def render(self) -> str:
        """Serialize to the ``-filter_complex`` value."""
        return ";".join(node.render() for node in self.nodes)
