"""Materialization set model and delta computation.

A materialization set is the fully resolved list of components one
materialize or append call reads. Subtracting the components already
present in an in-memory object yields the delta an append must read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from core.types import LoadedComponents


@dataclass(frozen=True)
class MaterializationSet:
    """Concrete components to read for one operation.

    Attributes:
        assays: Assay name to the layer kinds to read.
        reductions: Reduction names to read.
        graphs: Graph names to read.
        images: Image names to read.
        commands: Command names to read.
        misc: Misc keys to read.
        tools: Tool keys to read.
        meta_data: Whether cell annotations are read.
    """

    assays: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    reductions: tuple[str, ...] = ()
    graphs: tuple[str, ...] = ()
    images: tuple[str, ...] = ()
    commands: tuple[str, ...] = ()
    misc: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    meta_data: bool = False

    def is_empty(self) -> bool:
        """Return whether the set selects nothing."""
        return not (
            any(self.assays.values())
            or self.reductions
            or self.graphs
            or self.images
            or self.commands
            or self.misc
            or self.tools
            or self.meta_data
        )

    def subtract(self, loaded: LoadedComponents) -> "MaterializationSet":
        """Drop every component that is already loaded.

        Args:
            loaded: Components present in the target object.

        Returns:
            Delta set holding only missing components.
        """
        assays: dict[str, tuple[str, ...]] = {}
        for name, layers in self.assays.items():
            present = loaded.assays.get(name, frozenset())
            missing = tuple(layer for layer in layers if layer not in present)
            if missing:
                assays[name] = missing
        return MaterializationSet(
            assays=assays,
            reductions=_missing(self.reductions, loaded.reductions),
            graphs=_missing(self.graphs, loaded.graphs),
            images=_missing(self.images, loaded.images),
            commands=_missing(self.commands, loaded.commands),
            misc=_missing(self.misc, loaded.misc),
            tools=_missing(self.tools, loaded.tools),
            meta_data=self.meta_data and not loaded.meta_data,
        )

    def describe(self) -> dict[str, object]:
        """Return a log-friendly summary of the selected components."""
        return {
            "assays": {name: list(layers) for name, layers in self.assays.items()},
            "reductions": list(self.reductions),
            "graphs": list(self.graphs),
            "images": list(self.images),
            "commands": list(self.commands),
            "misc": list(self.misc),
            "tools": list(self.tools),
            "meta_data": self.meta_data,
        }


def _missing(names: tuple[str, ...], present: frozenset[str]) -> tuple[str, ...]:
    return tuple(name for name in names if name not in present)
