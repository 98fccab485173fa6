"""Typed partial-load request models.

Each component family takes a tagged selection: every identifier,
only global identifiers, nothing, or an explicit list of names.
Keeping the mode explicit avoids overloading null and false values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Mapping

SelectionMode = Literal["all", "global_only", "none", "explicit"]


@dataclass(frozen=True)
class Selection:
    """Per-family selector of a load request.

    Attributes:
        mode: Selection mode.
        names: Explicit identifiers; for assays these may be layer kinds.
        layers: Explicit assay to layer mapping; empty layers mean all.
    """

    mode: SelectionMode
    names: tuple[str, ...] = ()
    layers: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def all(cls) -> "Selection":
        return cls(mode="all")

    @classmethod
    def global_only(cls) -> "Selection":
        return cls(mode="global_only")

    @classmethod
    def none(cls) -> "Selection":
        return cls(mode="none")

    @classmethod
    def explicit(cls, names: Iterable[str]) -> "Selection":
        """Select named identifiers.

        Args:
            names: Identifiers to select. A bare string selects one name.

        Returns:
            Explicit selection.
        """
        if isinstance(names, str):
            return cls(mode="explicit", names=(names,))
        return cls(mode="explicit", names=tuple(dict.fromkeys(names)))

    @classmethod
    def explicit_layers(cls, layers: Mapping[str, Iterable[str]]) -> "Selection":
        """Select assays together with the layers to read from each.

        Args:
            layers: Assay name to layer kinds; an empty list selects all layers.

        Returns:
            Explicit assay selection.
        """
        normalized = {
            name: (kinds,) if isinstance(kinds, str) else tuple(dict.fromkeys(kinds))
            for name, kinds in layers.items()
        }
        return cls(mode="explicit", layers=normalized)


@dataclass(frozen=True)
class LoadRequest:
    """Partial-load request across every component family.

    Attributes:
        assays: Assay selection; gates every dependent family.
        reductions: Dimensional reduction selection.
        graphs: Nearest-neighbour graph selection; never global.
        images: Spatial image selection.
        meta_data: Whether cell annotations are loaded.
        commands: Whether command history is loaded.
        misc: Whether miscellaneous entries are loaded.
        tools: Whether tool results are loaded.
    """

    assays: Selection = field(default_factory=Selection.all)
    reductions: Selection = field(default_factory=Selection.all)
    graphs: Selection = field(default_factory=Selection.all)
    images: Selection = field(default_factory=Selection.all)
    meta_data: bool = True
    commands: bool = True
    misc: bool = True
    tools: bool = True
