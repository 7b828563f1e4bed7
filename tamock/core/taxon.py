from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional


@dataclass(eq=False)
class Taxon:
    taxid: int
    name: str
    rank: str
    clade_reads: int = 0
    direct_reads: int = 0
    reads_rooted: int = 0
    level: Optional[int] = None
    line: Optional[str] = None
    children: Dict[int, "Taxon"] = field(default_factory=dict)
    parent: Optional["Taxon"] = field(default=None, repr=False)

    @property
    def is_top_level(self) -> bool:
        return self.parent is None

    def sorted_children(self) -> List["Taxon"]:
        return [self.children[k] for k in sorted(self.children)]

    def walk(self) -> Iterator["Taxon"]:
        """Pre-order traversal of this node and its descendants, children by taxid."""
        yield self
        for child in self.sorted_children():
            yield from child.walk()

    def descendants(self) -> Iterator["Taxon"]:
        for child in self.sorted_children():
            yield from child.walk()

    def subtree_reads(self) -> int:
        return sum(node.reads_rooted for node in self.walk())


class TaxonTree:
    """Top-level species with nested strains, indexed by taxid.

    Children are owned by their parent's ``children`` mapping; ``parent`` is
    only used to walk upwards.
    """

    def __init__(self) -> None:
        self._index: Dict[int, Taxon] = {}
        self._roots: Dict[int, Taxon] = {}

    def __contains__(self, taxid: int) -> bool:
        return taxid in self._index

    def __len__(self) -> int:
        return len(self._index)

    def get(self, taxid: int) -> Optional[Taxon]:
        return self._index.get(taxid)

    def add_species(self, taxon: Taxon) -> Taxon:
        self._register(taxon)
        taxon.parent = None
        self._roots[taxon.taxid] = taxon
        return taxon

    def add_child(self, parent: Taxon, taxon: Taxon) -> Taxon:
        if self._index.get(parent.taxid) is not parent:
            raise KeyError(f"parent taxon not in tree: {parent.taxid}")
        self._register(taxon)
        taxon.parent = parent
        parent.children[taxon.taxid] = taxon
        return taxon

    def _register(self, taxon: Taxon) -> None:
        if taxon.taxid in self._index:
            raise ValueError(f"Duplicate taxid in tree: {taxon.taxid}")
        self._index[taxon.taxid] = taxon

    def top_level(self) -> List[Taxon]:
        return [self._roots[k] for k in sorted(self._roots)]

    def walk(self) -> Iterator[Taxon]:
        for species in self.top_level():
            yield from species.walk()

    def total_reads(self) -> int:
        return sum(node.reads_rooted for node in self.walk())
