from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .apportion import correct_rounding, proportional_shares
from .catalog import GenomeCatalog
from .errors import ReconciliationError
from .taxon import Taxon, TaxonTree

logger = logging.getLogger(__name__)


@dataclass
class ReassignmentLedger:
    """Bookkeeping of which taxa had reads kept, moved up or moved down.

    ``backed`` maps every taxid whose reads end on a genome (directly or
    after reassignment) to its read count once :meth:`finalize` has run.
    """

    kept: set = field(default_factory=set)
    strain_to_species: Dict[int, int] = field(default_factory=dict)
    species_to_strain: Dict[int, int] = field(default_factory=dict)
    backed: Dict[int, Optional[int]] = field(default_factory=dict)

    def finalize(self, tree: TaxonTree, catalog: GenomeCatalog) -> None:
        for node in tree.walk():
            if node.reads_rooted > 0 and catalog.has_genome(node.taxid):
                self.backed[node.taxid] = node.reads_rooted

    def rows(self) -> List[tuple]:
        return [(taxid, self.backed[taxid]) for taxid in sorted(self.backed)]


@dataclass
class ReconcileSummary:
    ledger: ReassignmentLedger
    strain_to_species_reads: int = 0
    strain_to_species_count: int = 0
    species_to_strain_reads: int = 0
    species_to_strain_count: int = 0
    unassignable: List[int] = field(default_factory=list)


class ReadReconciler:
    def __init__(self, catalog: GenomeCatalog, *, reassign_strains: bool = True) -> None:
        self.catalog = catalog
        self.reassign_strains = reassign_strains

    def reconcile(self, tree: TaxonTree) -> ReconcileSummary:
        summary = ReconcileSummary(ledger=ReassignmentLedger())
        species = tree.top_level()
        before = {node.taxid: node.subtree_reads() for node in species}

        for node in species:
            for child in node.sorted_children():
                self._push_up(child, summary)
        for node in species:
            self._push_down(node, summary)

        for node in species:
            after = node.subtree_reads()
            if after != before[node.taxid]:
                raise ReconciliationError(
                    f"read count of species {node.taxid} changed from {before[node.taxid]} to {after}"
                )

        if summary.strain_to_species_reads:
            logger.info(
                "Reassigned %d reads of %d strains without reference genome to their parent",
                summary.strain_to_species_reads,
                summary.strain_to_species_count,
            )
        if summary.species_to_strain_reads:
            logger.info(
                "Distributed %d species-level reads of %d taxa to their strains",
                summary.species_to_strain_reads,
                summary.species_to_strain_count,
            )
        return summary

    def _push_up(self, strain: Taxon, summary: ReconcileSummary) -> None:
        for child in strain.sorted_children():
            self._push_up(child, summary)

        if strain.reads_rooted <= 0:
            return
        if self.catalog.has_genome(strain.taxid):
            summary.ledger.kept.add(strain.taxid)
            summary.ledger.backed.setdefault(strain.taxid, None)
            return
        if not self.reassign_strains:
            return

        parent = strain.parent
        moved = strain.reads_rooted
        parent.reads_rooted += moved
        strain.reads_rooted = 0
        summary.ledger.strain_to_species[strain.taxid] = moved
        summary.strain_to_species_reads += moved
        summary.strain_to_species_count += 1
        logger.debug(
            "(st2sp) moved %d reads from strain %s '%s' without genome to parent %s '%s' (now %d)",
            moved,
            strain.taxid,
            strain.name,
            parent.taxid,
            parent.name,
            parent.reads_rooted,
        )

    def _push_down(self, node: Taxon, summary: ReconcileSummary) -> None:
        if node.reads_rooted > 0:
            if node.children:
                self._distribute(node, summary)
            elif self._resolves(node):
                summary.ledger.backed[node.taxid] = 0
            else:
                summary.unassignable.append(node.taxid)
                logger.debug("(unassigned) no reference genome for %s with %d reads", node.taxid, node.reads_rooted)

        for child in node.sorted_children():
            self._push_down(child, summary)

    def _distribute(self, node: Taxon, summary: ReconcileSummary) -> None:
        ledger = summary.ledger
        weights = {child.taxid: child.reads_rooted for child in node.sorted_children() if child.reads_rooted > 0}

        if weights:
            total = node.reads_rooted
            shares = proportional_shares(total, weights)
            ranking = {taxid: weights[taxid] + share for taxid, share in shares.items()}
            diff = correct_rounding(shares, total, ranking)
            if diff:
                logger.debug("(correction) shares for %s were off by %+d reads", node.taxid, diff)
            for taxid, share in shares.items():
                node.children[taxid].reads_rooted += share
                if share:
                    logger.debug("(sp2st) moved %d reads from %s to strain %s", share, node.taxid, taxid)
            node.reads_rooted = 0
            ledger.species_to_strain[node.taxid] = total
            ledger.backed[node.taxid] = 0
            self._mark_moved_strains(node, ledger)
            summary.species_to_strain_reads += total
            summary.species_to_strain_count += 1
        elif self._resolves(node):
            ledger.backed.setdefault(node.taxid, node.reads_rooted)
            self._mark_moved_strains(node, ledger)
        else:
            summary.unassignable.append(node.taxid)
            logger.debug(
                "(unassigned) no reference genome for %s '%s' with %d reads", node.taxid, node.name, node.reads_rooted
            )

    def _resolves(self, node: Taxon) -> bool:
        if self.catalog.has_genome(node.taxid):
            return True
        if node.taxid in self.catalog.records or node.taxid in self.catalog.species_reference:
            raise ReconciliationError(
                f"taxid {node.taxid} has a catalog entry but no reference genome could be resolved for it"
            )
        return False

    @staticmethod
    def _mark_moved_strains(node: Taxon, ledger: ReassignmentLedger) -> None:
        # strains pushed up into this node now have their reads backed by a genome
        for taxid in node.children:
            if taxid in ledger.strain_to_species:
                ledger.backed[taxid] = 0
