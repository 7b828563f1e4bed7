from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction

from .apportion import correct_rounding, proportional_shares
from .catalog import GenomeCatalog
from .taxon import TaxonTree

logger = logging.getLogger(__name__)


@dataclass
class ScaleSummary:
    target: int
    original_total: int
    scaled_total: int
    factor: Fraction
    taxa: int


class Scaler:
    """Rescale genome-backed read counts so they add up to exactly ``target``.

    Run only after :class:`~tamock.core.reconciler.ReadReconciler` has finished.
    """

    def __init__(self, target: int) -> None:
        if target <= 0:
            raise ValueError(f"target read count must be positive, got {target}")
        self.target = target

    def scale(self, tree: TaxonTree, catalog: GenomeCatalog) -> ScaleSummary:
        nodes = {
            node.taxid: node
            for node in tree.walk()
            if node.reads_rooted > 0 and catalog.has_genome(node.taxid)
        }
        counts = {taxid: node.reads_rooted for taxid, node in nodes.items()}
        original = sum(counts.values())
        if not original:
            logger.warning("No genome-backed reads to scale to %d", self.target)
            return ScaleSummary(self.target, 0, 0, Fraction(0), 0)

        scaled = proportional_shares(self.target, counts)
        diff = correct_rounding(scaled, self.target, scaled)
        if diff:
            logger.debug("Scaled read counts were off by %+d reads, corrected", diff)
        for taxid, count in scaled.items():
            nodes[taxid].reads_rooted = count

        factor = Fraction(self.target, original)
        logger.info("Scaled %d reads to %d (by %.2fx)", original, self.target, float(factor))
        return ScaleSummary(
            target=self.target,
            original_total=original,
            scaled_total=sum(scaled.values()),
            factor=factor,
            taxa=len(scaled),
        )
