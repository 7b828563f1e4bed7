from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .catalog import GenomeCatalog
from .reconciler import ReassignmentLedger
from .taxon import TaxonTree

logger = logging.getLogger(__name__)

PROFILE_HEADER = ["Abundance", "NCBI TaxID", "Name", "Reference filename", "Reference genome length"]
UNASSIGNED_HEADER = ["NCBI TaxID", "Reads assigned", "Name"]
LEDGER_HEADER = ["taxid", "reads_after_reassignment"]


@dataclass
class ProfileRow:
    reads: int
    taxid: int
    organism_name: str
    filename: str
    genome_length: int


@dataclass
class UnassignedRow:
    taxid: int
    reads: int
    name: str


def _write_table(path: Path, header: List[str], rows: List[list]) -> None:
    lines = ["\t".join(header)]
    for row in rows:
        lines.append("\t".join("" if v is None else str(v) for v in row))
    path.write_text("\n".join(lines) + "\n")


class ProfileEmitter:
    """Turn the reconciled tree into the tables read by the simulation step.

    ``genome_store`` provides ``genome_length(record)``, fetching the genome
    first when needed.
    """

    def __init__(self, catalog: GenomeCatalog, genome_store) -> None:
        self.catalog = catalog
        self.genome_store = genome_store

    def unassigned_rows(self, tree: TaxonTree) -> List[UnassignedRow]:
        return [
            UnassignedRow(taxid=node.taxid, reads=node.reads_rooted, name=node.name)
            for node in tree.walk()
            if node.reads_rooted > 0 and not self.catalog.has_genome(node.taxid)
        ]

    def profile_rows(self, tree: TaxonTree) -> List[ProfileRow]:
        rows = []
        for node in tree.walk():
            if node.reads_rooted <= 0:
                continue
            record = self.catalog.resolve(node.taxid)
            if record is None:
                continue
            rows.append(
                ProfileRow(
                    reads=node.reads_rooted,
                    taxid=node.taxid,
                    organism_name=record.organism_name,
                    filename=record.filename,
                    genome_length=self.genome_store.genome_length(record),
                )
            )
        logger.info("Profile lists %d reference genomes", len(rows))
        return rows

    @staticmethod
    def write_profile(rows: List[ProfileRow], path: Path) -> None:
        _write_table(
            path,
            PROFILE_HEADER,
            [[r.reads, r.taxid, r.organism_name, r.filename, r.genome_length] for r in rows],
        )

    @staticmethod
    def write_unassigned(rows: List[UnassignedRow], path: Path) -> None:
        _write_table(path, UNASSIGNED_HEADER, [[r.taxid, r.reads, r.name] for r in rows])

    @staticmethod
    def write_ledger(ledger: ReassignmentLedger, path: Path) -> None:
        _write_table(path, LEDGER_HEADER, [list(row) for row in ledger.rows()])
