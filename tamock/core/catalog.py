from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from .errors import AssemblySummaryError
from .taxon import Taxon, TaxonTree
from ..io.textio import open_text

logger = logging.getLogger(__name__)

ASSEMBLY_LEVELS = {
    "Complete Genome": 1,
    "Chromosome": 2,
    "Scaffold": 3,
    "Contig": 4,
}

CATEGORY_RANK = {
    "reference genome": 2,
    "representative genome": 1,
    "na": 0,
}

MIN_COLUMNS = 20
GENOME_SIZE_COLUMN = 25


@dataclass(frozen=True)
class GenomeRecord:
    taxid: int
    species_taxid: int
    accession: str
    organism_name: str
    assembly_level: int
    release_date: str
    category: str
    ftp_path: str
    expected_length: Optional[int] = None

    @property
    def priority(self) -> Tuple[int, int, str]:
        return (CATEGORY_RANK.get(self.category, 0), -self.assembly_level, self.release_date)

    @property
    def basename(self) -> str:
        return self.ftp_path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def filename(self) -> str:
        return f"{self.basename}_genomic.fna.gz"


def compare_records(candidate: GenomeRecord, incumbent: GenomeRecord) -> int:
    """1 if candidate outranks incumbent, -1 if it loses, 0 on a full tie."""
    if candidate.priority > incumbent.priority:
        return 1
    if candidate.priority < incumbent.priority:
        return -1
    return 0


def parse_assembly_row(line: str, lineno: int) -> GenomeRecord:
    parts = line.rstrip("\r\n").split("\t")
    if len(parts) < MIN_COLUMNS:
        raise AssemblySummaryError(
            f"line {lineno}: expected at least {MIN_COLUMNS} tab separated fields, got {len(parts)}"
        )
    level_label = parts[11].strip()
    level = ASSEMBLY_LEVELS.get(level_label)
    if level is None:
        raise AssemblySummaryError(f"line {lineno}: unknown assembly level '{level_label}'")
    try:
        taxid = int(parts[5])
        species_taxid = int(parts[6])
    except ValueError as exc:
        raise AssemblySummaryError(f"line {lineno}: non-integer taxid or species_taxid ({exc})") from exc
    expected_length = None
    if len(parts) > GENOME_SIZE_COLUMN and parts[GENOME_SIZE_COLUMN].strip().isdigit():
        expected_length = int(parts[GENOME_SIZE_COLUMN])
    return GenomeRecord(
        taxid=taxid,
        species_taxid=species_taxid,
        accession=parts[0].strip(),
        organism_name=parts[7].strip(),
        assembly_level=level,
        release_date=parts[14].strip().replace("/", ""),
        category=parts[4].strip(),
        ftp_path=parts[19].strip(),
        expected_length=expected_length,
    )


class GenomeCatalog:
    def __init__(self) -> None:
        self.records: Dict[int, GenomeRecord] = {}
        # species taxid -> taxid of the strain (or the species itself) whose genome represents it
        self.species_reference: Dict[int, int] = {}

    @classmethod
    def from_file(cls, path: Path, tree: TaxonTree) -> "GenomeCatalog":
        with open_text(path) as fh:
            return cls.build(fh, tree)

    @classmethod
    def build(cls, lines: Iterable[str], tree: TaxonTree) -> "GenomeCatalog":
        catalog = cls()
        for lineno, raw in enumerate(lines, start=1):
            if raw.startswith("#") or not raw.strip():
                continue
            record = parse_assembly_row(raw, lineno)
            if record.taxid in tree:
                if catalog._offer(record, lineno):
                    catalog._offer_reference(record, lineno)
            elif record.species_taxid in tree:
                if catalog._offer(record, lineno):
                    catalog._offer_reference(record, lineno)
                # keep the strain around as a possible reference for species-level reads
                species = tree.get(record.species_taxid)
                tree.add_child(
                    species,
                    Taxon(
                        taxid=record.taxid,
                        name=record.organism_name,
                        rank="-",
                        line=f"NCBI-{lineno}",
                    ),
                )
        catalog._elect_missing_references(tree)
        logger.info(
            "Selected %d reference genomes, %d species references",
            len(catalog.records),
            len(catalog.species_reference),
        )
        return catalog

    def resolve(self, taxid: int) -> Optional[GenomeRecord]:
        record = self.records.get(taxid)
        if record is not None:
            return record
        reference = self.species_reference.get(taxid)
        if reference is None:
            return None
        return self.records.get(reference)

    def has_genome(self, taxid: int) -> bool:
        return self.resolve(taxid) is not None

    def _offer(self, record: GenomeRecord, lineno: int) -> bool:
        incumbent = self.records.get(record.taxid)
        if incumbent is None:
            self.records[record.taxid] = record
            return True
        verdict = compare_records(record, incumbent)
        if verdict > 0:
            self.records[record.taxid] = record
            return True
        if verdict == 0:
            logger.warning(
                "Multiple genomes with same category/completeness/date for taxid %s: "
                "keeping '%s', dropping '%s' (line %d)",
                record.taxid,
                incumbent.accession,
                record.accession,
                lineno,
            )
        return False

    def _offer_reference(self, record: GenomeRecord, lineno: int) -> None:
        current = self.species_reference.get(record.species_taxid)
        if current is None or current == record.taxid:
            self.species_reference[record.species_taxid] = record.taxid
            return
        incumbent = self.records[current]
        verdict = compare_records(record, incumbent)
        if verdict > 0:
            self.species_reference[record.species_taxid] = record.taxid
        elif verdict == 0:
            logger.warning(
                "Multiple reference strains with same category/completeness/date for species %s: "
                "keeping '%s', dropping '%s' (line %d)",
                record.species_taxid,
                incumbent.accession,
                record.accession,
                lineno,
            )

    def _elect_missing_references(self, tree: TaxonTree) -> None:
        for node in tree.walk():
            if node.taxid in self.species_reference:
                continue
            if node.taxid in self.records:
                if node.is_top_level:
                    self.species_reference[node.taxid] = node.taxid
                continue
            candidates = [d for d in node.descendants() if d.taxid in self.records]
            if not any(d.reads_rooted == 0 for d in candidates):
                continue
            best = candidates[0]
            for strain in candidates[1:]:
                verdict = compare_records(self.records[strain.taxid], self.records[best.taxid])
                if verdict > 0:
                    best = strain
                elif verdict == 0:
                    logger.warning(
                        "Multiple zero-read reference strains with same category/completeness/date "
                        "for taxid %s: keeping '%s', dropping '%s'",
                        node.taxid,
                        self.records[best.taxid].accession,
                        self.records[strain.taxid].accession,
                    )
            self.species_reference[node.taxid] = best.taxid
            logger.debug("Elected strain %s as reference for taxid %s", best.taxid, node.taxid)
