from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from .errors import ReportFormatError
from .taxon import Taxon, TaxonTree
from ..io.textio import open_text

logger = logging.getLogger(__name__)

DOMAIN_NAMES = {
    "E": "Eukaryota",
    "A": "Archaea",
    "B": "Bacteria",
    "V": "Viruses",
}

ABOVE_GENUS_CODES = {"K", "P", "C", "O", "F"}


@dataclass
class ParsedReport:
    tree: TaxonTree
    reads_above_species: int = 0
    reads_unselected_domains: int = 0
    unclassified_reads: int = 0
    classified_reads: int = 0
    domain_reads: Dict[str, int] = field(default_factory=dict)


@dataclass
class _Row:
    clade_reads: int
    direct_reads: int
    rank: str
    taxid: int
    level: int
    name: str


def _is_strain_rank(rank: str) -> bool:
    return rank == "-" or rank.startswith("S")


def _is_above_genus(rank: str) -> bool:
    if rank in ABOVE_GENUS_CODES:
        return True
    # numbered sub-ranks such as D1, P2 sit above genus as well
    return len(rank) > 1 and rank[0] in ABOVE_GENUS_CODES | {"D"} and rank[1:].isdigit()


def _parse_row(line: str, lineno: int) -> _Row:
    # --report-minimizer-data adds two columns before the rank, so rank/taxid/name are read from the end
    parts = line.split("\t")
    if len(parts) < 6:
        raise ReportFormatError(f"line {lineno}: expected at least 6 tab separated fields, got {len(parts)}")
    name_field = parts[-1]
    try:
        clade_reads = int(parts[1])
        direct_reads = int(parts[2])
        taxid = int(parts[-2])
    except ValueError as exc:
        raise ReportFormatError(f"line {lineno}: non-integer read count or taxid ({exc})") from exc
    rank = parts[-3].strip()
    if not rank:
        raise ReportFormatError(f"line {lineno}: empty rank code")
    level = len(name_field) - len(name_field.lstrip(" "))
    return _Row(
        clade_reads=clade_reads,
        direct_reads=direct_reads,
        rank=rank,
        taxid=taxid,
        level=level,
        name=name_field.strip(),
    )


class ReportParser:
    def __init__(self, domains: Iterable[str]) -> None:
        self.domains = frozenset(domains)

    def parse_file(self, path: Path) -> ParsedReport:
        with open_text(path) as fh:
            return self.parse(fh)

    def parse(self, lines: Iterable[str]) -> ParsedReport:
        result = ParsedReport(tree=TaxonTree())
        in_domain = False
        genus_level = 0
        species_level = 0
        # stack[i] is the open ancestor i levels below the current top-level species
        stack: List[Taxon] = []

        for lineno, raw in enumerate(lines, start=1):
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue
            if lineno == 1 and line.startswith("Percentage"):
                continue
            row = _parse_row(line, lineno)

            if row.rank == "U":
                result.unclassified_reads += row.clade_reads
                continue
            if row.rank == "R":
                result.classified_reads += row.clade_reads
                result.reads_above_species += row.direct_reads
                continue
            if row.rank == "D":
                if row.name in self.domains:
                    result.domain_reads[row.name] = row.clade_reads
                    result.reads_above_species += row.direct_reads
                    in_domain = True
                    species_level = 0
                    stack = []
                    logger.debug("Reading all entries for '%s'", row.name)
                else:
                    in_domain = False
                    result.reads_unselected_domains += row.direct_reads
                    logger.debug("Skipping all entries for '%s'", row.name)
                continue

            if not in_domain:
                if row.name == "cellular organisms":
                    result.reads_above_species += row.direct_reads
                else:
                    result.reads_unselected_domains += row.direct_reads
                continue

            if row.rank == "G":
                genus_level = row.level
                species_level = 0
                stack = []
                result.reads_above_species += row.direct_reads
            elif _is_above_genus(row.rank) or row.level <= genus_level:
                species_level = 0
                stack = []
                result.reads_above_species += row.direct_reads
            elif species_level and row.level > species_level:
                if not _is_strain_rank(row.rank):
                    raise ReportFormatError(
                        f"line {lineno}: unexpected rank '{row.rank}' below species line "
                        f"(level {row.level}, species level {species_level}, taxid {row.taxid})"
                    )
                self._attach(result.tree, stack, species_level, row, lineno)
            elif row.level == genus_level - 2 or (row.level >= genus_level and row.rank == "S"):
                # level == genus_level - 2 is already caught by the level <= genus_level branch
                species_level = row.level
                node = self._new_taxon(row, lineno)
                self._add(result.tree, None, node, lineno)
                stack = [node]
            else:
                result.reads_above_species += row.direct_reads

        logger.info(
            "Parsed %d species/strain taxa (%d top-level species) from report",
            len(result.tree),
            len(result.tree.top_level()),
        )
        return result

    def _attach(self, tree: TaxonTree, stack: List[Taxon], species_level: int, row: _Row, lineno: int) -> None:
        offset = row.level - species_level
        if offset % 2:
            raise ReportFormatError(
                f"line {lineno}: indentation {row.level} is not a whole number of levels below species level {species_level}"
            )
        depth = offset // 2
        if depth > len(stack):
            raise ReportFormatError(
                f"line {lineno}: taxid {row.taxid} skips a level (depth {depth}, deepest open level {len(stack) - 1})"
            )
        del stack[depth:]
        node = self._new_taxon(row, lineno)
        self._add(tree, stack[-1], node, lineno)
        stack.append(node)

    @staticmethod
    def _new_taxon(row: _Row, lineno: int) -> Taxon:
        return Taxon(
            taxid=row.taxid,
            name=row.name,
            rank=row.rank,
            clade_reads=row.clade_reads,
            direct_reads=row.direct_reads,
            reads_rooted=row.direct_reads,
            level=row.level,
            line=str(lineno),
        )

    @staticmethod
    def _add(tree: TaxonTree, parent: Taxon | None, node: Taxon, lineno: int) -> None:
        try:
            if parent is None:
                tree.add_species(node)
            else:
                tree.add_child(parent, node)
        except ValueError as exc:
            raise ReportFormatError(f"line {lineno}: {exc}") from exc
