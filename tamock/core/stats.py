from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .report_parser import ParsedReport
from .scaler import ScaleSummary


@dataclass
class RunTotals:
    assigned_reads: int
    unassigned_reads: int
    genome_count: int
    strain_to_species_reads: int = 0
    species_to_strain_reads: int = 0


def _pct(part: int, whole: int) -> str:
    if not whole:
        return ""
    return f"{100.0 * part / whole:.2f}"


def build_stats(parsed: ParsedReport, totals: RunTotals, scale: Optional[ScaleSummary] = None) -> List[list]:
    all_reads = parsed.unclassified_reads + parsed.classified_reads
    classified = parsed.classified_reads
    rows: List[list] = [
        ["all_reads", all_reads, ""],
        ["classified_reads", classified, _pct(classified, all_reads)],
        ["unclassified_reads", parsed.unclassified_reads, _pct(parsed.unclassified_reads, all_reads)],
    ]
    for name in sorted(parsed.domain_reads):
        reads = parsed.domain_reads[name]
        rows.append([f"domain:{name}", reads, _pct(reads, all_reads)])

    rows.append(["reference_genomes", totals.genome_count, ""])
    rows.append(["assigned_to_reference_genome", totals.assigned_reads, _pct(totals.assigned_reads, classified)])
    rows.append(
        ["assigned_above_species_level", parsed.reads_above_species, _pct(parsed.reads_above_species, classified)]
    )
    rows.append(
        ["assigned_to_other_domains", parsed.reads_unselected_domains, _pct(parsed.reads_unselected_domains, classified)]
    )
    rows.append(["without_reference_genome", totals.unassigned_reads, _pct(totals.unassigned_reads, classified)])
    unaccounted = (
        classified
        - totals.assigned_reads
        - totals.unassigned_reads
        - parsed.reads_above_species
        - parsed.reads_unselected_domains
    )
    if unaccounted:
        rows.append(["unaccounted", unaccounted, _pct(unaccounted, classified)])
    rows.append(["strain_to_species_reads", totals.strain_to_species_reads, ""])
    rows.append(["species_to_strain_reads", totals.species_to_strain_reads, ""])
    if scale is not None and scale.scaled_total:
        rows.append(["scaled_reads", scale.scaled_total, _pct(scale.scaled_total, scale.original_total)])
        rows.append(["scaling_factor", f"{float(scale.factor):.2f}", ""])
    return rows


def write_stats(rows: List[list], path: Path) -> None:
    lines = ["\t".join(["metric", "value", "percent"])]
    for row in rows:
        lines.append("\t".join(str(v) for v in row))
    path.write_text("\n".join(lines) + "\n")
