from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from pathlib import Path

from .catalog import GenomeCatalog
from .emitter import ProfileEmitter
from .reconciler import ReadReconciler
from .report_parser import ReportParser
from .scaler import Scaler
from .stats import RunTotals, build_stats, write_stats
from ..config import ProfileSettings
from ..io.layout import ensure_profile_dirs, profile_outputs

logger = logging.getLogger(__name__)


class ProfileRunner:
    """Report + assembly summary -> abundance profile, one phase after another."""

    def __init__(self, outdir: Path, genome_store) -> None:
        self.outdir = outdir
        self.genome_store = genome_store

    def run(self, *, report: Path, assembly_summary: Path, settings: ProfileSettings) -> dict:
        refgenomes = Path(settings.refgenomes) if settings.genome_store == "ncbi" else None
        ensure_profile_dirs(self.outdir, refgenomes)
        outputs = profile_outputs(self.outdir)
        started_at = datetime.now().astimezone()
        total_start = time.time()
        phases = {}

        start = time.time()
        parsed = ReportParser(settings.domains).parse_file(report)
        phases["parse_report"] = time.time() - start

        start = time.time()
        catalog = GenomeCatalog.from_file(assembly_summary, parsed.tree)
        phases["select_genomes"] = time.time() - start

        start = time.time()
        summary = ReadReconciler(catalog, reassign_strains=settings.reassign).reconcile(parsed.tree)
        summary.ledger.finalize(parsed.tree, catalog)
        phases["reconcile"] = time.time() - start

        emitter = ProfileEmitter(catalog, self.genome_store)
        unassigned = emitter.unassigned_rows(parsed.tree)
        backed = [taxid for taxid, reads in summary.ledger.rows() if reads]
        totals = RunTotals(
            assigned_reads=sum(reads for _, reads in summary.ledger.rows() if reads),
            unassigned_reads=sum(row.reads for row in unassigned),
            genome_count=len(backed),
            strain_to_species_reads=summary.strain_to_species_reads,
            species_to_strain_reads=summary.species_to_strain_reads,
        )
        emitter.write_unassigned(unassigned, outputs["unassigned_tsv"])
        emitter.write_ledger(summary.ledger, outputs["ledger_tsv"])

        scale = None
        if settings.target_reads is not None:
            start = time.time()
            scale = Scaler(settings.target_reads).scale(parsed.tree, catalog)
            phases["scale"] = time.time() - start

        start = time.time()
        rows = emitter.profile_rows(parsed.tree)
        emitter.write_profile(rows, outputs["profile_tsv"])
        phases["write_profile"] = time.time() - start

        stats = build_stats(parsed, totals, scale)
        write_stats(stats, outputs["stats_tsv"])

        finished_at = datetime.now().astimezone()
        meta = {
            "report": str(report),
            "assembly_summary": str(assembly_summary),
            "settings": settings.to_dict(),
            "started_at": started_at.isoformat(timespec="seconds"),
            "finished_at": finished_at.isoformat(timespec="seconds"),
            "elapsed_seconds": time.time() - total_start,
            "phase_seconds": phases,
            "counts": {
                "taxa": len(parsed.tree),
                "top_level_species": len(parsed.tree.top_level()),
                "genomes_selected": len(catalog.records),
                "profile_rows": len(rows),
                "unassigned_taxa": len(unassigned),
                "assigned_reads": totals.assigned_reads,
                "unassigned_reads": totals.unassigned_reads,
                "strain_to_species_reads": summary.strain_to_species_reads,
                "species_to_strain_reads": summary.species_to_strain_reads,
                "strains_kept": len(summary.ledger.kept),
                "strains_moved_to_species": len(summary.ledger.strain_to_species),
                "taxa_redistributed_to_strains": len(summary.ledger.species_to_strain),
            },
            "outputs": {key: str(path) for key, path in outputs.items()},
        }
        outputs["meta_json"].write_text(json.dumps(meta, indent=2))
        logger.info("Wrote profile with %d genomes to %s", len(rows), outputs["profile_tsv"])

        return {"outdir": str(self.outdir), "meta": meta, "stats": stats}
