from __future__ import annotations

from pathlib import Path


def ensure_profile_dirs(outdir: Path, refgenomes: Path | None = None) -> Path:
    outdir.mkdir(parents=True, exist_ok=True)
    if refgenomes is not None:
        refgenomes.mkdir(parents=True, exist_ok=True)
    return outdir


def profile_outputs(outdir: Path) -> dict[str, Path]:
    return {
        "profile_tsv": outdir / "fullprofile.tsv",
        "unassigned_tsv": outdir / "norefgenome.tsv",
        "ledger_tsv": outdir / "taxa_w_refgenome.tsv",
        "stats_tsv": outdir / "stats.tsv",
        "meta_json": outdir / "meta.json",
    }
