from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

import requests

from ..core.catalog import GenomeRecord
from ..core.errors import GenomeFetchError
from .textio import open_text

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20


def fasta_length(path: Path) -> int:
    total = 0
    with open_text(path) as fh:
        for line in fh:
            if line.startswith(">"):
                continue
            total += len(line.strip())
    return total


def download_url(record: GenomeRecord) -> str:
    ftp = record.ftp_path.rstrip("/")
    if not ftp or ftp == "na":
        raise GenomeFetchError(f"no download path for accession {record.accession}")
    if ftp.startswith("ftp://"):
        ftp = "https://" + ftp[len("ftp://"):]
    return f"{ftp}/{record.filename}"


def download_file(url: str, dest: Path, timeout: float) -> None:
    tmp = dest.with_name(dest.name + ".part")
    try:
        with requests.get(url, stream=True, timeout=timeout) as resp:
            resp.raise_for_status()
            with tmp.open("wb") as out:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    out.write(chunk)
        os.replace(tmp, dest)
    except requests.RequestException as exc:
        raise GenomeFetchError(f"failed to download {url}: {exc}") from exc
    finally:
        if tmp.exists():
            tmp.unlink()


class LocalGenomeStore:
    """Reference genomes already present as ``<refgenomes>/<name>_genomic.fna.gz``."""

    name = "local"

    def __init__(self, config: Dict[str, Any] | None = None) -> None:
        self.config = config or {}
        self.root = Path(self.config.get("refgenomes", "refgenomes"))
        self._lengths: Dict[str, int] = {}

    def path_for(self, record: GenomeRecord) -> Path:
        return self.root / record.filename

    def ensure(self, record: GenomeRecord) -> Path:
        path = self.path_for(record)
        if not path.exists():
            raise GenomeFetchError(f"reference genome not found: {path}")
        return path

    def genome_length(self, record: GenomeRecord) -> int:
        cached = self._lengths.get(record.filename)
        if cached is not None:
            return cached
        length = fasta_length(self.ensure(record))
        if record.expected_length is not None and record.expected_length != length:
            logger.warning(
                "Genome length of %s is %d, assembly summary lists %d",
                record.accession,
                length,
                record.expected_length,
            )
        self._lengths[record.filename] = length
        return length


class NcbiGenomeStore(LocalGenomeStore):
    """Like :class:`LocalGenomeStore`, downloading missing genomes from NCBI."""

    name = "ncbi"

    def ensure(self, record: GenomeRecord) -> Path:
        path = self.path_for(record)
        if path.exists():
            return path
        self.root.mkdir(parents=True, exist_ok=True)
        url = download_url(record)
        download_file(url, path, timeout=float(self.config.get("download_timeout", 60)))
        logger.info("Downloaded '%s'", record.filename)
        return path
