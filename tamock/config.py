from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Optional

import yaml

from .core.report_parser import DOMAIN_NAMES

DEFAULT_DOMAINS = frozenset({"Bacteria"})


@dataclass
class ProfileSettings:
    domains: FrozenSet[str] = field(default_factory=lambda: DEFAULT_DOMAINS)
    reassign: bool = True
    target_reads: Optional[int] = None
    refgenomes: str = "refgenomes"
    genome_store: str = "ncbi"
    download_timeout: float = 60.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["domains"] = sorted(self.domains)
        return data


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML object in {path}")
    return data


def parse_domains(value: str | Iterable[str] | None) -> FrozenSet[str]:
    if value is None:
        return DEFAULT_DOMAINS
    items = value.split(",") if isinstance(value, str) else list(value)
    full_names = set(DOMAIN_NAMES.values())
    out = set()
    for item in items:
        item = str(item).strip()
        if not item:
            continue
        if item in DOMAIN_NAMES:
            out.add(DOMAIN_NAMES[item])
        elif item in full_names:
            out.add(item)
        else:
            raise ValueError(
                f"Unknown domain '{item}', valid domains are {', '.join(sorted(DOMAIN_NAMES))} "
                f"or {', '.join(sorted(full_names))}"
            )
    if not out:
        raise ValueError("at least one domain must be selected")
    return frozenset(out)


def resolve_settings(data: Dict[str, Any] | None = None, **overrides: Any) -> ProfileSettings:
    """Merge a config mapping with non-None overrides (typically CLI flags)."""
    merged = dict(data or {})
    merged.update({k: v for k, v in overrides.items() if v is not None})

    target = merged.get("target_reads")
    if target is not None:
        target = int(target)
        if target <= 0:
            raise ValueError(f"target_reads must be positive, got {target}")

    reassign = merged.get("reassign", True)
    if not isinstance(reassign, bool):
        raise ValueError(f"reassign must be true or false, got {reassign!r}")

    return ProfileSettings(
        domains=parse_domains(merged.get("domains")),
        reassign=reassign,
        target_reads=target,
        refgenomes=str(merged.get("refgenomes", "refgenomes")),
        genome_store=str(merged.get("genome_store", "ncbi")),
        download_timeout=float(merged.get("download_timeout", 60.0)),
    )
