import pytest

from tamock.cli import main


def test_cli_profile_local_store(tmp_path, monkeypatch, profile_inputs):
    report, summary, refs = profile_inputs
    out_root = tmp_path / "out"
    cfg = tmp_path / "profile.yaml"
    cfg.write_text("domains: [B]\ntarget_reads: 90\n")
    argv = [
        "tamock",
        "profile",
        "--kraken-report",
        str(report),
        "--assembly-summary",
        str(summary),
        "--outdir",
        str(out_root),
        "--refgenomes",
        str(refs),
        "--genome-store",
        "local",
        "--config",
        str(cfg),
    ]
    monkeypatch.setattr("sys.argv", argv)

    main()

    profile = (out_root / "fullprofile.tsv").read_text().splitlines()
    assert profile[1].split("\t")[0] == "90"
    assert (out_root / "meta.json").exists()


def test_cli_rn_sim_overrides_config(tmp_path, monkeypatch, profile_inputs):
    report, summary, refs = profile_inputs
    out_root = tmp_path / "out"
    cfg = tmp_path / "profile.yaml"
    cfg.write_text("target_reads: 90\ngenome_store: local\n")
    monkeypatch.setattr(
        "sys.argv",
        ["tamock", "profile", "-k", str(report), "-a", str(summary), "-o", str(out_root),
         "-R", str(refs), "--config", str(cfg), "--rn-sim", "120", "-v"],
    )

    main()

    assert (out_root / "fullprofile.tsv").read_text().splitlines()[1].split("\t")[0] == "120"


def test_cli_requires_subcommand(monkeypatch):
    monkeypatch.setattr("sys.argv", ["tamock"])
    with pytest.raises(SystemExit):
        main()
