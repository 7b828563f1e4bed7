import gzip
from pathlib import Path

import pytest

REPORT = "\n".join(
    [
        "3.00\t10\t10\tU\t0\tunclassified",
        "97.00\t103\t2\tR\t1\troot",
        "96.00\t101\t3\tR1\t131567\t  cellular organisms",
        "96.00\t98\t1\tD\t2\t    Bacteria",
        "95.00\t97\t2\tG\t561\t      Escherichia",
        "60.00\t60\t10\tS\t562\t        Escherichia coli",
        "30.00\t30\t30\t-\t83333\t          Escherichia coli K-12",
        "20.00\t20\t20\t-\t83334\t          Escherichia coli O157:H7",
        "35.00\t35\t35\tS\t564\t        Escherichia fergusonii",
    ]
) + "\n"


@pytest.fixture
def profile_inputs(tmp_path: Path):
    """Report, assembly summary and a local genome directory for one E. coli strain."""
    report = tmp_path / "sample.kreport"
    report.write_text(REPORT)

    cols = ["na"] * 20
    cols[0] = "GCF_000005845.2"
    cols[4] = "reference genome"
    cols[5] = "83333"
    cols[6] = "562"
    cols[7] = "Escherichia coli str. K-12 substr. MG1655"
    cols[11] = "Complete Genome"
    cols[14] = "2013/09/26"
    cols[19] = "https://ftp.ncbi.nlm.nih.gov/genomes/all/GCF/000/005/845/GCF_000005845.2_ASM584v2"
    summary = tmp_path / "assembly_summary.txt"
    summary.write_text("#   See ftp://ftp.ncbi.nlm.nih.gov/genomes/README_assembly_summary.txt\n" + "\t".join(cols) + "\n")

    refs = tmp_path / "refs"
    refs.mkdir()
    with gzip.open(refs / "GCF_000005845.2_ASM584v2_genomic.fna.gz", "wt") as fh:
        fh.write(">NC_000913.3\nACGT\nACG\n")
    return report, summary, refs
