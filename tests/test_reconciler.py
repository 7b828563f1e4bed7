import random

import pytest

from tamock.core.catalog import GenomeCatalog, GenomeRecord
from tamock.core.errors import ReconciliationError
from tamock.core.reconciler import ReadReconciler
from tamock.core.taxon import Taxon, TaxonTree


def record(taxid, species_taxid=None):
    return GenomeRecord(
        taxid=taxid,
        species_taxid=species_taxid or taxid,
        accession=f"GCF_{taxid}.1",
        organism_name=f"organism {taxid}",
        assembly_level=1,
        release_date="20200101",
        category="na",
        ftp_path=f"https://example.org/GCF_{taxid}.1_ASM",
    )


def build(species_reads, strains=(), genomes=(), references=None):
    """species_reads: {taxid: reads}; strains: [(parent, taxid, reads)]; genomes: taxids with a record."""
    tree = TaxonTree()
    for taxid, reads in species_reads.items():
        tree.add_species(Taxon(taxid=taxid, name=f"sp{taxid}", rank="S", reads_rooted=reads))
    for parent, taxid, reads in strains:
        tree.add_child(tree.get(parent), Taxon(taxid=taxid, name=f"st{taxid}", rank="-", reads_rooted=reads))
    catalog = GenomeCatalog()
    for taxid in genomes:
        catalog.records[taxid] = record(taxid)
    catalog.species_reference.update(references or {})
    return tree, catalog


def reads(tree, taxid):
    return tree.get(taxid).reads_rooted


def test_species_reads_split_in_strain_ratio():
    tree, catalog = build({562: 100}, strains=[(562, 1, 30), (562, 2, 10)], genomes=[1, 2])

    summary = ReadReconciler(catalog).reconcile(tree)

    assert reads(tree, 562) == 0
    # shares of 75 and 25 on top of the strains' own 30 and 10
    assert reads(tree, 1) == 105
    assert reads(tree, 2) == 35
    assert summary.species_to_strain_reads == 100
    assert summary.species_to_strain_count == 1


def test_rounding_shortfall_goes_to_lowest_taxid_on_tie():
    tree, catalog = build({562: 10}, strains=[(562, 101, 1), (562, 102, 1), (562, 103, 1)], genomes=[101, 102, 103])

    ReadReconciler(catalog).reconcile(tree)

    assert [reads(tree, t) for t in (101, 102, 103)] == [5, 4, 4]
    assert reads(tree, 562) == 0


def test_rounding_overshoot_removed_from_largest_first():
    strains = [(562, 11, 1), (562, 12, 1), (562, 13, 1), (562, 14, 1)]
    tree, catalog = build({562: 2}, strains=strains, genomes=[11, 12, 13, 14])

    ReadReconciler(catalog).reconcile(tree)

    # each share rounds 0.5 up to 1 (sum 4), two units are taken back
    assert [reads(tree, t) for t in (11, 12, 13, 14)] == [1, 1, 2, 2]


def test_strain_without_genome_promoted_to_species():
    tree, catalog = build({562: 0}, strains=[(562, 83334, 50)])

    summary = ReadReconciler(catalog).reconcile(tree)

    assert reads(tree, 562) == 50
    assert reads(tree, 83334) == 0
    assert summary.strain_to_species_reads == 50
    assert summary.ledger.strain_to_species == {83334: 50}
    # no genome anywhere, so the reads stay stranded on the species
    assert summary.unassignable == [562]


def test_strain_promotion_disabled_keeps_reads_on_strain():
    tree, catalog = build({562: 0}, strains=[(562, 83334, 50)])

    summary = ReadReconciler(catalog, reassign_strains=False).reconcile(tree)

    assert reads(tree, 562) == 0
    assert reads(tree, 83334) == 50
    assert summary.strain_to_species_reads == 0
    assert summary.unassignable == [83334]


def test_promoted_reads_redistributed_to_strain_with_genome():
    tree, catalog = build({562: 0}, strains=[(562, 83334, 20), (562, 83333, 10)], genomes=[83333])

    summary = ReadReconciler(catalog).reconcile(tree)
    summary.ledger.finalize(tree, catalog)

    assert reads(tree, 562) == 0
    assert reads(tree, 83334) == 0
    assert reads(tree, 83333) == 30
    assert summary.ledger.kept == {83333}
    assert summary.ledger.rows() == [(562, 0), (83333, 30), (83334, 0)]


def test_promotion_climbs_through_nested_strains():
    strains = [(562, 200, 0), (200, 201, 7)]
    tree, catalog = build({562: 3}, strains=strains, genomes=[562])

    ReadReconciler(catalog).reconcile(tree)

    assert reads(tree, 201) == 0
    assert reads(tree, 200) == 0
    assert reads(tree, 562) == 10


def test_species_reads_stay_when_only_reference_strain_present():
    tree, catalog = build({562: 40}, strains=[(562, 83333, 0)], genomes=[83333], references={562: 83333})

    summary = ReadReconciler(catalog).reconcile(tree)
    summary.ledger.finalize(tree, catalog)

    assert reads(tree, 562) == 40
    assert reads(tree, 83333) == 0
    assert catalog.resolve(562).taxid == 83333
    assert summary.ledger.rows() == [(562, 40)]
    assert summary.unassignable == []


def test_nested_strain_reads_pushed_to_substrains():
    strains = [(562, 300, 0), (300, 301, 0), (300, 302, 0)]
    tree, catalog = build({562: 0}, strains=strains, genomes=[300, 301, 302])
    tree.get(300).reads_rooted = 9
    tree.get(301).reads_rooted = 2
    tree.get(302).reads_rooted = 1

    ReadReconciler(catalog).reconcile(tree)

    assert reads(tree, 300) == 0
    assert reads(tree, 301) == 8
    assert reads(tree, 302) == 4


def test_dangling_species_reference_is_internal_error():
    tree, catalog = build({562: 12}, references={562: 999})

    with pytest.raises(ReconciliationError, match="562"):
        ReadReconciler(catalog).reconcile(tree)


@pytest.mark.parametrize("seed", range(8))
@pytest.mark.parametrize("reassign", [True, False])
def test_reads_conserved_per_species_subtree(seed, reassign):
    rng = random.Random(seed)
    tree = TaxonTree()
    catalog = GenomeCatalog()
    next_taxid = 1000
    open_nodes = []
    for _ in range(5):
        node = tree.add_species(Taxon(taxid=next_taxid, name="sp", rank="S", reads_rooted=rng.randint(0, 500)))
        open_nodes.append(node)
        next_taxid += 1
    for _ in range(40):
        parent = rng.choice(open_nodes)
        node = tree.add_child(parent, Taxon(taxid=next_taxid, name="st", rank="-", reads_rooted=rng.randint(0, 200)))
        open_nodes.append(node)
        next_taxid += 1
    for node in tree.walk():
        if rng.random() < 0.4:
            catalog.records[node.taxid] = record(node.taxid)
    before = {sp.taxid: sp.subtree_reads() for sp in tree.top_level()}

    ReadReconciler(catalog, reassign_strains=reassign).reconcile(tree)

    assert {sp.taxid: sp.subtree_reads() for sp in tree.top_level()} == before
    assert all(node.reads_rooted >= 0 for node in tree.walk())
