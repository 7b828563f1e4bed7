from .base import Registry
from ..io.genomes import LocalGenomeStore, NcbiGenomeStore

GENOME_STORES = Registry("genome store")
GENOME_STORES.register("ncbi", NcbiGenomeStore)
GENOME_STORES.register("local", LocalGenomeStore)
