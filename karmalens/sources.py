"""
Registry of known simulation exports and pattern corpora.

Each entry declares the raw JSON shape its file uses. Adding a new producer
means adding an entry here (and, for a brand-new shape, one normalizer in
``karmalens.normalizer``), never a new branch in shared detection logic.
"""

from typing import Dict, List, Optional

from .schemas import SchemaKind, SimulationSource


SIMULATION_SOURCES: List[SimulationSource] = [
    SimulationSource(
        id="ep-closed-loop",
        filename="ep_driven_closed_loop_results.json",
        label="EP Closed Loop",
        narrative_id="ep-driven-closed-loop",
    ),
    SimulationSource(
        id="five-domain",
        filename="ep_five_domain_multi_life_results.json",
        label="Five-Domain EP",
        narrative_id="ep-five-domain-multi-life",
    ),
    SimulationSource(
        id="maturation-web4",
        filename="maturation_demo_results_web4.json",
        label="Maturation (Web4)",
        narrative_id="maturation-web4",
    ),
    SimulationSource(
        id="maturation-none",
        filename="maturation_demo_results_none.json",
        label="Maturation (Baseline)",
        narrative_id="maturation-none",
    ),
    SimulationSource(
        id="multi-life-policy",
        filename="multi_life_with_policy.json",
        label="Multi-Life Policy",
        narrative_id="multi-life-policy",
        schema_kind=SchemaKind.NESTED_MULTI_LIFE,
        nested_key="multi_life",
    ),
    SimulationSource(
        id="one-life-policy",
        filename="one_life_with_policy.json",
        label="Single-Life Policy",
        narrative_id="one-life-policy",
        schema_kind=SchemaKind.SINGLE_LIFE_SUMMARY,
    ),
    SimulationSource(
        id="trust-network",
        filename="trust_network_evolution.json",
        label="Trust Network",
        schema_kind=SchemaKind.NETWORK_LOG,
    ),
]


# Corpus id -> exported pattern corpus file
PATTERN_CORPORA: Dict[str, str] = {
    "web4_native": "ep_pattern_corpus_web4_native.json",
    "integrated_federation": "ep_pattern_corpus_integrated_federation.json",
    "phase3_contextual": "ep_pattern_corpus_phase3_contextual.json",
}


def get_source(source_id: str, sources: Optional[List[SimulationSource]] = None) -> Optional[SimulationSource]:
    """Return the registry entry with the given id, or None."""
    for source in sources if sources is not None else SIMULATION_SOURCES:
        if source.id == source_id:
            return source
    return None


def life_sources(sources: Optional[List[SimulationSource]] = None) -> List[SimulationSource]:
    """Registry entries whose exports normalize into LifeRecords (excludes network logs)."""
    return [
        source
        for source in (sources if sources is not None else SIMULATION_SOURCES)
        if source.schema_kind is not SchemaKind.NETWORK_LOG
    ]
