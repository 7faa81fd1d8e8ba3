"""
Services for CardGraph.

High-level business logic services:
- ContextEngine: Unified interface for context assembly and staleness
- GraphResolver: Parent/child resolution by priority rule
- AncestorCollector: Breadth-first lineage traversal
- ContextCompiler: Ordered context blocks and the generation string
- AttachmentContextLayer: Attachment surrogates
- VirtualAncestorFilter: Lineage filter for semantic-search hits
- ExclusionRegistry: Per-card exclusion sets
- ContextFingerprinter: Context fingerprints
- StalenessEngine: Stale marking, cascading and reconciliation
"""

from cardgraph.services.ancestor_collector import AncestorCollector
from cardgraph.services.attachment_context import AttachmentContextLayer
from cardgraph.services.context_compiler import ContextCompiler, render_context
from cardgraph.services.context_engine import ContextEngine
from cardgraph.services.exclusion_registry import ExclusionRegistry
from cardgraph.services.fingerprint import ContextFingerprinter
from cardgraph.services.graph_resolver import GraphResolver
from cardgraph.services.staleness import StalenessEngine
from cardgraph.services.virtual_filter import VirtualAncestorFilter

__all__ = [
    "ContextEngine",
    "GraphResolver",
    "AncestorCollector",
    "ContextCompiler",
    "render_context",
    "AttachmentContextLayer",
    "VirtualAncestorFilter",
    "ExclusionRegistry",
    "ContextFingerprinter",
    "StalenessEngine",
]
