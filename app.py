"""
CardGraph FastAPI Application

A REST API server for the CardGraph context engine.
Provides endpoints for editing the card graph, previewing assembled context,
and driving the generation lifecycle with staleness tracking.
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from cardgraph.config import Config
from cardgraph.core.graph_store.memory_store import InMemoryCardStore
from cardgraph.core.library.memory_library import InMemoryDocumentLibrary
from cardgraph.core.search.memory_index import InMemorySearchIndex
from cardgraph.models.attachment import Attachment
from cardgraph.models.card import Card, CardKind
from cardgraph.models.context import ContextBlock, SearchCandidate
from cardgraph.models.staleness import RegenerationPlan, StaleReport
from cardgraph.services.context_engine import ContextEngine
from cardgraph.utils.exceptions import (
    CardGraphError,
    GraphStoreError,
    NotFoundError,
    SearchError,
    ValidationError,
)
from cardgraph.utils.id_generator import generate_card_id
from cardgraph.utils.logger import get_logger, setup_logging

# Global engine instance
engine: ContextEngine | None = None
logger = get_logger(__name__)


# Pydantic models for API
class CreateCardRequest(BaseModel):
    """Request model for adding a card."""

    id: str | None = Field(default=None, description="Card ID (generated when omitted)")
    kind: CardKind = CardKind.ANSWERABLE
    prompt: str = ""
    response: str | None = None
    parent_ids: list[str] = Field(default_factory=list)
    quote: str | None = None
    quote_source_id: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class UpdateCardRequest(BaseModel):
    """Request model for editing a card."""

    changes: dict[str, Any] = Field(..., description="Field name → new value")


class MutationResponse(BaseModel):
    """Card state after a mutation plus the staleness changes it caused."""

    card: Card | None = None
    report: StaleReport


class ContextResponse(BaseModel):
    """Assembled context of a card."""

    card_id: str
    blocks: list[ContextBlock]
    context: str
    fingerprint: str | None
    is_stale: bool


class FingerprintResponse(BaseModel):
    """Current and saved fingerprint of a card."""

    card_id: str
    fingerprint: str | None
    last_context_fingerprint: str | None
    is_stale: bool


class EdgeRequest(BaseModel):
    """Request model for linking two cards."""

    source: str
    target: str


class VirtualAncestorsRequest(BaseModel):
    """Raw semantic-search candidates for a card."""

    candidates: list[SearchCandidate]


class EmbeddingRequest(BaseModel):
    """Card embedding supplied by an external embedding service."""

    embedding: list[float] = Field(..., min_length=1)
    preview: str = ""


class CommitGenerationRequest(BaseModel):
    """Finished generation output."""

    response: str


class CancelGenerationRequest(BaseModel):
    """Output received before a generation was cancelled."""

    partial: str | None = None


class StaleSummaryResponse(BaseModel):
    """Stale cards and their regeneration order."""

    count: int
    plan: RegenerationPlan


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    engine_initialized: bool
    cards: int
    use_summarization: bool


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global engine

    # Load configuration from environment or use defaults
    config = Config.from_env()

    # Initialize logging with config
    setup_logging(config.logging)

    logger.info("Starting CardGraph server")
    logger.info(
        f"Configuration: summarization={config.context.use_summarization}, "
        f"virtual_top_k={config.context.virtual_top_k}, "
        f"similarity_threshold={config.search.similarity_threshold}"
    )

    search = InMemorySearchIndex()
    if config.snapshot_path:
        logger.info(f"Loading canvas snapshot from {config.snapshot_path}")
        snapshot = InMemoryCardStore.read_snapshot(config.snapshot_path)
        engine = ContextEngine.from_snapshot(snapshot, config=config, search=search)
    else:
        engine = ContextEngine(
            store=InMemoryCardStore(),
            config=config,
            library=InMemoryDocumentLibrary(),
            search=search,
        )
    logger.info("CardGraph engine initialized")

    yield

    # Cleanup
    logger.info("Shutting down CardGraph server")
    if config.snapshot_path:
        InMemoryCardStore.write_snapshot(engine.snapshot(), config.snapshot_path)
        logger.info(f"Canvas snapshot written to {config.snapshot_path}")
    engine = None
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="CardGraph API",
    description="Context assembly and staleness tracking for card graphs",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_engine() -> ContextEngine:
    if not engine:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def _http_error(e: CardGraphError) -> HTTPException:
    """Map engine errors to HTTP status codes."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=e.message)
    if isinstance(e, GraphStoreError):
        return HTTPException(status_code=409, detail=e.message)
    logger.error(f"Unexpected engine error: {e.message}")
    return HTTPException(status_code=500, detail=e.message)


def _mutation_response(card_id: str | None, report: StaleReport) -> MutationResponse:
    card = engine.store.get_card(card_id) if engine and card_id else None
    return MutationResponse(card=card, report=report)


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if engine else "initializing",
        engine_initialized=engine is not None,
        cards=len(engine.store.list_cards()) if engine else 0,
        use_summarization=engine.config.context.use_summarization if engine else False,
    )


# Card endpoints
@app.get("/cards", response_model=list[Card])
async def list_cards():
    """List all cards in insertion order."""
    return _require_engine().store.list_cards()


@app.post("/cards", response_model=MutationResponse, status_code=201)
async def add_card(request: CreateCardRequest):
    """
    Add a card to the graph.

    The card ID is generated when omitted. Parents given in `parent_ids`
    are resolved on every assembly; unknown IDs are ignored.
    """
    current = _require_engine()
    card = Card(
        id=request.id or generate_card_id(),
        kind=request.kind,
        prompt=request.prompt,
        response=request.response,
        parent_ids=request.parent_ids,
        quote=request.quote,
        quote_source_id=request.quote_source_id,
        attachments=request.attachments,
    )
    try:
        report = current.add_card(card)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card.id, report)


@app.get("/cards/{card_id}", response_model=Card)
async def get_card(card_id: str):
    """Retrieve a card by ID."""
    try:
        return _require_engine().get_card(card_id)
    except CardGraphError as e:
        raise _http_error(e) from e


@app.patch("/cards/{card_id}", response_model=MutationResponse)
async def update_card(card_id: str, request: UpdateCardRequest):
    """
    Edit a card.

    Staleness of the card's descendants (and of cards surfacing it as a
    virtual ancestor) is re-evaluated. Engine-owned flags cannot be set.
    """
    try:
        report = _require_engine().update_card(card_id, request.changes)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card_id, report)


@app.delete("/cards/{card_id}", response_model=MutationResponse)
async def delete_card(card_id: str):
    """Remove a card and its edges; children keep their other parents."""
    try:
        report = _require_engine().remove_card(card_id)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(None, report)


# Context endpoints
@app.get("/cards/{card_id}/context", response_model=ContextResponse)
async def get_context(card_id: str, use_summarization: bool | None = Query(default=None)):
    """
    Preview a card's assembled context.

    `blocks` and `context` come from the same compile call. Without a
    `use_summarization` override this is exactly what a generation request
    receives; the override only changes the preview.
    """
    current = _require_engine()
    try:
        current.get_card(card_id)
    except CardGraphError as e:
        raise _http_error(e) from e

    blocks = current.preview(card_id, use_summarization)
    return ContextResponse(
        card_id=card_id,
        blocks=blocks,
        context=current.compiler.render(blocks),
        fingerprint=current.fingerprint(card_id),
        is_stale=current.is_stale(card_id),
    )


@app.get("/cards/{card_id}/fingerprint", response_model=FingerprintResponse)
async def get_fingerprint(card_id: str):
    """Current context fingerprint next to the one saved at last generation."""
    current = _require_engine()
    try:
        card = current.get_card(card_id)
    except CardGraphError as e:
        raise _http_error(e) from e
    return FingerprintResponse(
        card_id=card_id,
        fingerprint=current.fingerprint(card_id),
        last_context_fingerprint=card.last_context_fingerprint,
        is_stale=card.is_stale,
    )


# Exclusion endpoints
@app.post("/cards/{card_id}/exclusions/ancestors/{ancestor_id}", response_model=MutationResponse)
async def toggle_excluded_ancestor(card_id: str, ancestor_id: str):
    """Switch an ancestor (or virtual ancestor) off or back on for a card."""
    try:
        report = _require_engine().toggle_excluded_ancestor(card_id, ancestor_id)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card_id, report)


@app.post(
    "/cards/{card_id}/exclusions/attachments/{attachment_id}", response_model=MutationResponse
)
async def toggle_excluded_attachment(card_id: str, attachment_id: str):
    """Switch an attachment off or back on for a card."""
    try:
        report = _require_engine().toggle_excluded_attachment(card_id, attachment_id)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card_id, report)


# Attachment endpoints
@app.post("/cards/{card_id}/attachments", response_model=MutationResponse)
async def add_attachment(card_id: str, attachment: Attachment):
    """Attach a library document to a card."""
    try:
        report = _require_engine().add_attachment(card_id, attachment)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card_id, report)


@app.delete("/cards/{card_id}/attachments/{attachment_id}", response_model=MutationResponse)
async def remove_attachment(card_id: str, attachment_id: str):
    """Detach a document from a card."""
    try:
        report = _require_engine().remove_attachment(card_id, attachment_id)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card_id, report)


# Edge endpoints
@app.post("/edges", response_model=MutationResponse, status_code=201)
async def add_edge(request: EdgeRequest):
    """Link a parent card to a child card."""
    try:
        report = _require_engine().add_edge(request.source, request.target)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(request.target, report)


@app.delete("/edges/{source_id}/{target_id}", response_model=MutationResponse)
async def remove_edge(source_id: str, target_id: str):
    """Remove the link between two cards."""
    try:
        report = _require_engine().remove_edge(source_id, target_id)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(target_id, report)


# Semantic search endpoints
@app.put("/cards/{card_id}/embedding")
async def index_card(card_id: str, request: EmbeddingRequest):
    """Index a card's embedding for semantic search."""
    current = _require_engine()
    if not isinstance(current.search, InMemorySearchIndex):
        raise HTTPException(status_code=501, detail="Search index does not accept embeddings")
    try:
        current.get_card(card_id)
        current.search.upsert(card_id, request.embedding, request.preview)
    except SearchError as e:
        raise HTTPException(status_code=422, detail=e.message) from e
    except CardGraphError as e:
        raise _http_error(e) from e
    return {"card_id": card_id, "indexed": len(current.search)}


@app.put("/cards/{card_id}/virtual-ancestors", response_model=MutationResponse)
async def set_virtual_ancestors(card_id: str, request: VirtualAncestorsRequest):
    """Store externally ranked search candidates, filtered against the card's lineage."""
    try:
        report = _require_engine().set_virtual_ancestors(card_id, request.candidates)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card_id, report)


@app.post("/cards/{card_id}/virtual-ancestors/refresh", response_model=MutationResponse)
async def refresh_virtual_ancestors(card_id: str, request: EmbeddingRequest):
    """Re-run semantic search for a card with its query embedding."""
    try:
        report = await _require_engine().refresh_virtual_ancestors(card_id, request.embedding)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card_id, report)


# Generation lifecycle endpoints
@app.post("/cards/{card_id}/generation/commit", response_model=MutationResponse)
async def commit_generation(card_id: str, request: CommitGenerationRequest):
    """Store a finished response together with its context fingerprint."""
    try:
        report = _require_engine().commit_generation(card_id, request.response)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card_id, report)


@app.post("/cards/{card_id}/generation/cancel", response_model=MutationResponse)
async def cancel_generation(card_id: str, request: CancelGenerationRequest):
    """Finish an interrupted generation, keeping non-empty partial output."""
    try:
        report = _require_engine().cancel_generation(card_id, request.partial)
    except CardGraphError as e:
        raise _http_error(e) from e
    return _mutation_response(card_id, report)


@app.get("/stale", response_model=StaleSummaryResponse)
async def stale_summary():
    """Number of stale cards and the order to regenerate them in."""
    current = _require_engine()
    return StaleSummaryResponse(count=current.stale_count(), plan=current.regeneration_plan())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
