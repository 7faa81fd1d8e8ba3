"""
Tests for all model classes in CardGraph.

Test Organization:
1. Card and parent-link models
2. Attachment models
3. Context models: ContextBlock, ExclusionSet, ContextLimits, CompileSettings
4. Result models: StaleReport, RegenerationPlan
5. CanvasSnapshot
"""

from datetime import datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from cardgraph.models import (
    Attachment,
    AttachmentKind,
    BlockKind,
    CanvasSnapshot,
    Card,
    CardKind,
    CompileSettings,
    ContentKind,
    ContextBlock,
    ContextLimits,
    EdgeParents,
    ExclusionSet,
    LibraryDocument,
    NoParents,
    ParentLink,
    RegenerationPlan,
    SearchCandidate,
    StaleReport,
)


@pytest.mark.unit
class TestCard:
    """Tests for the Card model."""

    def test_card_creation_minimal(self):
        """Test card creation with only an ID."""
        card = Card(id="card_001")

        assert card.kind == CardKind.ANSWERABLE
        assert card.prompt == ""
        assert card.response is None
        assert card.parent_ids == []
        assert card.attachments == []
        assert card.virtual_ancestor_ids == []
        assert card.is_stale is False
        assert card.is_quote_invalidated is False
        assert card.last_context_fingerprint is None
        assert isinstance(card.created_at, datetime)

    def test_has_response(self):
        assert Card(id="a", response="Answer").has_response
        assert not Card(id="a", response="").has_response
        assert not Card(id="a").has_response

    def test_note_kind(self):
        note = Card(id="n", kind="note", prompt="Title", response="Body")

        assert note.kind == CardKind.NOTE
        assert note.is_note

    def test_invalid_kind_rejected(self):
        with pytest.raises(ValidationError):
            Card(id="a", kind="essay")

    def test_touch_bumps_updated_at(self):
        card = Card(id="a", updated_at=datetime(2020, 1, 1))
        card.touch()

        assert card.updated_at > datetime(2020, 1, 1)


@pytest.mark.unit
class TestParentLink:
    """Tests for the parent-link tagged union."""

    def test_discriminated_by_source(self):
        adapter = TypeAdapter(ParentLink)

        link = adapter.validate_python({"source": "edges", "ids": ["a", "b"]})

        assert isinstance(link, EdgeParents)
        assert link.ids == ["a", "b"]

    def test_no_parents_default(self):
        assert NoParents().ids == []

    def test_unknown_source_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(ParentLink).validate_python({"source": "magic", "ids": []})


@pytest.mark.unit
class TestAttachment:
    """Tests for attachment models."""

    def test_label_prefers_name(self):
        assert Attachment(attachment_id="doc-1", name=" report.pdf ").label == "report.pdf"

    def test_label_falls_back_to_id(self):
        assert Attachment(attachment_id="doc-1").label == "doc-1"
        assert Attachment(attachment_id="doc-1", name="  ").label == "doc-1"

    def test_library_document_defaults(self):
        document = LibraryDocument(doc_id="doc-1", kind=AttachmentKind.IMAGE)

        assert document.full_text == ""
        assert document.summary == ""
        assert document.image_description == ""


@pytest.mark.unit
class TestContextModels:
    """Tests for context assembly models."""

    def test_block_is_frozen(self):
        block = ContextBlock(
            level=0, kind=BlockKind.FULL, content_kind=ContentKind.FULL, source_id="a"
        )

        with pytest.raises(ValidationError):
            block.text = "changed"

    def test_exclusion_set(self):
        exclusions = ExclusionSet(
            ancestor_ids=frozenset({"p"}), attachment_ids=frozenset({"doc-1"})
        )

        assert exclusions.excludes_card("p")
        assert not exclusions.excludes_card("q")
        assert exclusions.excludes_attachment("doc-1")
        assert not ExclusionSet().excludes_attachment("doc-1")

    def test_limits_defaults(self):
        limits = ContextLimits()

        assert limits.quote_truncation_chars == 500
        assert limits.virtual_parent_truncation_chars == 500
        assert limits.virtual_ancestor_truncation_chars == 300
        assert limits.attachment_snippet_chars == 1200
        assert limits.max_attachments_per_card == 10
        assert limits.virtual_top_k == 5

    def test_compile_settings_defaults(self):
        settings = CompileSettings()

        assert settings.use_summarization is False
        assert settings.exclusions is None

    def test_search_candidate_score_bounds(self):
        with pytest.raises(ValidationError):
            SearchCandidate(card_id="a", score=1.5)


@pytest.mark.unit
class TestResultModels:
    """Tests for staleness result models."""

    def test_stale_report_changed(self):
        assert not StaleReport().changed
        assert StaleReport(marked_stale=["a"]).changed
        assert StaleReport(quotes_restored=["a"]).changed

    def test_regeneration_plan_total(self):
        plan = RegenerationPlan(levels=[["a", "b"], ["c"]])

        assert plan.total == 3
        assert RegenerationPlan().total == 0


@pytest.mark.unit
class TestCanvasSnapshot:
    """Tests for the canvas snapshot model."""

    def test_from_dict(self):
        snapshot = CanvasSnapshot.model_validate(
            {
                "cards": [{"id": "a"}, {"id": "b", "parent_ids": ["a"]}],
                "edges": [{"id": "edge_a_b", "source": "a", "target": "b"}],
                "documents": [{"doc_id": "doc-1", "summary": "Short"}],
            }
        )

        assert [card.id for card in snapshot.cards] == ["a", "b"]
        assert snapshot.edges[0].target == "b"
        assert snapshot.documents[0].summary == "Short"
