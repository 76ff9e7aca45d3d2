"""Tests for the per-page pipeline and the layout engine."""

import time

import pytest

import engine.layout_engine as layout_engine
from engine.config import EngineConfig
from engine.layout_engine import LayoutEngine, analyze_document, analyze_page
from models.layout_types import BoundaryFlag, Page
from processors.layout_config import LayoutConfig
from utils.validation import LayoutValidationError, ProcessingTimeoutError


class TestAnalyzePage:
    def test_full_pipeline(self, paragraph_page):
        layout = analyze_page(paragraph_page())

        assert layout.page_number == 1
        assert len(layout.columns) == 1
        assert len(layout.lines) == 5
        assert [len(p.line_ids) for p in layout.paragraphs] == [3, 2]
        assert layout.thresholds.horizontal_spacing_mode == pytest.approx(5.0)
        assert layout.thresholds.line_spacing_mode == pytest.approx(5.0)
        assert layout.issues == ()

    def test_two_column_page(self, two_column_page):
        layout = analyze_page(two_column_page)
        assert len(layout.columns) == 2
        assert [len(column.lines) for column in layout.columns] == [10, 10]

    def test_invalid_token_is_reported_and_skipped(self, make_row, make_token, make_block, make_page):
        tokens = make_row(100, 50, 4) + [make_token(200, 100, width=-4)]
        layout = analyze_page(make_page([make_block(tokens)]))

        assert len(layout.issues) == 1
        assert len(layout.lines) == 1
        assert len(layout.lines[0].token_ids) == 4

    def test_invalid_block_does_not_abort_siblings(self, make_row, make_block, make_page):
        good = make_block(make_row(100, 50, 3), block_id="good")
        bad = good.model_copy(update={'id': "bad", 'width': -1})
        layout = analyze_page(make_page([bad, good]))

        assert [issue.entity_id for issue in layout.issues] == ["bad"]
        assert {line.block_id for line in layout.lines} == {"good"}

    def test_invalid_page_yields_issue(self):
        layout = analyze_page(Page(width=0, height=100))
        assert layout.columns == ()
        assert layout.issues[0].entity_kind == "page"

    def test_empty_page(self, make_page):
        layout = analyze_page(make_page([]))
        assert len(layout.columns) == 1
        assert layout.paragraphs == ()


class TestBoundaryFlags:
    def test_widow_on_non_final_page_and_orphan_after(self, paragraph_page, make_document):
        document = make_document([paragraph_page(1), paragraph_page(2)])
        layout = analyze_document(document)

        first, second = layout.pages
        assert [p.boundary for p in first.paragraphs] == [BoundaryFlag.NONE, BoundaryFlag.WIDOW]
        assert [p.boundary for p in second.paragraphs] == [BoundaryFlag.ORPHAN, BoundaryFlag.NONE]

    def test_single_page_document_has_no_flags(self, paragraph_page, make_document):
        layout = analyze_document(make_document([paragraph_page()]))
        assert all(p.boundary == BoundaryFlag.NONE for p in layout.pages[0].paragraphs)


class TestLayoutEngine:
    def test_outside_context_manager(self, paragraph_page, make_document):
        engine = LayoutEngine()
        with pytest.raises(RuntimeError):
            engine.analyze(make_document([paragraph_page()]))

    def test_invalid_config(self):
        with pytest.raises(LayoutValidationError):
            LayoutEngine(EngineConfig(max_workers=0))

    def test_invalid_layout_config(self):
        with pytest.raises(LayoutValidationError):
            LayoutEngine(EngineConfig(layout=LayoutConfig(gutter_min_fraction=1.5)))

    def test_batch_keeps_document_and_page_order(self, paragraph_page, two_column_page, make_document):
        documents = [
            make_document([paragraph_page(1), paragraph_page(2), paragraph_page(3)]),
            make_document([two_column_page]),
        ]
        with LayoutEngine(EngineConfig(max_workers=3)) as engine:
            layouts = engine.analyze_many(documents)
            assert engine.get_status()['pages_analyzed'] == 4

        assert [page.page_number for page in layouts[0].pages] == [1, 2, 3]
        assert len(layouts[1].pages[0].columns) == 2
        assert not engine.is_open

    def test_analyze_document_accepts_layout_config(self, paragraph_page, make_document):
        layout = analyze_document(
            make_document([paragraph_page()]),
            LayoutConfig(paragraph_spacing_factor=10),
        )
        assert len(layout.pages[0].paragraphs) == 1

    def test_timeout(self, paragraph_page, make_document, monkeypatch):
        def slow_analyze_page(page, config=None, **kwargs):
            time.sleep(2)

        monkeypatch.setattr(layout_engine, "analyze_page", slow_analyze_page)

        with pytest.raises(ProcessingTimeoutError):
            with LayoutEngine(EngineConfig(timeout_seconds=1)) as engine:
                engine.analyze(make_document([paragraph_page()]))
