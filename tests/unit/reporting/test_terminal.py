"""Tests for Rich-based terminal output rendering.

Uses a captured Rich Console to inspect output content.
"""

from __future__ import annotations

import re
from io import StringIO
from unittest.mock import patch

from rich.console import Console

from Grid_Rank.models import HealthStatus, Insight, ScanHistoryItem, ScanResult, ScanSettings
from Grid_Rank.reporting.terminal import (
    render_health,
    render_history,
    render_insight,
    render_point_detail,
    render_scan_result,
)

# Regex to strip ANSI escape codes from Rich output
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


def _strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from Rich console output."""
    return _ANSI_ESCAPE.sub("", text)


def _make_captured_console() -> Console:
    """Create a Console that captures output to a StringIO buffer."""
    return Console(file=StringIO(), force_terminal=True, width=120)


def _output(console: Console) -> str:
    assert isinstance(console.file, StringIO)
    return _strip_ansi(console.file.getvalue())


class TestRenderScanResult:
    """Tests for render_scan_result()."""

    def test_summary_grid_and_competitors(
        self, sample_settings: ScanSettings, sample_result: ScanResult
    ) -> None:
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_scan_result(sample_settings, sample_result)

        output = _output(captured)
        assert "Grid Rank: Fade Masters" in output
        assert "Average Rank: 1.89" in output
        assert "Points: 9/9" in output
        assert "Rank Grid" in output
        assert "Sharp Cuts" in output
        assert "Hudson Barbers" in output
        assert "Ollama (llama3.1:8b)" in output

    def test_partial_scan_marks_skipped(
        self, sample_settings: ScanSettings, partial_result: ScanResult
    ) -> None:
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_scan_result(sample_settings, partial_result)

        output = _output(captured)
        assert "(1 skipped)" in output
        assert "×" in output


class TestRenderPointDetail:
    """Tests for render_point_detail()."""

    def test_known_point(self, sample_result: ScanResult) -> None:
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_point_detail(sample_result, 6, "place-target")

        output = _output(captured)
        assert "Point 6" in output
        assert "Your rank: 4" in output
        assert "4. Fade Masters" in output
        assert "1. Sharp Cuts" in output

    def test_unknown_point(self, partial_result: ScanResult) -> None:
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_point_detail(partial_result, 4, "place-target")

        assert "Point 4 has no ranking" in _output(captured)


class TestRenderHistory:
    """Tests for render_history()."""

    def test_empty(self) -> None:
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_history([])
        assert "No scans in history." in _output(captured)

    def test_rows(self, sample_history_item: ScanHistoryItem) -> None:
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_history([sample_history_item])

        output = _output(captured)
        assert "scan-001" in output
        assert "2025-03-01 14:30" in output
        assert "Fade Masters" in output
        assert "1.89" in output


class TestRenderInsight:
    """Tests for render_insight()."""

    def test_llm_insight(self, sample_insight: Insight) -> None:
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_insight(sample_insight)

        output = _output(captured)
        assert "Competitor Insight" in output
        assert "llama3.1:8b" in output
        assert "Sharp Cuts dominates" in output

    def test_fallback_insight(self, sample_insight: Insight) -> None:
        fallback = sample_insight.model_copy(update={"is_fallback": True, "sources": []})
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_insight(fallback)

        assert "data-driven" in _output(captured)


class TestRenderHealth:
    """Tests for render_health()."""

    def test_healthy(self, sample_health_status: HealthStatus) -> None:
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_health(sample_health_status)

        output = _output(captured)
        assert "[OK]  Ollama" in output
        assert "[OK]  SQLite" in output
        assert "llama3.1:8b, mistral:7b" in output
        assert "2025-03-01T15:30:00Z" in output

    def test_unhealthy(self, sample_health_status: HealthStatus) -> None:
        down = sample_health_status.model_copy(
            update={"ollama_available": False, "ollama_models": []}
        )
        captured = _make_captured_console()
        with patch("Grid_Rank.reporting.terminal.console", captured):
            render_health(down)

        output = _output(captured)
        assert "[FAIL] Ollama" in output
        assert "No Ollama models available" in output
