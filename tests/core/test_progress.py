"""Tests for core/progress.py module."""

from __future__ import annotations

from unittest.mock import patch

from umple_lsp.core.progress import _STYLES, status


class TestStyles:
    """Tests for _STYLES constant."""

    def test_has_expected_styles(self) -> None:
        expected = {"success", "error", "info", "warning", "none"}
        assert set(_STYLES.keys()) == expected

    def test_success_style(self) -> None:
        """Success style has checkmark."""
        assert "✓" in _STYLES["success"]


class TestStatus:
    """Tests for status function."""

    def test_prints_message(self) -> None:
        with patch("umple_lsp.core.progress._console") as mock_console:
            status("Test message")
            mock_console.print.assert_called_once()

    def test_error_style(self) -> None:
        """Applies error style."""
        with patch("umple_lsp.core.progress._console") as mock_console:
            status("2 error(s)", style="error")
            call_args = mock_console.print.call_args[0][0]
            assert "✗" in call_args
            assert call_args.endswith("2 error(s)")

    def test_unknown_style_has_no_prefix(self) -> None:
        with patch("umple_lsp.core.progress._console") as mock_console:
            status("plain", style="sparkly")
            assert mock_console.print.call_args[0][0] == "plain"

    def test_with_indent(self) -> None:
        with patch("umple_lsp.core.progress._console") as mock_console:
            status("Indented", indent=4, style="none")
            assert mock_console.print.call_args[0][0] == "    Indented"
