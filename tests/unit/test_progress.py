from __future__ import annotations

from unittest.mock import Mock, patch

from combo_tools.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    """Test that is_tty_enabled returns sys.stdout.isatty()."""
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True

    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:
    """Test cases for ProgressTracker class."""

    def test_init_with_tty_enabled(self):
        with patch('combo_tools.services.progress.is_tty_enabled', return_value=True), \
             patch('combo_tools.services.progress.tqdm') as mock_tqdm:

            tracker = ProgressTracker(5, description="Crosssell", unit="sku")

            assert tracker.total == 5
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=5,
                desc="Crosssell",
                unit="sku",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch('combo_tools.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(5)

            assert tracker.enabled is False
            assert tracker.pbar is None

    def test_advance_counts_and_updates_bar(self):
        mock_pbar = Mock()

        with patch('combo_tools.services.progress.is_tty_enabled', return_value=True), \
             patch('combo_tools.services.progress.tqdm', return_value=mock_pbar):

            tracker = ProgressTracker(3, description="Scraping")
            tracker.advance(label="page-1")
            tracker.advance(success=False)

            assert tracker.completed == 2
            assert tracker.failed == 1
            mock_pbar.set_description.assert_called_once_with("Scraping (page-1)")
            assert mock_pbar.update.call_count == 2
            mock_pbar.set_postfix.assert_called_once_with(failed=1)

    def test_advance_with_tty_disabled(self):
        with patch('combo_tools.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(2)
            tracker.advance(success=False, label="x")

            assert tracker.completed == 1
            assert tracker.failed == 1

    def test_context_manager_closes_bar(self):
        mock_pbar = Mock()

        with patch('combo_tools.services.progress.is_tty_enabled', return_value=True), \
             patch('combo_tools.services.progress.tqdm', return_value=mock_pbar):

            with ProgressTracker(3) as tracker:
                assert isinstance(tracker, ProgressTracker)

            mock_pbar.close.assert_called_once()
            assert tracker.pbar is None
