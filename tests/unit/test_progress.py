from __future__ import annotations

from unittest.mock import Mock, patch

from merit_ingest.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True
    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:

    def test_init_with_tty_enabled(self):
        with patch('merit_ingest.services.progress.is_tty_enabled', return_value=True), \
             patch('merit_ingest.services.progress.tqdm') as mock_tqdm:
            tracker = ProgressTracker(5, description="Rows")
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=5,
                desc="Rows",
                unit="row",
                disable=False,
                leave=False,
                position=0,
                ncols=80,
                ascii=True,
                mininterval=0.5,
            )

    def test_disabled_without_tty(self):
        with patch('merit_ingest.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(5)
            tracker.advance()
            tracker.set_postfix(accepted=1)
            tracker.close()
            assert tracker.pbar is None
            assert tracker.current_row == 1

    def test_advance_and_close_update_bar(self):
        mock_pbar = Mock()
        with patch('merit_ingest.services.progress.is_tty_enabled', return_value=True), \
             patch('merit_ingest.services.progress.tqdm', return_value=mock_pbar):
            with ProgressTracker(3) as tracker:
                tracker.advance()
                tracker.advance(2)
                tracker.set_postfix(accepted=3, rejected=0)
            mock_pbar.update.assert_any_call(1)
            mock_pbar.update.assert_any_call(2)
            mock_pbar.set_postfix.assert_called_once_with(accepted=3, rejected=0)
            mock_pbar.close.assert_called_once()
            assert tracker.pbar is None
