from __future__ import annotations

from unittest.mock import MagicMock, patch

from gridtracker.models.save_result import RecordOutcome
from gridtracker.services.progress import SaveProgress, is_tty_enabled


def test_non_tty_counts_without_bar():
    with patch("gridtracker.services.progress.is_tty_enabled", return_value=False):
        with SaveProgress(2) as progress:
            assert progress.pbar is None
            progress.advance(RecordOutcome("1", True))
            progress.advance(RecordOutcome("2", False, reason="x"))
    assert (progress.succeeded, progress.failed) == (1, 1)


def test_tty_updates_bar():
    bar = MagicMock()
    with patch("gridtracker.services.progress.is_tty_enabled", return_value=True), \
         patch("gridtracker.services.progress.tqdm", return_value=bar) as tqdm_cls:
        progress = SaveProgress(1, description="Saving accounts")
        progress.advance(RecordOutcome("1", True))
        progress.close()
    assert tqdm_cls.call_args.kwargs["total"] == 1
    assert tqdm_cls.call_args.kwargs["desc"] == "Saving accounts"
    bar.update.assert_called_once_with(1)
    bar.set_postfix.assert_called_once_with(ok=1, failed=0)
    bar.close.assert_called_once()
    assert progress.pbar is None


def test_is_tty_enabled_follows_stdout():
    with patch("sys.stdout") as stdout:
        stdout.isatty.return_value = True
        assert is_tty_enabled()
        stdout.isatty.return_value = False
        assert not is_tty_enabled()
