"""
Tests for status line derivation.

Tests cover:
- Empty and malformed logs
- Choice of the current event
- Phase display names per task kind
- Script, retry attempt and retry scheduling action codes
- Static tables and passthrough of unknown codes
"""

import pytest

from plan_monitor.progress.messages import (
    RetryAttempt,
    RetrySchedule,
    ScriptStep,
    action_message,
    current_event,
    derive_message,
    parse_action,
)
from plan_monitor.progress.types import ProgressEvent, TaskKind, TaskProgress

from ..fixtures.progress_logs import event, finished_backup, progress_log, running_backup


class TestEmptyLogs:
    """Logs without events render as initializing."""

    @pytest.mark.parametrize(
        "log",
        [
            None,
            {},
            {"events": []},
            {"events": None},
            {"events": "garbage"},
            {"events": [42, "text", None]},
            TaskProgress(),
            "not a log",
        ],
    )
    def test_initializing_placeholder(self, log):
        """Test that missing or unusable events give the initializing message."""
        assert derive_message(log, TaskKind.BACKUP) == "Initializing..."
        assert derive_message(log, TaskKind.RESTORE) == "Initializing..."

    def test_single_initializing_event(self):
        """Test the very first event of a task."""
        log = progress_log(event("initializing", "INITIALIZE", completed=False))

        assert derive_message(log, "backup") == "Initializing: Starting Backup..."
        assert derive_message(log, "restore") == "Initializing: Starting Restore..."


class TestCurrentEvent:
    """The step the user waits on drives the message."""

    def test_last_incomplete_event_wins(self):
        """Test that the last incomplete event is used even if later events completed."""
        log = progress_log(
            event("pre-backup", "PRE_BACKUP_START", completed=False),
            event("pre-backup", "PRE_BACKUP_CHECKS_START", completed=False),
            event("pre-backup", "PRE_BACKUP_CHECKS_COMPLETE"),
        )

        assert derive_message(log) == "Pre-Backup: Running Checks..."

    def test_falls_back_to_last_event(self):
        """Test that the last event is used when every event completed."""
        log = progress_log(
            event("pre-backup", "PRE_BACKUP_START"),
            event("post-backup", "POST_BACKUP_PRUNE_COMPLETE"),
        )

        assert derive_message(log) == "Post-Backup: Pruning Complete"

    def test_current_event_of_empty_list(self):
        """Test that no events means no current event."""
        assert current_event([]) is None

    def test_order_is_positional(self):
        """Test that timestamps do not reorder events."""
        events = [
            ProgressEvent(phase="backup", action="A", completed=False, timestamp="2030-01-01"),
            ProgressEvent(phase="backup", action="B", completed=False, timestamp="2020-01-01"),
        ]

        assert current_event(events).action == "B"

    def test_running_backup(self):
        """Test a typical in-flight backup log."""
        assert derive_message(running_backup()) == "Backup: Backing Up Files..."


class TestPhases:
    """Phase display names."""

    def test_restore_phases(self):
        """Test restore specific phase names."""
        log = progress_log(
            event("post-restore", "POST_RESTORE_WINDOWS_MOVE_START", completed=False),
            kind="restore",
        )

        assert derive_message(log, TaskKind.RESTORE) == (
            "Post-Restore: Moving Restored files from temp directory to target path..."
        )

    def test_retry_phase_named_for_restore(self):
        """Test that the retry phase has a display name for restores."""
        log = progress_log(event("retry", "RESTORE_RETRY_1_OF_3_SCHEDULED", completed=False))

        assert derive_message(log, "restore") == "Retrying: Scheduling Retry (1/3)..."

    def test_unknown_phase_passes_through(self):
        """Test that server-added phases are shown verbatim."""
        log = progress_log(event("verify", "VERIFY_START", completed=False))

        assert derive_message(log) == "verify: VERIFY_START"

    def test_finished_phase_has_no_prefix(self):
        """Test that finished logs show the action message alone."""
        assert derive_message(finished_backup()) == "Completed Successfully"

    @pytest.mark.parametrize(
        "action,kind,expected",
        [
            ("TASK_COMPLETED", "backup", "Completed Successfully"),
            ("TASK_CANCELLED", "backup", "Backup Cancelled by User."),
            ("FAILED_PERMANENTLY", "backup", "Failed Permanently"),
            ("TASK_COMPLETED", "restore", "Completed Successfully"),
            ("TASK_CANCELLED", "restore", "Restore Cancelled by User."),
            ("FAILED_PERMANENTLY", "restore", "Failed Permanently"),
        ],
    )
    def test_terminal_actions(self, action, kind, expected):
        """Test each terminal action of each task kind."""
        assert derive_message(finished_backup(action), kind) == expected


class TestParametricActions:
    """Action codes carrying numbers."""

    def test_retry_attempt(self):
        """Test the retry attempt message."""
        assert action_message("RETRY_ATTEMPT_2_OF_5_START") == "Retrying (2/5)..."

    def test_retry_attempt_inside_longer_code(self):
        """Test that retry attempts are recognised inside prefixed codes."""
        assert action_message("BACKUP_RETRY_ATTEMPT_3_OF_4_START") == "Retrying (3/4)..."

    def test_retry_schedule_backup(self):
        """Test the retry scheduling message for backups."""
        assert (
            action_message("BACKUP_RETRY_02_OF_5_SCHEDULED", TaskKind.BACKUP)
            == "Scheduling Retry (2/5)..."
        )

    def test_retry_schedule_uses_kind_prefix(self):
        """Test that a restore scheduling code is not parsed for backups."""
        code = "RESTORE_RETRY_1_OF_3_SCHEDULED"

        assert action_message(code, TaskKind.RESTORE) == "Scheduling Retry (1/3)..."
        assert action_message(code, TaskKind.BACKUP) == code

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("ONBACKUPSTART_SCRIPT_1_START", "Running Start Script 1..."),
            ("ONBACKUPSTART_SCRIPT_1_FAIL", "Script 1 Failed"),
            ("ONBACKUPCOMPLETE_SCRIPT_2_COMPLETE", "Script 2 Complete"),
            ("ONBACKUPERROR_SCRIPT_3_ERROR", "Error in Error Script 3"),
            ("ONBACKUPFAILURE_SCRIPT_1_START", "Running Failure Script 1..."),
            ("ONBACKUPEND_SCRIPT_4_START", "Running End Script 4..."),
            ("ONBACKUPWHATEVER_SCRIPT_1_START", "Running Script 1..."),
        ],
    )
    def test_script_steps(self, code, expected):
        """Test every script hook and state."""
        assert action_message(code, TaskKind.BACKUP) == expected
        assert action_message(code, TaskKind.RESTORE) == expected

    def test_script_step_priority_over_static_table(self):
        """Test that parsed actions are tagged with their pattern."""
        assert parse_action("ONBACKUPSTART_SCRIPT_1_FAIL", "backup") == ScriptStep(
            hook="ONBACKUPSTART", number="1", state="FAIL"
        )
        assert parse_action("RETRY_ATTEMPT_2_OF_5_START", "backup") == RetryAttempt(
            current="2", total="5"
        )
        assert parse_action("BACKUP_RETRY_7_OF_9_SCHEDULED", "backup") == RetrySchedule(
            current=7, total="9"
        )
        assert parse_action("TASK_COMPLETED", "backup") is None

    @pytest.mark.parametrize(
        "code",
        [
            "RETRY_ATTEMPT_X_OF_5_START",
            "RETRY_ATTEMPT_2_OF__START",
            "ONBACKUPSTART_SCRIPT_one_START",
            "ONBACKUPSTART_SCRIPT_1_PAUSE",
            "BACKUP_RETRY_١_OF_3_SCHEDULED",
            "ONBACKUPSTART_SCRIPT_1_START_EXTRA",
        ],
    )
    def test_malformed_codes_pass_through(self, code):
        """Test that partial matches fall through to the code itself."""
        assert action_message(code, TaskKind.BACKUP) == code


class TestStaticActions:
    """Table lookups and unknown codes."""

    def test_tables_differ_per_kind(self):
        """Test that the same code reads differently for backup and restore."""
        assert action_message("INITIALIZE", "backup") == "Starting Backup..."
        assert action_message("INITIALIZE", "restore") == "Starting Restore..."
        assert action_message("TASK_FAILED", "backup") == "Backup Failed with Error."
        assert action_message("TASK_FAILED", "restore") == "Restore Failed with Error."

    def test_backup_only_code_for_restore(self):
        """Test that a code missing from the restore table passes through."""
        assert action_message("ISO_UPLOAD_START", "restore") == "ISO_UPLOAD_START"
        assert action_message("ISO_UPLOAD_START", "backup") == "Uploading ISO..."

    def test_unknown_codes_only(self):
        """Test a log made of codes nobody knows."""
        log = progress_log(
            event("backup", "SOMETHING_NEW", completed=False),
            event("backup", "SOMETHING_NEWER", completed=False),
        )

        assert derive_message(log) == "Backup: SOMETHING_NEWER"

    def test_empty_action_never_renders_empty(self):
        """Test that empty codes fall back to the phase name."""
        assert derive_message(progress_log(event("backup", "", completed=False))) == "Backup"
        assert derive_message(progress_log(event("finished", ""))) == "Complete"
        assert derive_message(progress_log(event("", "", completed=False))) == "Initializing..."
