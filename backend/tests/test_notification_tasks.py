"""
Tests for the notification and log dispatch tasks.
"""

from unittest.mock import patch

import pytest

from fileproc.tasks.notification_tasks import send_notification, write_log


def _run_task(task, **kwargs):
    task.push_request(id="job-42", retries=0)
    try:
        return task.run(**kwargs)
    finally:
        task.pop_request()


class TestSendNotification:

    def test_delivery_is_reported(self):
        result = _run_task(send_notification, user_id=3, type="sms", message="done", metadata={"file": "f-1"})

        assert result["user_id"] == 3
        assert result["type"] == "sms"
        assert result["delivered"] is True
        assert result["processed_at"]

    def test_unknown_channel_is_rejected(self):
        with pytest.raises(ValueError):
            _run_task(send_notification, user_id=3, type="pigeon", message="done")


class TestWriteLog:

    @pytest.mark.parametrize(
        "level,method",
        [
            ("emergency", "critical"),
            ("alert", "critical"),
            ("error", "error"),
            ("notice", "info"),
            ("debug", "debug"),
        ],
    )
    def test_level_maps_to_logger_method(self, level, method):
        with patch("fileproc.tasks.notification_tasks.job_logger") as job_logger:
            result = _run_task(write_log, message="hello", level=level, context={"k": "v"})

        emit = getattr(job_logger, method)
        emit.assert_called_once()
        args, kwargs = emit.call_args
        assert args == ("hello",)
        assert kwargs["log_level"] == level.upper()
        assert kwargs["context"] == {"k": "v"}
        assert kwargs["job_id"] == "job-42"
        assert result["source"] == "api"

    def test_defaults(self):
        result = _run_task(write_log, message="plain")

        assert result["log_level"] == "INFO"
        assert result["context"] == {}
        assert result["written_at"]

    def test_unknown_level_is_rejected(self):
        with pytest.raises(ValueError):
            _run_task(write_log, message="x", level="loud")
