"""Tests for the recurring dispatcher background jobs."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

from django.test import TestCase, override_settings

from scheduling.jobs.dispatch_jobs import (
    DIGEST_JOB_ID,
    DISPATCH_JOB_ID,
    REAPER_JOB_ID,
    create_due_digests_job,
    dispatch_due_notifications_job,
    reap_stale_jobs_job,
    schedule_periodic_jobs,
)
from scheduling.logging.context import get_worker_id
from scheduling.schemas import DispatchSummary


class TestDispatchDueNotificationsJob(TestCase):
    """Test suite for dispatch_due_notifications_job."""

    @patch("scheduling.jobs.dispatch_jobs.notification_job_queue")
    def test_returns_summary(self, mock_queue):
        """Test the sweep summary is returned as a plain dict."""
        mock_queue.dispatch_due.return_value = DispatchSummary(due=2, sent=2)

        result = dispatch_due_notifications_job(worker_id="rq-1")

        mock_queue.dispatch_due.assert_called_once_with(worker_id="rq-1")
        self.assertEqual(result["due"], 2)
        self.assertEqual(result["sent"], 2)

    @patch("scheduling.jobs.dispatch_jobs.notification_job_queue")
    def test_worker_id_tagged_during_sweep(self, mock_queue):
        """Test the worker id is set while dispatching and cleared afterwards."""
        seen = []
        mock_queue.dispatch_due.side_effect = lambda worker_id: (
            seen.append(get_worker_id()) or DispatchSummary()
        )

        dispatch_due_notifications_job()

        self.assertTrue(seen[0].startswith("rq-"))
        self.assertIsNone(get_worker_id())

    @patch("scheduling.jobs.dispatch_jobs.notification_job_queue")
    def test_worker_id_cleared_on_error(self, mock_queue):
        """Test a failing sweep still clears the worker id."""
        mock_queue.dispatch_due.side_effect = RuntimeError("db down")

        with self.assertRaises(RuntimeError):
            dispatch_due_notifications_job(worker_id="rq-1")

        self.assertIsNone(get_worker_id())


class TestMaintenanceJobs(TestCase):
    """Test suite for the digest and reaper jobs."""

    @patch("scheduling.jobs.dispatch_jobs.digest_service")
    def test_create_due_digests_job(self, mock_digest_service):
        """Test created digest job ids are returned as strings."""
        job_id = uuid4()
        mock_digest_service.create_due_digest_jobs.return_value = [job_id]

        self.assertEqual(create_due_digests_job(), [str(job_id)])

    @patch("scheduling.jobs.dispatch_jobs.notification_job_queue")
    def test_reap_stale_jobs_job(self, mock_queue):
        """Test the reaper returns the number of recovered jobs."""
        mock_queue.reap_stale_processing.return_value = 3

        self.assertEqual(reap_stale_jobs_job(), 3)


@override_settings(
    RQ_DISPATCH_QUEUE="default",
    NOTIFICATION_DISPATCH_INTERVAL_SECONDS=10,
    NOTIFICATION_MAINTENANCE_INTERVAL_SECONDS=60,
)
class TestSchedulePeriodicJobs(TestCase):
    """Test suite for schedule_periodic_jobs."""

    def setUp(self):
        """Set up test fixtures."""
        self.scheduler = MagicMock()
        self.scheduler.__contains__.return_value = False
        patcher = patch(
            "scheduling.jobs.dispatch_jobs.django_rq.get_scheduler",
            return_value=self.scheduler,
        )
        self.mock_get_scheduler = patcher.start()
        self.addCleanup(patcher.stop)

    def test_registers_all_jobs(self):
        """Test the dispatch, digest and reaper jobs are registered."""
        job_ids = schedule_periodic_jobs()

        self.assertEqual(job_ids, [DISPATCH_JOB_ID, DIGEST_JOB_ID, REAPER_JOB_ID])
        self.mock_get_scheduler.assert_called_once_with("default")
        calls = {
            call.kwargs["id"]: call.kwargs for call in self.scheduler.schedule.call_args_list
        }
        self.assertEqual(calls[DISPATCH_JOB_ID]["interval"], 10)
        self.assertIs(calls[DISPATCH_JOB_ID]["func"], dispatch_due_notifications_job)
        self.assertEqual(calls[DIGEST_JOB_ID]["interval"], 60)
        self.assertEqual(calls[REAPER_JOB_ID]["interval"], 60)
        self.assertIsNone(calls[REAPER_JOB_ID]["repeat"])
        self.scheduler.cancel.assert_not_called()

    def test_custom_interval(self):
        """Test the dispatch interval can be overridden."""
        schedule_periodic_jobs(interval=0.5)

        dispatch_call = self.scheduler.schedule.call_args_list[0]
        self.assertEqual(dispatch_call.kwargs["interval"], 1)

    def test_replaces_existing_registrations(self):
        """Test previously scheduled jobs are cancelled before rescheduling."""
        self.scheduler.__contains__.return_value = True

        schedule_periodic_jobs()

        self.assertEqual(self.scheduler.cancel.call_count, 3)
        self.scheduler.cancel.assert_any_call(DISPATCH_JOB_ID)
