"""Exclusive claiming when several dispatchers sweep the same jobs."""

import threading
from collections import Counter
from datetime import UTC, datetime
from uuid import uuid4

from scheduling.enums import JobStatus
from tests.base import BaseUnitTest
from tests.factories.records import make_profile
from tests.fakes import build_queue

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
WORKERS = 6
JOBS = 40


class TestConcurrentDispatch(BaseUnitTest):
    """Test that each due job is delivered by exactly one dispatcher."""

    def test_every_job_is_delivered_exactly_once(self):
        """Test parallel sweeps never deliver a job twice."""
        profiles = [make_profile() for _ in range(4)]
        queue, repository, _, transport = build_queue(*profiles)
        job_ids = [
            queue.enqueue(
                {
                    "recipient_id": profiles[i % len(profiles)].id,
                    "update_id": uuid4(),
                    "notification_type": "immediate",
                },
                now=NOW,
            )
            for i in range(JOBS)
        ]
        barrier = threading.Barrier(WORKERS)
        summaries = []
        errors = []

        def sweep(worker_id):
            try:
                barrier.wait()
                summaries.append(queue.dispatch_due(now=NOW, worker_id=worker_id))
            except Exception as e:  # surfaced by the assertions below
                errors.append(e)

        threads = [
            threading.Thread(target=sweep, args=(f"worker-{i}",)) for i in range(WORKERS)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        self.assertEqual(errors, [])
        delivered = Counter(delivery.job_id for delivery in transport.deliveries)
        self.assertEqual(set(delivered), set(job_ids))
        self.assertTrue(all(count == 1 for count in delivered.values()))
        self.assertEqual(sum(summary.sent for summary in summaries), JOBS)
        for job_id in job_ids:
            self.assertEqual(repository.get(job_id).status, JobStatus.SENT)

    def test_claims_record_a_single_worker(self):
        """Test every sent job names the one worker that claimed it."""
        profile = make_profile()
        queue, repository, _, _ = build_queue(profile)
        job_ids = [
            queue.enqueue(
                {"recipient_id": profile.id, "update_id": uuid4(), "notification_type": "milestone"},
                now=NOW,
            )
            for _ in range(10)
        ]
        barrier = threading.Barrier(3)

        def sweep(worker_id):
            barrier.wait()
            queue.dispatch_due(now=NOW, worker_id=worker_id)

        threads = [threading.Thread(target=sweep, args=(f"w{i}",)) for i in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        claimed_by = {repository.get(job_id).claimed_by for job_id in job_ids}
        self.assertTrue(claimed_by <= {"w0", "w1", "w2"})
        attempts = [len(repository.list_attempts(job_id)) for job_id in job_ids]
        self.assertEqual(attempts, [1] * len(job_ids))
