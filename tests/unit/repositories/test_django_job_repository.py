"""Tests for DjangoJobRepository."""

from datetime import timedelta
from uuid import uuid4

from django.utils import timezone

import pytest

from scheduling.enums import JobStatus
from scheduling.exceptions import ConflictError
from scheduling.models import NotificationJob
from scheduling.repositories import DjangoJobRepository
from scheduling.schemas import DeliveryAttemptRecord, NotificationJobRecord
from tests.factories.models import create_job, create_recipient


@pytest.mark.django_db
class TestDjangoJobRepository:
    """Test suite for the ORM job repository."""

    def setup_method(self):
        """Set up test fixtures."""
        self.repository = DjangoJobRepository()
        self.now = timezone.now()

    def test_add_and_get_round_trip(self):
        """Test a job record is stored and read back unchanged."""
        recipient = create_recipient()
        record = NotificationJobRecord(
            id=uuid4(),
            recipient_id=recipient.id,
            group_id=recipient.group_id,
            notification_type="milestone",
            urgency_level="urgent",
            delivery_method="sms",
            content={"text": "First steps!"},
            scheduled_for=self.now,
            metadata={"source": "timeline"},
        )

        stored = self.repository.add(record)
        fetched = self.repository.get(record.id)

        assert stored.created_at is not None
        assert fetched.notification_type == "milestone"
        assert fetched.delivery_method == "sms"
        assert fetched.content == {"text": "First steps!"}
        assert fetched.status == JobStatus.PENDING

    def test_get_missing_returns_none(self):
        """Test unknown ids return None."""
        assert self.repository.get(uuid4()) is None

    def test_list_due_orders_by_schedule_and_skips_future(self):
        """Test only due pending jobs are listed, earliest first."""
        recipient = create_recipient()
        later = create_job(recipient, scheduled_for=self.now - timedelta(minutes=1))
        earlier = create_job(recipient, scheduled_for=self.now - timedelta(minutes=5))
        create_job(recipient, scheduled_for=self.now + timedelta(minutes=5))
        create_job(recipient, scheduled_for=self.now - timedelta(minutes=9), status="sent")

        due = self.repository.list_due(self.now, limit=10)

        assert [job.id for job in due] == [earlier.id, later.id]

    def test_transition_is_compare_and_swap(self):
        """Test only the first claim of a pending job succeeds."""
        job = create_job(create_recipient())

        first = self.repository.transition(
            job.id, JobStatus.PENDING, JobStatus.PROCESSING, claimed_by="a", claimed_at=self.now
        )
        second = self.repository.transition(
            job.id, JobStatus.PENDING, JobStatus.PROCESSING, claimed_by="b", claimed_at=self.now
        )

        assert first.status == JobStatus.PROCESSING
        assert first.claimed_by == "a"
        assert second is None
        assert NotificationJob.objects.get(pk=job.id).claimed_by == "a"

    def test_transition_rejects_illegal_moves(self):
        """Test transitions outside the state machine raise ConflictError."""
        job = create_job(create_recipient(), status="sent")

        with pytest.raises(ConflictError):
            self.repository.transition(job.id, JobStatus.SENT, JobStatus.PENDING)

    def test_reschedule_only_pending(self):
        """Test reschedule is conditional on the pending status."""
        recipient = create_recipient()
        pending = create_job(recipient)
        sent = create_job(recipient, status="sent")
        target = self.now + timedelta(hours=3)

        assert self.repository.reschedule(pending.id, target).scheduled_for == target
        assert self.repository.reschedule(sent.id, target) is None

    def test_find_recent_sibling_matches_sent_duplicate(self):
        """Test a recently sent job with the same key is found."""
        recipient = create_recipient()
        update_id = uuid4()
        sent = create_job(
            recipient, update_id=update_id, status="sent", processed_at=self.now
        )
        other = create_job(recipient, update_id=update_id, status="processing", claimed_at=self.now)

        sibling = self.repository.find_recent_sibling(
            NotificationJobRecord.model_validate(other),
            self.now - timedelta(minutes=5),
        )

        assert sibling.id == sent.id

    def test_find_recent_sibling_ignores_other_updates_and_old_sends(self):
        """Test different updates and sends outside the window do not match."""
        recipient = create_recipient()
        update_id = uuid4()
        create_job(recipient, update_id=uuid4(), status="sent", processed_at=self.now)
        create_job(
            recipient,
            update_id=update_id,
            status="sent",
            processed_at=self.now - timedelta(hours=1),
        )
        job = create_job(recipient, update_id=update_id, status="processing", claimed_at=self.now)

        sibling = self.repository.find_recent_sibling(
            NotificationJobRecord.model_validate(job),
            self.now - timedelta(minutes=5),
        )

        assert sibling is None

    def test_find_recent_sibling_prefers_earlier_claim(self):
        """Test of two in-flight duplicates only the later claim sees a sibling."""
        recipient = create_recipient()
        earlier = create_job(
            recipient,
            status="processing",
            claimed_at=self.now - timedelta(seconds=5),
        )
        later = create_job(recipient, status="processing", claimed_at=self.now)
        since = self.now - timedelta(minutes=5)

        assert (
            self.repository.find_recent_sibling(
                NotificationJobRecord.model_validate(later), since
            ).id
            == earlier.id
        )
        assert (
            self.repository.find_recent_sibling(
                NotificationJobRecord.model_validate(earlier), since
            )
            is None
        )

    def test_counts_and_backlog(self):
        """Test aggregate helpers used by metrics."""
        recipient = create_recipient()
        create_job(recipient, scheduled_for=self.now - timedelta(minutes=1))
        create_job(recipient, status="sent", processed_at=self.now)
        create_job(recipient, status="failed", delivery_method="sms", processed_at=self.now)

        assert self.repository.count_by("status") == {"pending": 1, "sent": 1, "failed": 1}
        assert self.repository.count_by("delivery_method") == {"email": 2, "sms": 1}
        assert self.repository.count_due(self.now) == 1
        assert self.repository.average_processing_seconds() >= 0.0
        failures = self.repository.list_recent_failures(5)
        assert [failure.delivery_method for failure in failures] == ["sms"]

    def test_count_by_rejects_unknown_fields(self):
        """Test only whitelisted fields can be grouped."""
        with pytest.raises(ValueError):
            self.repository.count_by("content")

    def test_record_and_list_attempts(self):
        """Test delivery attempts are appended and listed in order."""
        job = create_job(create_recipient())
        for outcome in ("failed", "delivered"):
            self.repository.record_attempt(
                DeliveryAttemptRecord(
                    job_id=job.id,
                    recipient_id=job.recipient_id,
                    group_id=job.group_id,
                    delivery_method="email",
                    outcome=outcome,
                    error_kind="transient" if outcome == "failed" else None,
                    duration_ms=12,
                )
            )

        attempts = self.repository.list_attempts(job.id)

        assert [attempt.outcome for attempt in attempts] == ["failed", "delivered"]
        assert attempts[0].error_kind == "transient"

    def test_list_for_recipient_filters_by_status(self):
        """Test recipient history can be narrowed by status."""
        recipient = create_recipient()
        create_job(recipient)
        failed = create_job(recipient, status="failed", failure_reason="bounced")
        create_job(create_recipient(), status="failed")

        history = self.repository.list_for_recipient(recipient.id, status="failed")

        assert [job.id for job in history] == [failed.id]
        assert history[0].failure_reason == "bounced"

    def test_list_stale_processing(self):
        """Test processing jobs claimed before the cutoff are listed."""
        recipient = create_recipient()
        stale = create_job(
            recipient, status="processing", claimed_at=self.now - timedelta(hours=1)
        )
        create_job(recipient, status="processing", claimed_at=self.now)

        stale_jobs = self.repository.list_stale_processing(self.now - timedelta(minutes=10))

        assert [job.id for job in stale_jobs] == [stale.id]
