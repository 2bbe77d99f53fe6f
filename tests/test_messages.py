"""Tests for the per-report conversation thread."""

from datetime import timedelta

import pytest

from barangay_hub.models.models import ReportMessage, utcnow
from barangay_hub.services import reports as report_service
from barangay_hub.services.errors import ValidationError
from barangay_hub.services.messages import append_message, list_messages


@pytest.fixture
def report(repo, resident):
    return report_service.submit_report(
        repo, resident, category="Flooding", description="Drain clogged", priority="medium", location="Purok 3"
    )


def test_empty_thread_is_an_empty_list(repo, report):
    assert list_messages(repo, report.id) == []


def test_messages_are_listed_in_append_order(repo, report, resident, official):
    with repo.transaction():
        for i in range(5):
            sender = official if i % 2 == 0 else resident
            append_message(repo, report.id, sender.id, sender.role, f"message {i}")

    messages = list_messages(repo, report.id)

    assert [m.message for m in messages] == [f"message {i}" for i in range(5)]
    assert [m.sequence for m in messages] == [1, 2, 3, 4, 5]
    stamps = [m.created_at for m in messages]
    assert stamps == sorted(stamps)


def test_listing_is_a_pure_read(repo, report, official):
    with repo.transaction():
        append_message(repo, report.id, official.id, official.role, "first")
        append_message(repo, report.id, official.id, official.role, "second")

    first = [(m.id, m.sequence) for m in list_messages(repo, report.id)]
    second = [(m.id, m.sequence) for m in list_messages(repo, report.id)]
    assert first == second
    assert len(first) == 2


def test_created_at_never_goes_backwards(db, repo, report, official):
    future = utcnow() + timedelta(minutes=5)
    db.add(
        ReportMessage(
            report_id=report.id,
            sequence=1,
            sender_id=official.id,
            sender_role="official",
            message="clock skew",
            images=[],
            created_at=future,
        )
    )
    db.commit()

    with repo.transaction():
        message = append_message(repo, report.id, official.id, official.role, "after skew")

    assert message.sequence == 2
    assert message.created_at >= future


def test_threads_are_per_report(repo, report, resident, official):
    other = report_service.submit_report(
        repo, resident, category="Noise", description="Karaoke", priority="low", location="Purok 1"
    )
    with repo.transaction():
        append_message(repo, report.id, official.id, official.role, "for the first report")
        append_message(repo, other.id, official.id, official.role, "for the second report")

    assert [m.message for m in list_messages(repo, report.id)] == ["for the first report"]
    assert list_messages(repo, other.id)[0].sequence == 1


def test_blank_message_is_rejected(repo, report, official):
    with pytest.raises(ValidationError):
        append_message(repo, report.id, official.id, official.role, "   ")


def test_images_are_kept_in_order(repo, report, resident):
    with repo.transaction():
        append_message(repo, report.id, resident.id, resident.role, "photos", ["b.jpg", "a.jpg"])

    assert list_messages(repo, report.id)[0].images == ["b.jpg", "a.jpg"]
