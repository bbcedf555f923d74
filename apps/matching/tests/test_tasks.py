from __future__ import annotations

import io
from unittest.mock import patch

import pytest
from django.core.management import call_command

from apps.matching.models import MatchRelationship
from apps.matching.tasks import sweep_expired_unlike_requests

pytestmark = pytest.mark.django_db


@pytest.fixture
def overdue_match(lifecycle, pair, clock):
    alice, bob = pair
    lifecycle.like(alice.id, bob.id)
    lifecycle.like(bob.id, alice.id)
    for _ in range(3):
        lifecycle.unlike(alice.id, bob.id)
        clock.advance(days=3)
    return MatchRelationship.objects.get()


@pytest.fixture
def patched_lifecycle(lifecycle):
    with patch("apps.matching.tasks.get_match_lifecycle", return_value=lifecycle), patch(
        "apps.matching.management.commands.sweep_match_unlikes.get_match_lifecycle", return_value=lifecycle
    ):
        yield lifecycle


def test_sweep_task_ends_overdue_matches(overdue_match, patched_lifecycle):
    result = sweep_expired_unlike_requests.apply().get()

    assert result == {"unmatched": 1, "reasons": ["auto_unlike_timeout"]}
    overdue_match.refresh_from_db()
    assert overdue_match.status == MatchRelationship.Status.UNMATCHED


def test_sweep_task_without_overdue_matches(patched_lifecycle):
    assert sweep_expired_unlike_requests() == {"unmatched": 0, "reasons": []}


def test_command_dry_run_lists_without_ending(overdue_match, patched_lifecycle):
    out = io.StringIO()
    call_command("sweep_match_unlikes", "--dry-run", stdout=out)

    assert f"overdue: {overdue_match.user_a_id}:{overdue_match.user_b_id}" in out.getvalue()
    overdue_match.refresh_from_db()
    assert overdue_match.is_active


def test_command_ends_overdue_matches(overdue_match, patched_lifecycle):
    out = io.StringIO()
    call_command("sweep_match_unlikes", stdout=out)

    assert "Ended 1 overdue matches." in out.getvalue()
    overdue_match.refresh_from_db()
    assert overdue_match.status == MatchRelationship.Status.UNMATCHED
