from __future__ import annotations

import pytest

from apps.matching.services.connections import FollowConnectionOracle
from apps.social.models import Follow
from apps.users.models import Block

pytestmark = pytest.mark.django_db


def test_mutual_follow_is_connected(pair):
    alice, bob = pair
    oracle = FollowConnectionOracle()

    assert oracle.are_connected(alice.id, bob.id) is True
    assert oracle.are_connected(bob.id, alice.id) is True


def test_one_way_follow_is_not_connected(make_user):
    alice, bob = make_user(), make_user()
    Follow.objects.create(follower=alice, followee=bob)

    assert FollowConnectionOracle().are_connected(alice.id, bob.id) is False


def test_block_in_either_direction_disconnects(pair):
    alice, bob = pair
    Block.objects.create(user=alice, target=bob)

    assert FollowConnectionOracle().are_connected(bob.id, alice.id) is False


def test_user_is_never_connected_to_self(make_user):
    alice = make_user()

    assert FollowConnectionOracle().are_connected(alice.id, alice.id) is False
