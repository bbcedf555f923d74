from __future__ import annotations

from typing import Protocol

from django.db.models import Q

from apps.social.models import Follow
from apps.users.models import Block


class ConnectionOracle(Protocol):
    def are_connected(self, user_id: int, other_user_id: int) -> bool: ...


class FollowConnectionOracle:
    """
    Two users are connected when each follows the other and neither has
    blocked the other. A block always wins over an existing follow pair.
    """

    def are_connected(self, user_id: int, other_user_id: int) -> bool:
        if user_id == other_user_id:
            return False
        if Block.objects.between(user_id, other_user_id).exists():
            return False
        follows = Follow.objects.filter(
            Q(follower_id=user_id, followee_id=other_user_id)
            | Q(follower_id=other_user_id, followee_id=user_id)
        ).count()
        return follows == 2
