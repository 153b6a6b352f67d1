"""Clubs, memberships and club treasuries."""

from bassball.clans.manager import ClanManager
from bassball.clans.models import (
    Club,
    ClubInvite,
    ClubMember,
    ClubStatus,
    InviteStatus,
    JoinPolicy,
    MemberRole,
)

__all__ = [
    "ClanManager",
    "Club",
    "ClubInvite",
    "ClubMember",
    "ClubStatus",
    "InviteStatus",
    "JoinPolicy",
    "MemberRole",
]
