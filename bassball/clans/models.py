"""Club, membership, invite and treasury models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from bassball.economy.models import CurrencyType

BASE_MAX_MEMBERS = 50
MEMBERS_PER_LEVEL = 10
MAX_CLUB_LEVEL = 10


class MemberRole(str, Enum):
    OWNER = "owner"
    LEADER = "leader"
    OFFICER = "officer"
    MEMBER = "member"

    @property
    def rank(self) -> int:
        return _ROLE_ORDER[self]


_ROLE_ORDER = {
    MemberRole.OWNER: 0,
    MemberRole.LEADER: 1,
    MemberRole.OFFICER: 2,
    MemberRole.MEMBER: 3,
}


class ClubStatus(str, Enum):
    ACTIVE = "active"
    DISBANDED = "disbanded"
    SUSPENDED = "suspended"


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class JoinPolicy(str, Enum):
    OPEN = "open"
    APPROVAL = "approval"
    PRIVATE = "private"


class TreasuryEntryType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class ClubMember(BaseModel):
    player_id: str
    player_name: str
    role: MemberRole = MemberRole.MEMBER
    joined_at: datetime
    contributions: int = 0
    wins: int = 0
    losses: int = 0


class TreasuryEntry(BaseModel):
    type: TreasuryEntryType
    amount: int
    currency_type: CurrencyType
    description: str
    initiated_by: str
    timestamp: datetime


class ClubTreasury(BaseModel):
    soft_balance: int = 0
    hard_balance: int = 0
    history: list[TreasuryEntry] = Field(default_factory=list)

    def balance(self, currency_type: CurrencyType) -> int:
        return self.soft_balance if currency_type is CurrencyType.SOFT else self.hard_balance


class ClubStats(BaseModel):
    total_wins: int = 0
    total_losses: int = 0
    win_rate: float = 0.0  # percent

    def recompute_win_rate(self) -> None:
        played = self.total_wins + self.total_losses
        self.win_rate = round(self.total_wins / played * 100, 2) if played else 0.0


class Club(BaseModel):
    club_id: str
    name: str
    description: str = ""
    owner_id: str
    owner_name: str
    members: dict[str, ClubMember] = Field(default_factory=dict)
    treasury: ClubTreasury = Field(default_factory=ClubTreasury)
    status: ClubStatus = ClubStatus.ACTIVE
    level: int = Field(default=1, ge=1, le=MAX_CLUB_LEVEL)
    experience: int = 0
    join_policy: JoinPolicy = JoinPolicy.APPROVAL
    max_members: int = BASE_MAX_MEMBERS
    stats: ClubStats = Field(default_factory=ClubStats)
    created_at: datetime

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.max_members


class ClubInvite(BaseModel):
    invite_id: str
    club_id: str
    club_name: str
    player_id: str
    player_name: str
    invited_by: str
    status: InviteStatus = InviteStatus.PENDING
    created_at: datetime
    expires_at: datetime
    message: str | None = None


class GlobalClubStats(BaseModel):
    total_clubs: int
    active_players: int
    average_members_per_club: float
    top_clubs_by_wins: list[str]
    top_clubs_by_members: list[str]
