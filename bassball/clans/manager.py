"""Club management: membership, roles, invites, treasury and match results.

A player belongs to at most one club. Club experience grows with match
results and drives the club level (1-10); capacity is 50 members at level 1
plus 10 per additional level.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import uuid4

from bassball.clans.models import (
    BASE_MAX_MEMBERS,
    MAX_CLUB_LEVEL,
    MEMBERS_PER_LEVEL,
    Club,
    ClubInvite,
    ClubMember,
    ClubStatus,
    ClubTreasury,
    GlobalClubStats,
    InviteStatus,
    JoinPolicy,
    MemberRole,
    TreasuryEntry,
    TreasuryEntryType,
)
from bassball.economy.models import CurrencyType
from bassball.middleware.error_handler import (
    ClubNotFoundError,
    ConflictError,
    InsufficientFundsError,
    InvalidStateError,
    InviteNotFoundError,
    LimitExceededError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from bassball.storage.repository import ModelStore, StorageBackend
from bassball.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

INVITE_TTL = timedelta(days=7)
WIN_EXPERIENCE = 100
LOSS_EXPERIENCE = 25
EXPERIENCE_PER_LEVEL = 1000

_MANAGERS = {MemberRole.OWNER, MemberRole.LEADER}


class ClanManager:
    def __init__(self, storage: StorageBackend, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._clubs = ModelStore(storage.repository("clan_clubs"), Club)
        self._invites = ModelStore(storage.repository("clan_invites"), ClubInvite)
        # player_id -> {"club_id": ...}
        self._memberships = storage.repository("clan_memberships")

    # ------------------------------------------------------------------
    # Clubs
    # ------------------------------------------------------------------

    def create_club(
        self,
        owner_id: str,
        owner_name: str,
        name: str,
        description: str = "",
        join_policy: JoinPolicy = JoinPolicy.APPROVAL,
    ) -> Club:
        if not name.strip():
            raise ValidationError("Club name must not be empty")
        self._ensure_clubless(owner_id)

        now = self._clock()
        club = Club(
            club_id=f"club_{uuid4().hex}",
            name=name,
            description=description,
            owner_id=owner_id,
            owner_name=owner_name,
            members={
                owner_id: ClubMember(
                    player_id=owner_id,
                    player_name=owner_name,
                    role=MemberRole.OWNER,
                    joined_at=now,
                )
            },
            join_policy=join_policy,
            created_at=now,
        )
        self._clubs.put(club.club_id, club)
        self._memberships.put(owner_id, {"club_id": club.club_id})
        logger.info(
            "Club %s created by %s",
            club.name,
            owner_id,
            extra={"event": "club_created", "entity_id": club.club_id},
        )
        return club

    def get_club(self, club_id: str) -> Club | None:
        return self._clubs.get(club_id)

    def get_player_club(self, player_id: str) -> Club | None:
        membership = self._memberships.get(player_id)
        return self._clubs.get(membership["club_id"]) if membership else None

    def get_club_members(self, club_id: str) -> list[ClubMember]:
        """Members ordered owner, leaders, officers, members."""
        club = self._clubs.get(club_id)
        if club is None:
            return []
        return sorted(club.members.values(), key=lambda m: m.role.rank)

    def list_clubs(self, limit: int = 100) -> list[Club]:
        """Active clubs, most wins first."""
        clubs = [c for c in self._clubs.all() if c.status == ClubStatus.ACTIVE]
        clubs.sort(key=lambda c: c.stats.total_wins, reverse=True)
        return clubs[:limit]

    def search_clubs(self, query: str) -> list[Club]:
        needle = query.lower()
        return [
            c
            for c in self.list_clubs()
            if needle in c.name.lower()
            or needle in c.description.lower()
            or needle in c.owner_name.lower()
        ]

    def get_global_stats(self) -> GlobalClubStats:
        clubs = self.list_clubs(limit=1000)
        members = sum(len(c.members) for c in clubs)
        by_members = sorted(clubs, key=lambda c: len(c.members), reverse=True)
        return GlobalClubStats(
            total_clubs=len(clubs),
            active_players=members,
            average_members_per_club=members / len(clubs) if clubs else 0.0,
            top_clubs_by_wins=[c.club_id for c in clubs[:5]],
            top_clubs_by_members=[c.club_id for c in by_members[:5]],
        )

    def disband_club(self, club_id: str, owner_id: str) -> Club:
        club = self._require_active_club(club_id)
        if club.owner_id != owner_id:
            raise PermissionDeniedError("Only the owner can disband the club", club_id=club_id)

        for member_id in club.members:
            self._memberships.delete(member_id)
        club.members.clear()
        club.status = ClubStatus.DISBANDED
        self._clubs.put(club_id, club)
        logger.info(
            "Club %s disbanded",
            club_id,
            extra={"event": "club_disbanded", "entity_id": club_id},
        )
        return club

    # ------------------------------------------------------------------
    # Invites and joining
    # ------------------------------------------------------------------

    def invite_player(
        self,
        club_id: str,
        inviter_id: str,
        player_id: str,
        player_name: str,
        message: str | None = None,
    ) -> ClubInvite:
        club = self._require_active_club(club_id)
        self._require_role(club, inviter_id, _MANAGERS, "invite players")
        self._ensure_clubless(player_id)

        now = self._clock()
        for invite in self._invites.all():
            if (
                invite.club_id == club_id
                and invite.player_id == player_id
                and invite.status == InviteStatus.PENDING
                and invite.expires_at > now
            ):
                raise ConflictError(
                    "Player already has a pending invite to this club",
                    invite_id=invite.invite_id,
                )

        invite = ClubInvite(
            invite_id=f"invite_{uuid4().hex}",
            club_id=club_id,
            club_name=club.name,
            player_id=player_id,
            player_name=player_name,
            invited_by=inviter_id,
            created_at=now,
            expires_at=now + INVITE_TTL,
            message=message,
        )
        return self._invites.put(invite.invite_id, invite)

    def accept_invite(self, invite_id: str, player_id: str, player_name: str) -> ClubMember:
        invite = self._require_pending_invite(invite_id)
        if invite.player_id != player_id:
            raise PermissionDeniedError("Invite belongs to another player", invite_id=invite_id)

        club = self._require_active_club(invite.club_id)
        member = self._add_member(club, player_id, player_name)
        invite.status = InviteStatus.ACCEPTED
        self._invites.put(invite_id, invite)
        return member

    def decline_invite(self, invite_id: str) -> ClubInvite:
        invite = self._require_pending_invite(invite_id)
        invite.status = InviteStatus.DECLINED
        return self._invites.put(invite_id, invite)

    def join_club(self, club_id: str, player_id: str, player_name: str) -> ClubMember:
        """Join without an invite; open clubs only."""
        club = self._require_active_club(club_id)
        if club.join_policy != JoinPolicy.OPEN:
            raise PermissionDeniedError(
                "Club requires an invite", club_id=club_id, join_policy=club.join_policy.value
            )
        return self._add_member(club, player_id, player_name)

    def get_player_invites(self, player_id: str) -> list[ClubInvite]:
        """Pending, unexpired invites addressed to *player_id*."""
        now = self._clock()
        return [
            i
            for i in self._invites.all()
            if i.player_id == player_id
            and i.status == InviteStatus.PENDING
            and i.expires_at > now
        ]

    # ------------------------------------------------------------------
    # Membership management
    # ------------------------------------------------------------------

    def update_member_role(
        self, club_id: str, member_id: str, new_role: MemberRole, actor_id: str
    ) -> ClubMember:
        club = self._require_active_club(club_id)
        self._require_role(club, actor_id, {MemberRole.OWNER}, "change roles")
        if new_role == MemberRole.OWNER:
            raise ValidationError("Ownership cannot be assigned through a role change")
        member = self._require_member(club, member_id)
        if member.role == MemberRole.OWNER:
            raise PermissionDeniedError("The owner's role cannot be changed")

        member.role = new_role
        self._clubs.put(club_id, club)
        return member

    def remove_member(self, club_id: str, member_id: str, actor_id: str) -> ClubMember:
        club = self._require_active_club(club_id)
        self._require_role(club, actor_id, _MANAGERS, "remove members")
        if member_id == club.owner_id:
            raise PermissionDeniedError("The owner cannot be removed")
        return self._drop_member(club, member_id)

    def leave_club(self, player_id: str) -> ClubMember:
        club = self.get_player_club(player_id)
        if club is None:
            raise NotFoundError("Player is not in a club", player_id=player_id)
        if club.owner_id == player_id:
            raise InvalidStateError("The owner must disband the club instead of leaving")
        return self._drop_member(club, player_id)

    # ------------------------------------------------------------------
    # Treasury
    # ------------------------------------------------------------------

    def deposit_to_treasury(
        self, club_id: str, player_id: str, amount: int, currency_type: CurrencyType
    ) -> ClubTreasury:
        if amount <= 0:
            raise ValidationError("Deposit amount must be positive", amount=amount)
        club = self._require_active_club(club_id)
        member = self._require_member(club, player_id)

        if currency_type is CurrencyType.SOFT:
            club.treasury.soft_balance += amount
        else:
            club.treasury.hard_balance += amount
        club.treasury.history.append(
            TreasuryEntry(
                type=TreasuryEntryType.DEPOSIT,
                amount=amount,
                currency_type=currency_type,
                description=f"Deposit by {player_id}",
                initiated_by=player_id,
                timestamp=self._clock(),
            )
        )
        member.contributions += amount
        self._clubs.put(club_id, club)
        return club.treasury

    def withdraw_from_treasury(
        self,
        club_id: str,
        actor_id: str,
        amount: int,
        currency_type: CurrencyType,
        description: str,
    ) -> ClubTreasury:
        if amount <= 0:
            raise ValidationError("Withdrawal amount must be positive", amount=amount)
        club = self._require_active_club(club_id)
        if club.owner_id != actor_id:
            raise PermissionDeniedError("Only the owner can withdraw", club_id=club_id)

        balance = club.treasury.balance(currency_type)
        if balance < amount:
            raise InsufficientFundsError(
                balance=balance, requested=amount, currency_type=currency_type.value
            )

        if currency_type is CurrencyType.SOFT:
            club.treasury.soft_balance -= amount
        else:
            club.treasury.hard_balance -= amount
        club.treasury.history.append(
            TreasuryEntry(
                type=TreasuryEntryType.WITHDRAWAL,
                amount=amount,
                currency_type=currency_type,
                description=description,
                initiated_by=actor_id,
                timestamp=self._clock(),
            )
        )
        self._clubs.put(club_id, club)
        logger.info(
            "Withdrew %d %s from club %s treasury",
            amount,
            currency_type.value,
            club_id,
            extra={"event": "treasury_withdrawal", "entity_id": club_id},
        )
        return club.treasury

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def record_match_result(
        self, club_id: str, won: bool, participant_ids: list[str] | None = None
    ) -> Club:
        """Credit a win or loss to the club and its participating members.

        All current members participate when *participant_ids* is omitted.
        """
        club = self._require_active_club(club_id)
        participants = participant_ids if participant_ids is not None else list(club.members)
        for player_id in participants:
            member = self._require_member(club, player_id)
            if won:
                member.wins += 1
            else:
                member.losses += 1

        if won:
            club.stats.total_wins += 1
        else:
            club.stats.total_losses += 1
        club.stats.recompute_win_rate()

        club.experience += WIN_EXPERIENCE if won else LOSS_EXPERIENCE
        level = min(MAX_CLUB_LEVEL, 1 + club.experience // EXPERIENCE_PER_LEVEL)
        if level > club.level:
            logger.info(
                "Club %s reached level %d",
                club_id,
                level,
                extra={"event": "club_level_up", "entity_id": club_id},
            )
        club.level = level
        club.max_members = BASE_MAX_MEMBERS + MEMBERS_PER_LEVEL * (level - 1)

        return self._clubs.put(club_id, club)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_clubless(self, player_id: str) -> None:
        if self._memberships.get(player_id) is not None:
            raise ConflictError("Player is already in a club", player_id=player_id)

    def _add_member(self, club: Club, player_id: str, player_name: str) -> ClubMember:
        self._ensure_clubless(player_id)
        if club.is_full:
            raise LimitExceededError(
                "Club is full", club_id=club.club_id, max_members=club.max_members
            )

        member = ClubMember(player_id=player_id, player_name=player_name, joined_at=self._clock())
        club.members[player_id] = member
        self._clubs.put(club.club_id, club)
        self._memberships.put(player_id, {"club_id": club.club_id})
        logger.info(
            "%s joined club %s",
            player_id,
            club.club_id,
            extra={"event": "club_member_joined", "entity_id": club.club_id},
        )
        return member

    def _drop_member(self, club: Club, member_id: str) -> ClubMember:
        member = self._require_member(club, member_id)
        # club totals count matches, so they stay with the club
        del club.members[member_id]
        self._clubs.put(club.club_id, club)
        self._memberships.delete(member_id)
        logger.info(
            "%s left club %s",
            member_id,
            club.club_id,
            extra={"event": "club_member_left", "entity_id": club.club_id},
        )
        return member

    def _require_active_club(self, club_id: str) -> Club:
        club = self._clubs.get(club_id)
        if club is None:
            raise ClubNotFoundError(club_id=club_id)
        if club.status != ClubStatus.ACTIVE:
            raise InvalidStateError(
                f"Club is {club.status.value}", club_id=club_id, status=club.status.value
            )
        return club

    @staticmethod
    def _require_member(club: Club, player_id: str) -> ClubMember:
        member = club.members.get(player_id)
        if member is None:
            raise NotFoundError(
                "Player is not a member of this club", club_id=club.club_id, player_id=player_id
            )
        return member

    @staticmethod
    def _require_role(club: Club, actor_id: str, roles: set[MemberRole], action: str) -> None:
        actor = club.members.get(actor_id)
        if actor is None or actor.role not in roles:
            raise PermissionDeniedError(
                f"Not allowed to {action}", club_id=club.club_id, actor_id=actor_id
            )

    def _require_pending_invite(self, invite_id: str) -> ClubInvite:
        invite = self._invites.get(invite_id)
        if invite is None:
            raise InviteNotFoundError(invite_id=invite_id)
        if invite.status == InviteStatus.PENDING and self._clock() > invite.expires_at:
            invite.status = InviteStatus.EXPIRED
            self._invites.put(invite_id, invite)
        if invite.status != InviteStatus.PENDING:
            raise InvalidStateError(
                f"Invite is {invite.status.value}",
                invite_id=invite_id,
                status=invite.status.value,
            )
        return invite
