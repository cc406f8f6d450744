"""Reward claim business logic.

A reward has one canonical record, ``reward_claims``, moving from pending to
claimed exactly once. Older readers still look at ``winners.claimed`` and
``winners.claim_tx_hash``, so every transition writes the claim, the winner
mirror and a ``claim_events`` audit row in a single transaction: either all
three land or none do.

Rewards created before ``reward_claims`` existed are addressed as
``"winner-<winner id>"``. They are folded into the canonical table the first
time they are claimed, or in bulk by ``reconcile_legacy_claims``.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy import and_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import LEGACY_WINNER_PREFIX
from app.core.exceptions import AlreadyClaimed, NotFoundError, ServiceError, ValidationError
from app.core.logging_config import get_logger
from app.core.utils import isoformat, utcnow
from app.db.models import CLAIM_CLAIMED, CLAIM_PENDING, ClaimEvent, Quiz, RewardClaim, Winner
from app.services.utils import store_failure, violated_constraint

logger = get_logger(__name__)

ClaimRef = Union[int, str]


@dataclass
class ClaimResult:
    claim_id: int
    quiz_id: int
    tx_ref: str
    status: str
    claimed_at: datetime


@dataclass
class BatchEntryResult:
    claim_id: ClaimRef
    success: bool
    tx_ref: Optional[str] = None
    replay: bool = False
    error_code: Optional[str] = None
    error: Optional[str] = None


@dataclass
class BatchClaimResult:
    succeeded: int = 0
    failed: int = 0
    results: List[BatchEntryResult] = field(default_factory=list)


@dataclass
class ReconcileReport:
    created: int = 0
    mirrored: int = 0
    promoted: int = 0


def _claim_from_winner(winner: Winner) -> RewardClaim:
    """Canonical row for a legacy winner, carrying over its claim state."""
    claimed = bool(winner.claimed and winner.claim_tx_hash)
    return RewardClaim(
        quiz_id=winner.quiz_id,
        winner_id=winner.id,
        wallet_address=winner.wallet_address,
        user_key=winner.user_key,
        pool_tier=winner.pool_tier,
        rank_in_pool=winner.rank_in_pool,
        reward_amount=winner.reward_amount,
        status=CLAIM_CLAIMED if claimed else CLAIM_PENDING,
        tx_hash=winner.claim_tx_hash if claimed else None,
        claimed_at=(winner.claimed_at or utcnow()) if claimed else None,
    )


def _resolve_claim(db: Session, claim_ref: ClaimRef, wallet_address: str) -> RewardClaim:
    """
    Load the canonical claim a reference points at.

    A legacy ``winner-<id>`` reference without a canonical row gets one
    added to the session (not committed); the caller's transaction decides
    whether it persists.
    """
    if isinstance(claim_ref, str) and claim_ref.startswith(LEGACY_WINNER_PREFIX):
        try:
            winner_id = int(claim_ref[len(LEGACY_WINNER_PREFIX):])
        except ValueError:
            raise NotFoundError("Reward", claim_ref)

        winner = (
            db.query(Winner)
            .filter(Winner.id == winner_id, Winner.wallet_address == wallet_address)
            .first()
        )
        if not winner:
            raise NotFoundError("Reward", claim_ref)

        canonical = (
            db.query(RewardClaim)
            .filter(RewardClaim.quiz_id == winner.quiz_id, RewardClaim.wallet_address == wallet_address)
        )
        claim = canonical.first()
        if claim is None:
            claim = _claim_from_winner(winner)
            db.add(claim)
            try:
                db.flush()
            except IntegrityError as exc:
                if not violated_constraint(exc, RewardClaim, "uq_claim_quiz_wallet"):
                    raise
                # Adopted by a concurrent request; the adoption is the first
                # write of this transaction, so rolling back loses nothing
                db.rollback()
                logger.info("legacy_claim_adopted_concurrently", winner_id=winner_id, wallet=wallet_address)
                return canonical.one()
            if claim.status == CLAIM_CLAIMED:
                db.add(ClaimEvent(
                    claim_id=claim.id,
                    wallet_address=wallet_address,
                    tx_hash=claim.tx_hash,
                    source="legacy",
                ))
            logger.info("legacy_claim_adopted", claim_id=claim.id, winner_id=winner.id, status=claim.status)
        return claim

    try:
        claim_id = int(claim_ref)
    except (TypeError, ValueError):
        raise NotFoundError("Reward", claim_ref)

    claim = (
        db.query(RewardClaim)
        .filter(RewardClaim.id == claim_id, RewardClaim.wallet_address == wallet_address)
        .first()
    )
    if not claim:
        raise NotFoundError("Reward", claim_ref)
    return claim


def record_claim(
    db: Session,
    claim_ref: ClaimRef,
    wallet_address: str,
    tx_ref: str,
    now: Optional[datetime] = None,
) -> ClaimResult:
    """
    Mark a reward as claimed by an on-chain transaction.

    The transition is a conditional UPDATE on ``status = 'pending'``, so of
    any number of concurrent or repeated requests exactly one performs it.

    Raises:
        ValidationError: empty transaction reference
        NotFoundError: no reward with this id for this wallet
        AlreadyClaimed: the reward was already claimed. ``replay`` tells a
            repeat of the same transaction (safe to treat as success) from a
            different transaction (a conflict)
        StoreError: database failure, nothing recorded
    """
    if not tx_ref:
        raise ValidationError("Transaction hash required")

    now = now or utcnow()

    try:
        claim = _resolve_claim(db, claim_ref, wallet_address)
        claim_id, quiz_id = claim.id, claim.quiz_id

        result = db.execute(
            update(RewardClaim)
            .where(
                RewardClaim.id == claim_id,
                RewardClaim.wallet_address == wallet_address,
                RewardClaim.status == CLAIM_PENDING,
            )
            .values(status=CLAIM_CLAIMED, tx_hash=tx_ref, claimed_at=now)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 1:
            db.execute(
                update(Winner)
                .where(Winner.quiz_id == quiz_id, Winner.wallet_address == wallet_address)
                .values(claimed=True, claim_tx_hash=tx_ref, claimed_at=now)
                .execution_options(synchronize_session=False)
            )
            db.add(ClaimEvent(claim_id=claim_id, wallet_address=wallet_address, tx_hash=tx_ref, source="claim"))
            db.commit()

            logger.info("reward_claimed", claim_id=claim_id, quiz_id=quiz_id, wallet=wallet_address, tx_hash=tx_ref)
            return ClaimResult(claim_id=claim_id, quiz_id=quiz_id, tx_ref=tx_ref, status=CLAIM_CLAIMED, claimed_at=now)

        # Keeps a legacy row adopted above; otherwise there is nothing to write
        db.commit()
        existing_tx = (
            db.query(RewardClaim.tx_hash)
            .filter(RewardClaim.id == claim_id)
            .scalar()
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "record_claim") from exc

    replay = (existing_tx or "").lower() == tx_ref.lower()
    if replay:
        logger.info("reward_claim_replayed", claim_id=claim_id, wallet=wallet_address, tx_hash=tx_ref)
    else:
        logger.warning(
            "reward_claim_conflict",
            claim_id=claim_id,
            wallet=wallet_address,
            tx_hash=tx_ref,
            existing_tx_hash=existing_tx,
        )
    raise AlreadyClaimed("Reward already claimed", existing_tx_ref=existing_tx, replay=replay, claim_id=claim_id)


def record_claim_batch(
    db: Session,
    wallet_address: str,
    entries: Iterable[Tuple[ClaimRef, str]],
    now: Optional[datetime] = None,
) -> BatchClaimResult:
    """
    Apply record_claim to each (claim_id, tx_ref) entry independently.

    Best effort: every entry is attempted in its own transaction no matter
    how earlier entries fared. A replay of an already-recorded claim counts
    as a success.
    """
    batch = BatchClaimResult()

    for claim_ref, tx_ref in entries:
        try:
            outcome = record_claim(db, claim_ref, wallet_address, tx_ref, now=now)
            entry = BatchEntryResult(claim_id=claim_ref, success=True, tx_ref=outcome.tx_ref)
        except AlreadyClaimed as exc:
            entry = BatchEntryResult(
                claim_id=claim_ref,
                success=exc.replay,
                tx_ref=exc.existing_tx_ref,
                replay=exc.replay,
                error_code=None if exc.replay else exc.code,
                error=None if exc.replay else exc.message,
            )
        except ServiceError as exc:
            entry = BatchEntryResult(claim_id=claim_ref, success=False, error_code=exc.code, error=exc.message)

        batch.results.append(entry)
        if entry.success:
            batch.succeeded += 1
        else:
            batch.failed += 1

    logger.info(
        "claim_batch_processed",
        wallet=wallet_address,
        succeeded=batch.succeeded,
        failed=batch.failed,
    )
    return batch


def list_rewards(db: Session, wallet_address: str) -> Dict[str, Any]:
    """
    Every reward of a wallet, canonical claims merged with legacy winners.

    Legacy winners without a canonical row appear as ``winner-<id>``.
    Totals are summed as integers in base units.
    """
    try:
        claims = (
            db.query(RewardClaim, Quiz, Winner)
            .join(Quiz, Quiz.id == RewardClaim.quiz_id)
            .outerjoin(Winner, and_(
                Winner.quiz_id == RewardClaim.quiz_id,
                Winner.wallet_address == RewardClaim.wallet_address,
            ))
            .filter(RewardClaim.wallet_address == wallet_address)
            .order_by(RewardClaim.created_at.desc(), RewardClaim.id.desc())
            .all()
        )
        legacy = (
            db.query(Winner, Quiz)
            .join(Quiz, Quiz.id == Winner.quiz_id)
            .outerjoin(RewardClaim, and_(
                RewardClaim.quiz_id == Winner.quiz_id,
                RewardClaim.wallet_address == Winner.wallet_address,
            ))
            .filter(
                Winner.wallet_address == wallet_address,
                RewardClaim.id.is_(None),
                Quiz.winner_limit.isnot(None),
            )
            .order_by(Winner.created_at.desc(), Winner.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "list_rewards") from exc

    rewards = []
    for claim, quiz, winner in claims:
        rewards.append({
            "id": str(claim.id),
            "quiz_id": quiz.id,
            "quiz_title": quiz.title,
            "amount": claim.reward_amount,
            "token": quiz.reward_token,
            "slot": winner.slot if winner else None,
            "pool_tier": claim.pool_tier,
            "rank_in_pool": claim.rank_in_pool,
            "status": claim.status,
            "tx_hash": claim.tx_hash,
            "completed_at": isoformat(claim.created_at),
            "contract_quiz_id": quiz.contract_quiz_id,
        })

    for winner, quiz in legacy:
        rewards.append({
            "id": f"{LEGACY_WINNER_PREFIX}{winner.id}",
            "quiz_id": quiz.id,
            "quiz_title": quiz.title,
            "amount": winner.reward_amount,
            "token": quiz.reward_token,
            "slot": winner.slot,
            "pool_tier": winner.pool_tier,
            "rank_in_pool": winner.rank_in_pool,
            "status": CLAIM_CLAIMED if winner.claimed else CLAIM_PENDING,
            "tx_hash": winner.claim_tx_hash,
            "completed_at": isoformat(winner.created_at),
            "contract_quiz_id": quiz.contract_quiz_id,
        })

    pending = [r for r in rewards if r["status"] == CLAIM_PENDING]
    claimed = [r for r in rewards if r["status"] == CLAIM_CLAIMED]

    return {
        "rewards": rewards,
        "summary": {
            "total_pending": str(sum(int(r["amount"]) for r in pending)),
            "total_claimed": str(sum(int(r["amount"]) for r in claimed)),
            "pending_count": len(pending),
            "claimed_count": len(claimed),
        },
    }


def reconcile_legacy_claims(db: Session, now: Optional[datetime] = None) -> ReconcileReport:
    """
    Bring winners and reward_claims back into agreement.

    - winners of finite quizzes with no canonical row get one (claimed if
      the winner row says so, with an audit event)
    - canonical claims marked claimed are mirrored onto their winner
    - pending claims whose winner was marked claimed by a legacy write are
      advanced to claimed with the winner's transaction hash

    Runs as one transaction; safe to run repeatedly.
    """
    now = now or utcnow()
    report = ReconcileReport()

    try:
        orphans = (
            db.query(Winner)
            .join(Quiz, Quiz.id == Winner.quiz_id)
            .outerjoin(RewardClaim, and_(
                RewardClaim.quiz_id == Winner.quiz_id,
                RewardClaim.wallet_address == Winner.wallet_address,
            ))
            .filter(RewardClaim.id.is_(None), Quiz.winner_limit.isnot(None))
            .all()
        )
        for winner in orphans:
            claim = _claim_from_winner(winner)
            db.add(claim)
            db.flush()
            if claim.status == CLAIM_CLAIMED:
                db.add(ClaimEvent(
                    claim_id=claim.id,
                    wallet_address=claim.wallet_address,
                    tx_hash=claim.tx_hash,
                    source="reconcile",
                ))
            report.created += 1

        pairs = (
            db.query(RewardClaim, Winner)
            .join(Winner, and_(
                Winner.quiz_id == RewardClaim.quiz_id,
                Winner.wallet_address == RewardClaim.wallet_address,
            ))
            .filter(RewardClaim.status == CLAIM_CLAIMED, Winner.claimed.is_(False))
            .all()
        )
        for claim, winner in pairs:
            winner.claimed = True
            winner.claim_tx_hash = claim.tx_hash
            winner.claimed_at = claim.claimed_at or now
            report.mirrored += 1

        stranded = (
            db.query(RewardClaim, Winner)
            .join(Winner, and_(
                Winner.quiz_id == RewardClaim.quiz_id,
                Winner.wallet_address == RewardClaim.wallet_address,
            ))
            .filter(
                RewardClaim.status == CLAIM_PENDING,
                Winner.claimed.is_(True),
                Winner.claim_tx_hash.isnot(None),
            )
            .all()
        )
        for claim, winner in stranded:
            claim.status = CLAIM_CLAIMED
            claim.tx_hash = winner.claim_tx_hash
            claim.claimed_at = winner.claimed_at or now
            db.add(ClaimEvent(
                claim_id=claim.id,
                wallet_address=claim.wallet_address,
                tx_hash=winner.claim_tx_hash,
                source="reconcile",
            ))
            report.promoted += 1

        db.commit()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "reconcile_legacy_claims") from exc

    logger.info(
        "claims_reconciled",
        created=report.created,
        mirrored=report.mirrored,
        promoted=report.promoted,
    )
    return report
