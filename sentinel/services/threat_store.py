"""
Threat store for Global Sentinel.

This module wraps the SQLAlchemy session in an async interface. Blocking
database work runs in worker threads, every call is bounded by a timeout,
and vote updates are serialized per record.
"""

import asyncio
import threading
import weakref
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import desc, func, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sentinel.core.config import settings
from sentinel.core.database import Database
from sentinel.core.errors import ConflictError, NotFoundError, StoreError
from sentinel.core.logging import logger
from sentinel.models.threat import Threat, ThreatStatus, ThreatType
from sentinel.models.vote import VoteAudit, VoteKind
from sentinel.schemas.threat import ThreatRecord, VoteAuditEntry
from sentinel.services.sanitizer import normalize

# Receives the current record, returns the updated record and its audit entry
VoteMutation = Callable[[ThreatRecord], Tuple[ThreatRecord, VoteAuditEntry]]


def _to_record(threat: Threat) -> ThreatRecord:
    # Older rows may lack optional fields; normalize fills the defaults
    return ThreatRecord.model_validate(normalize(threat.to_payload()))


def _to_audit_entry(row: VoteAudit) -> VoteAuditEntry:
    return VoteAuditEntry(
        id=row.id,
        threat_id=row.threat_id,
        voter_id=row.voter_id,
        vote_kind=row.vote_kind,
        reasoning=row.reasoning,
        credibility_score=row.credibility_score,
        timestamp=row.timestamp,
    )


class CommitGuard:
    """
    Hand-off between a write running in a worker thread and the caller
    awaiting it.

    Once the caller gives up on a write, the worker must not commit it. Once
    the worker has started committing, the caller waits for the outcome.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.abandoned = False
        self.committing = False

    def begin_commit(self) -> bool:
        """Called by the worker right before commit. False means roll back."""
        with self._lock:
            if self.abandoned:
                return False
            self.committing = True
            return True

    def abandon(self) -> bool:
        """Called by the caller on timeout. False means the commit already started."""
        with self._lock:
            if self.committing:
                return False
            self.abandoned = True
            return True


def _log_abandoned(task: "asyncio.Future") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Abandoned store write ended with: {task.exception()}")


class ThreatStore:
    """
    Shared store of threat records and their vote audit trail.
    """

    def __init__(
        self,
        database: Database,
        timeout: Optional[float] = None,
        cas_retries: Optional[int] = None,
    ):
        """
        Initialize the store.

        Args:
            database: Initialized store handle.
            timeout: Seconds allowed per store call.
            cas_retries: Attempts for a compare-and-swap vote update.
        """
        self.database = database
        self.timeout = timeout if timeout is not None else settings.STORE_TIMEOUT
        self.cas_retries = cas_retries if cas_retries is not None else settings.VOTE_CAS_RETRIES
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, threat_id: str) -> asyncio.Lock:
        lock = self._locks.get(threat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[threat_id] = lock
        return lock

    async def _run(self, operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        return await self._call(operation, fn, args, None)

    async def _write(self, operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        # The sync function receives the guard as its last argument
        guard = CommitGuard()
        return await self._call(operation, fn, args + (guard,), guard)

    async def _call(
        self,
        operation: str,
        fn: Callable[..., Any],
        args: Tuple[Any, ...],
        guard: Optional[CommitGuard],
    ) -> Any:
        # Worker threads cannot be interrupted; the shield keeps the task
        # observable after wait_for gives up on it
        task = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        try:
            try:
                return await asyncio.wait_for(asyncio.shield(task), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                if guard is None or guard.abandon():
                    task.add_done_callback(_log_abandoned)
                    logger.error(f"Store operation '{operation}' timed out after {self.timeout}s")
                    raise StoreError(
                        f"Store operation '{operation}' timed out after {self.timeout}s",
                        reason="timeout",
                    ) from e
                # Commit already under way, its outcome stands
                logger.warning(f"Store operation '{operation}' overran {self.timeout}s while committing")
            return await task
        except SQLAlchemyError as e:
            logger.error(f"Store operation '{operation}' failed: {e}")
            raise StoreError(f"Store operation '{operation}' failed: {e}", reason="database") from e

    # Writes

    def _insert_sync(self, record: ThreatRecord, guard: CommitGuard) -> None:
        with self.database.session() as db:
            if db.get(Threat, record.id) is not None:
                raise ConflictError(record.id)
            db.add(Threat(
                id=record.id,
                title=record.title,
                type=record.type,
                severity=record.severity,
                summary=record.summary,
                regions=record.regions,
                sources=record.sources,
                verifications=record.verifications,
                simulations=record.simulations,
                provenance=record.provenance,
                timestamp=record.timestamp,
                status=record.status,
                votes_confirm=record.votes.confirm,
                votes_deny=record.votes.deny,
                votes_skeptical=record.votes.skeptical,
                credibility_score=record.credibility_score,
                last_vote_timestamp=record.last_vote_timestamp,
                version=0,
            ))
            if not guard.begin_commit():
                db.rollback()
                logger.warning(f"Insert of {record.id} rolled back after timeout")
                return
            try:
                db.commit()
            except IntegrityError as e:
                # Lost a race against a concurrent insert of the same id
                db.rollback()
                raise ConflictError(record.id) from e

    async def insert(self, record: ThreatRecord) -> None:
        """
        Insert a new threat record.

        Args:
            record: Validated record with its final id.

        Raises:
            ConflictError: If the id is already taken.
            StoreError: On persistence failure or timeout.
        """
        await self._write("insert", self._insert_sync, record)

    def _apply_vote_sync(
        self, threat_id: str, mutate: VoteMutation, guard: CommitGuard
    ) -> Optional[ThreatRecord]:
        for attempt in range(1, self.cas_retries + 1):
            if guard.abandoned:
                return None
            with self.database.session() as db:
                threat = db.get(Threat, threat_id)
                if threat is None:
                    raise NotFoundError(threat_id)

                expected_version = threat.version
                updated, audit = mutate(_to_record(threat))

                result = db.execute(
                    update(Threat)
                    .where(Threat.id == threat_id, Threat.version == expected_version)
                    .values(
                        votes_confirm=updated.votes.confirm,
                        votes_deny=updated.votes.deny,
                        votes_skeptical=updated.votes.skeptical,
                        credibility_score=updated.credibility_score,
                        status=ThreatStatus(updated.status),
                        last_vote_timestamp=updated.last_vote_timestamp,
                        version=expected_version + 1,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    db.rollback()
                    logger.debug(f"Vote CAS conflict on {threat_id}, attempt {attempt}")
                    continue

                db.add(VoteAudit(
                    threat_id=threat_id,
                    voter_id=audit.voter_id,
                    vote_kind=VoteKind(audit.vote_kind),
                    reasoning=audit.reasoning,
                    credibility_score=audit.credibility_score,
                    timestamp=audit.timestamp,
                ))
                if not guard.begin_commit():
                    db.rollback()
                    logger.warning(f"Vote on {threat_id} rolled back after timeout")
                    return None
                db.commit()
                return updated

        raise StoreError(
            f"Concurrent updates on {threat_id} did not settle after {self.cas_retries} attempts",
            reason="contention",
            threat_id=threat_id,
        )

    async def apply_vote(self, threat_id: str, mutate: VoteMutation) -> ThreatRecord:
        """
        Atomically apply a vote mutation to one record.

        The counters, score, status, last vote time and audit entry are
        committed together or not at all. A call that times out before its
        commit starts is rolled back.

        Args:
            threat_id: Record to update.
            mutate: Pure function computing the new state from the current one.

        Returns:
            The updated record.

        Raises:
            NotFoundError: If the record does not exist.
            StoreError: On persistence failure, timeout or persistent contention.
        """
        async with self._lock_for(threat_id):
            return await self._write("apply_vote", self._apply_vote_sync, threat_id, mutate)

    # Reads

    def _get_sync(self, threat_id: str) -> ThreatRecord:
        with self.database.session() as db:
            threat = db.get(Threat, threat_id)
            if threat is None:
                raise NotFoundError(threat_id)
            return _to_record(threat)

    async def get(self, threat_id: str) -> ThreatRecord:
        """
        Fetch a record by id.

        Raises:
            NotFoundError: If the record does not exist.
        """
        return await self._run("get", self._get_sync, threat_id)

    def _list_sync(
        self,
        status: Optional[ThreatStatus],
        threat_type: Optional[ThreatType],
        min_severity: Optional[int],
        skip: int,
        limit: int,
    ) -> List[ThreatRecord]:
        with self.database.session() as db:
            query = db.query(Threat)
            if status:
                query = query.filter(Threat.status == status)
            if threat_type:
                query = query.filter(Threat.type == threat_type)
            if min_severity is not None:
                query = query.filter(Threat.severity >= min_severity)
            query = query.order_by(desc(Threat.created_at))
            return [_to_record(threat) for threat in query.offset(skip).limit(limit).all()]

    async def list_threats(
        self,
        status: Optional[ThreatStatus] = ThreatStatus.ACTIVE,
        threat_type: Optional[ThreatType] = None,
        min_severity: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ThreatRecord]:
        """
        List records newest first. Defaults to active threats only.
        """
        return await self._run(
            "list_threats", self._list_sync, status, threat_type, min_severity, skip, limit
        )

    def _votes_sync(self, threat_id: str, limit: int) -> List[VoteAuditEntry]:
        with self.database.session() as db:
            if db.get(Threat, threat_id) is None:
                raise NotFoundError(threat_id)
            rows = (
                db.query(VoteAudit)
                .filter(VoteAudit.threat_id == threat_id)
                .order_by(desc(VoteAudit.created_at), desc(VoteAudit.timestamp))
                .limit(limit)
                .all()
            )
            return [_to_audit_entry(row) for row in rows]

    async def list_votes(self, threat_id: str, limit: int = 100) -> List[VoteAuditEntry]:
        """
        Audit trail of a record, newest first.

        Raises:
            NotFoundError: If the record does not exist.
        """
        return await self._run("list_votes", self._votes_sync, threat_id, limit)

    def _stats_sync(self) -> Dict[str, Any]:
        with self.database.session() as db:
            by_status = {status.value: 0 for status in ThreatStatus}
            for status, count in db.query(Threat.status, func.count(Threat.id)).group_by(Threat.status):
                by_status[ThreatStatus(status).value] = count

            by_type = {threat_type.value: 0 for threat_type in ThreatType}
            for threat_type, count in db.query(Threat.type, func.count(Threat.id)).group_by(Threat.type):
                by_type[ThreatType(threat_type).value] = count

            avg_severity = db.query(func.avg(Threat.severity)).scalar() or 0
            avg_credibility = db.query(func.avg(Threat.credibility_score)).scalar() or 0
            total_votes = db.query(func.count(VoteAudit.id)).scalar() or 0

            return {
                "total_count": sum(by_status.values()),
                "by_status": by_status,
                "by_type": by_type,
                "avg_severity": round(float(avg_severity), 1),
                "avg_credibility": round(float(avg_credibility), 1),
                "total_votes": total_votes,
            }

    async def stats(self) -> Dict[str, Any]:
        """Counts by status and type plus averages."""
        return await self._run("stats", self._stats_sync)

    def _ping_sync(self) -> bool:
        with self.database.session() as db:
            db.execute(text("SELECT 1"))
        return True

    async def ping(self) -> bool:
        """Round-trip to the database."""
        return await self._run("ping", self._ping_sync)
