"""
Diff-based sync engine.

Makes a target collection's membership match the union of one or more
source collections. A run goes through fetch, diff and apply; mutations
that already succeeded are never rolled back, and re-running is always
safe because every run diffs against the current remote state.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Optional

from ..steam.client import SteamCollectionClient
from ..steam.session import SessionProvider
from .diff import Direction, ItemDiff, compute_diff
from .expander import CollectionExpander, CollectionSnapshot, VisitedSet

logger = logging.getLogger(__name__)


class SyncPhase(Enum):
    """Phases of a single sync run."""
    IDLE = auto()
    FETCHING = auto()
    DIFFING = auto()
    APPLYING = auto()
    SUCCEEDED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class Mutation:
    """A membership change dispatched against the target collection."""
    collection_id: str
    item_id: str
    direction: Direction

    def __str__(self) -> str:
        return f"{self.direction.value} {self.item_id} -> {self.collection_id}"


@dataclass
class SyncResult:
    """
    Outcome of a sync run.

    Attributes:
        target_id: Collection that was synchronized
        diff: Changes computed for this run
        dispatched: Mutations handed to the remote
        applied: Mutations the remote accepted
        failed: Mutations the remote rejected or that could not be sent
        error: First failure observed while applying, None on success
        phase: Final phase of the run
    """
    target_id: str
    diff: list[ItemDiff] = field(default_factory=list)
    dispatched: list[Mutation] = field(default_factory=list)
    applied: list[Mutation] = field(default_factory=list)
    failed: list[Mutation] = field(default_factory=list)
    error: Optional[Exception] = None
    phase: SyncPhase = SyncPhase.IDLE

    @property
    def succeeded(self) -> bool:
        return self.phase is SyncPhase.SUCCEEDED

    @property
    def added(self) -> list[str]:
        return [m.item_id for m in self.applied if m.direction is Direction.ADD]

    @property
    def removed(self) -> list[str]:
        return [m.item_id for m in self.applied if m.direction is Direction.REMOVE]

    def raise_for_error(self) -> None:
        """Re-raise the recorded failure, if any."""
        if self.error is not None:
            raise self.error

    def __str__(self) -> str:
        status = "succeeded" if self.succeeded else f"failed ({self.error})"
        return (
            f"Sync of {self.target_id} {status}: {len(self.diff)} change(s), "
            f"{len(self.dispatched)} dispatched, {len(self.added)} added, "
            f"{len(self.removed)} removed"
        )


class SyncOrchestrator:
    """
    Orchestrates synchronization of a target collection with its sources.

    Core principles:
    - Target and sources are expanded concurrently, each with its own
      visited set
    - Diffing starts only after both expansions finished
    - Mutations are dispatched concurrently, in no particular order
    - Failures are surfaced, never retried or compensated

    Usage:
        orchestrator = SyncOrchestrator(
            client=client,
            session_provider=StaticSessionProvider("..."),
        )

        result = orchestrator.sync("123", ["456", "789"])
        result.raise_for_error()
    """

    def __init__(
        self,
        client: SteamCollectionClient,
        session_provider: SessionProvider,
        max_workers: int = 8,
        dry_run: bool = False,
    ):
        """
        Initialize sync orchestrator.

        Args:
            client: Collection API client
            session_provider: Supplies the session ID for mutating calls
            max_workers: Maximum concurrent remote calls while applying
            dry_run: If True, compute the diff but don't apply it
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self.client = client
        self.session_provider = session_provider
        self.max_workers = max_workers
        self.dry_run = dry_run
        self.expander = CollectionExpander(client)

    def sync(self, target_id: str, source_ids: Iterable[str]) -> SyncResult:
        """
        Execute one synchronization run.

        Steps:
        1. Expand target and sources concurrently
        2. Compute the diff
        3. Dispatch one mutation per diff entry, concurrently

        Args:
            target_id: Collection whose membership is updated
            source_ids: Collections whose union is the desired membership

        Returns:
            SyncResult; check ``succeeded`` or call ``raise_for_error()``

        Raises:
            SteamAPIError: If expanding the target or the sources failed
        """
        target_id = str(target_id)
        source_ids = [str(source_id) for source_id in source_ids]
        result = SyncResult(target_id=target_id)

        if self.dry_run:
            logger.info("DRY RUN MODE - No changes will be made")

        self._enter(result, SyncPhase.FETCHING)
        try:
            target, sources = self._fetch(target_id, source_ids)
        except Exception:
            self._enter(result, SyncPhase.FAILED)
            raise

        self._enter(result, SyncPhase.DIFFING)
        result.diff = compute_diff(target.items, sources.items)
        logger.info(
            f"Target {target_id} has {len(target)} item(s), sources have "
            f"{len(sources)} item(s): {len(result.diff)} change(s)"
        )

        if not result.diff:
            logger.info(f"Collection {target_id} is already in sync")
            self._enter(result, SyncPhase.SUCCEEDED)
            return result

        if self.dry_run:
            for entry in result.diff:
                logger.info(f"DRY RUN: Would {entry.direction.value} {entry.item.id}")
            self._enter(result, SyncPhase.SUCCEEDED)
            return result

        self._enter(result, SyncPhase.APPLYING)
        self._apply(result)

        self._enter(result, SyncPhase.FAILED if result.error is not None else SyncPhase.SUCCEEDED)
        logger.info(str(result))
        return result

    def _fetch(
        self,
        target_id: str,
        source_ids: list[str],
    ) -> tuple[CollectionSnapshot, CollectionSnapshot]:
        """
        Expand target and sources concurrently.

        Each branch gets its own VisitedSet: the target and the sources
        may legitimately contain the same nested collection.
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="expand") as ex:
            target_future = ex.submit(self.expander.expand, [target_id], VisitedSet())
            sources_future = ex.submit(self.expander.expand, source_ids, VisitedSet())

            return target_future.result(), sources_future.result()

    def _apply(self, result: SyncResult) -> None:
        """
        Dispatch every diff entry as a mutation and wait for all of them.

        The first failure, by completion order, is recorded on the result;
        mutations that already succeeded stay applied.
        """
        workers = min(self.max_workers, len(result.diff))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="mutate") as ex:
            futures: dict[Future, Mutation] = {}

            for entry in result.diff:
                mutation = Mutation(
                    collection_id=result.target_id,
                    item_id=entry.item.id,
                    direction=entry.direction,
                )
                futures[ex.submit(self._mutate, mutation)] = mutation
                result.dispatched.append(mutation)

            for future in as_completed(futures):
                mutation = futures[future]
                try:
                    future.result()
                except Exception as e:
                    logger.error(f"Mutation failed ({mutation}): {e}")
                    result.failed.append(mutation)
                    if result.error is None:
                        result.error = e
                    continue

                logger.debug(f"Applied: {mutation}")
                result.applied.append(mutation)

    def _mutate(self, mutation: Mutation) -> None:
        """Send one mutation, asking the provider for a fresh session ID."""
        session_id = self.session_provider.current_session_id()
        if not session_id:
            logger.warning(f"No session ID available for {mutation}; it will likely be rejected")

        if mutation.direction is Direction.ADD:
            self.client.add_child(mutation.collection_id, mutation.item_id, session_id=session_id)
        else:
            self.client.remove_child(mutation.collection_id, mutation.item_id, session_id=session_id)

    @staticmethod
    def _enter(result: SyncResult, phase: SyncPhase) -> None:
        logger.debug(f"Sync of {result.target_id}: {result.phase.name} -> {phase.name}")
        result.phase = phase
