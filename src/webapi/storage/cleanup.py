"""Background retention sweeper for temporary objects."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .config import RetentionWindow, StorageConfig
from .exceptions import PartialSweepFailure
from .gateway import ResourceKind, TaggedObject, UploadGateway
from .scanner import Clock, RetentionScanner, SystemClock

logger = logging.getLogger(__name__)


class SweepState(str, Enum):
    """Sweeper lifecycle state."""
    IDLE = "idle"
    SWEEPING = "sweeping"


@dataclass
class DeletionFailure:
    public_id: str
    resource_kind: ResourceKind
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "public_id": self.public_id,
            "resource_kind": self.resource_kind.value,
            "error": self.error,
        }


@dataclass
class KindSweepResult:
    """Outcome of sweeping one resource kind."""
    resource_kind: ResourceKind
    attempted: int = 0
    expired: int = 0
    deleted: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    failures: List[DeletionFailure] = field(default_factory=list)
    listing_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_kind": self.resource_kind.value,
            "attempted": self.attempted,
            "expired": self.expired,
            "deleted": len(self.deleted),
            "missing": len(self.missing),
            "failed": len(self.failures),
            "listing_error": self.listing_error,
        }


@dataclass
class SweepReport:
    """Aggregate outcome of one sweep across all resource kinds."""
    started_at: datetime
    elapsed_seconds: float = 0.0
    kinds: List[KindSweepResult] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return sum(kind.attempted for kind in self.kinds)

    @property
    def expired(self) -> int:
        return sum(kind.expired for kind in self.kinds)

    @property
    def deleted(self) -> int:
        return sum(len(kind.deleted) for kind in self.kinds)

    @property
    def missing(self) -> int:
        return sum(len(kind.missing) for kind in self.kinds)

    @property
    def failures(self) -> List[DeletionFailure]:
        return [failure for kind in self.kinds for failure in kind.failures]

    @property
    def partial_failure(self) -> Optional[PartialSweepFailure]:
        """Failure describing deletions or listings that did not succeed, if any."""
        failures = [failure.to_dict() for failure in self.failures]
        listing_errors = [kind for kind in self.kinds if kind.listing_error]
        if not failures and not listing_errors:
            return None

        for kind in listing_errors:
            failures.append({
                "public_id": None,
                "resource_kind": kind.resource_kind.value,
                "error": kind.listing_error,
            })
        return PartialSweepFailure(
            f"{len(failures)} sweep operation(s) failed",
            failures=failures,
        )

    def raise_for_failures(self) -> None:
        failure = self.partial_failure
        if failure is not None:
            raise failure

    def by_kind(self, resource_kind: ResourceKind) -> KindSweepResult:
        for kind in self.kinds:
            if kind.resource_kind == resource_kind:
                return kind
        raise KeyError(resource_kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "attempted": self.attempted,
            "expired": self.expired,
            "deleted": self.deleted,
            "missing": self.missing,
            "failed": len(self.failures),
            "kinds": [kind.to_dict() for kind in self.kinds],
            "failures": [failure.to_dict() for failure in self.failures],
        }


class RetentionSweeper:
    """Deletes temporary objects older than the retention TTL.

    Runs on a fixed interval as a background task. At most one sweep runs
    at a time; a trigger arriving during a sweep is dropped.
    """

    def __init__(
        self,
        gateway: UploadGateway,
        window: RetentionWindow,
        clock: Optional[Clock] = None,
        resource_kinds: Sequence[ResourceKind] = (ResourceKind.IMAGE, ResourceKind.RAW),
        tag: str = StorageConfig.temp_tag,
    ):
        """
        Initialize sweeper.

        Args:
            gateway: Object store holding the temporary objects
            window: TTL and sweep interval
            clock: Time source for expiry checks
            resource_kinds: Kinds swept, in order
            tag: Tag marking temporary objects
        """
        self.gateway = gateway
        self.window = window
        self.scanner = RetentionScanner(gateway, clock or SystemClock())
        self.resource_kinds = tuple(resource_kinds)
        self.tag = tag

        self.state = SweepState.IDLE
        self.last_report: Optional[SweepReport] = None
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start the sweep background task."""
        if self.running:
            logger.warning("Retention sweeper already running")
            return

        self.running = True
        self._shutdown_event.clear()
        self.task = asyncio.create_task(self._sweep_loop())
        logger.info(
            f"Retention sweeper started (interval: {self.window.scan_interval}, "
            f"ttl: {self.window.ttl})"
        )

    async def stop(self) -> None:
        """Stop the sweep background task."""
        if not self.running:
            return

        self.running = False
        self._shutdown_event.set()

        if self.task:
            try:
                await asyncio.wait_for(self.task, timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Sweep task stop timeout, cancelling")
                self.task.cancel()
                try:
                    await self.task
                except asyncio.CancelledError:
                    pass
            except asyncio.CancelledError:
                if self.task and not self.task.done():
                    self.task.cancel()
                    try:
                        await self.task
                    except asyncio.CancelledError:
                        pass
            except Exception as e:
                logger.error(f"Error during sweeper stop: {e}")

        self.task = None
        logger.info("Retention sweeper stopped")

    async def _sweep_loop(self) -> None:
        """Main sweep loop."""
        while self.running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                logger.debug("Sweep cancelled during shutdown")
                return
            except Exception as e:
                logger.error(f"Sweep cycle failed: {e}", exc_info=True)

            # Wait for next cycle or shutdown
            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=self.window.scan_interval.total_seconds()
                )
                break  # Shutdown requested
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                logger.debug("Sweep loop cancelled during shutdown")
                return

    async def tick(self) -> Optional[SweepReport]:
        """
        Run one sweep unless one is already in progress.

        Returns:
            The sweep report, or None if the tick was dropped
        """
        # Check-and-set happens before any await, so it cannot interleave
        if self.state == SweepState.SWEEPING:
            logger.info("Sweep already in progress, skipping tick")
            return None

        self.state = SweepState.SWEEPING
        try:
            report = await self._sweep()
            self.last_report = report
            return report
        finally:
            self.state = SweepState.IDLE

    async def run_sweep(self) -> Optional[SweepReport]:
        """Manually trigger a sweep (same gate and algorithm as the schedule)."""
        return await self.tick()

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "running": self.running,
            "window": self.window.to_dict(),
            "last_report": self.last_report.to_dict() if self.last_report else None,
        }

    async def _sweep(self) -> SweepReport:
        logger.info("Starting retention sweep")
        started = time.monotonic()
        report = SweepReport(started_at=self.scanner.clock.now())

        for resource_kind in self.resource_kinds:
            report.kinds.append(await self._sweep_kind(resource_kind))

        report.elapsed_seconds = time.monotonic() - started

        summary = ", ".join(
            f"{len(kind.deleted)} {kind.resource_kind.value}" for kind in report.kinds
        )
        logger.info(
            f"Sweep completed in {report.elapsed_seconds:.2f}s - deleted {report.deleted} "
            f"of {report.attempted} tagged objects ({summary})"
        )
        if report.failures:
            logger.warning(f"Sweep finished with {len(report.failures)} failed deletion(s)")

        return report

    async def _sweep_kind(self, resource_kind: ResourceKind) -> KindSweepResult:
        result = KindSweepResult(resource_kind=resource_kind)

        try:
            examined, expired = await self.scanner.find_expired(
                resource_kind, self.window, tag=self.tag
            )
        except Exception as e:
            logger.error(f"Error listing {resource_kind.value} objects: {e}")
            result.listing_error = str(e)
            return result

        result.attempted = examined
        result.expired = len(expired)

        for obj in expired:
            await self._delete(obj, result)

        return result

    async def _delete(self, obj: TaggedObject, result: KindSweepResult) -> None:
        """Delete one object and record the outcome; never raises."""
        try:
            removed = await self.gateway.delete(obj.public_id, obj.resource_kind)
        except Exception as e:
            logger.error(f"Failed to delete {obj.resource_kind.value} {obj.public_id}: {e}")
            result.failures.append(DeletionFailure(obj.public_id, obj.resource_kind, str(e)))
            return

        if removed:
            logger.info(f"Deleted {obj.resource_kind.value}: {obj.public_id}")
            result.deleted.append(obj.public_id)
        else:
            # Removed by someone else between listing and delete
            logger.info(f"Already gone {obj.resource_kind.value}: {obj.public_id}")
            result.missing.append(obj.public_id)
