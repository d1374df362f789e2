"""Verification orchestrator: concurrent fan-out to adapters and fan-in to aggregation.

Verification flow per claim:
1. Validate the claim (InvalidClaim before any dispatch)
2. Take a registry snapshot, narrow it to the requested adapters
3. Consult each adapter's circuit breaker; open circuits are skipped
4. Optionally probe is_available() on the remaining adapters
5. Dispatch concurrently under the orchestrator-wide semaphore, each call bound to its own
   deadline and wrapped in its retry policy
6. Update each circuit breaker as soon as its call settles
7. Stop waiting at the overall request deadline; outstanding calls are
   cancelled and their eventual results discarded
8. Aggregate the settled results (ConfidenceAggregator)

Adapter failures never reach the caller: they are logged with the adapter
name and cause and surface only through ``unavailable`` and ``partial``.
The one exception is the ``fail`` fallback strategy, which raises
AllAdaptersFailed when no adapter produced a result.

Usage:
    orchestrator = VerificationOrchestrator(registry)
    result = await orchestrator.verify("Water boils at 100°C at sea level")
"""

import asyncio
import time
from typing import Any, Callable, Optional

from pydantic import ValidationError

from factgate.adapters.base import invoke
from factgate.utils.logging import get_correlation_id, get_structured_logger
from factgate.verification.aggregator import ConfidenceAggregator
from factgate.verification.errors import (
    AdapterError,
    AdapterNotFound,
    AdapterTimeout,
    AdapterUnavailable,
    AllAdaptersFailed,
    InvalidClaim,
)
from factgate.verification.registry import AdapterRegistry, RegistryEntry, RegistrySnapshot
from factgate.verification.retry import RetryPolicy
from factgate.verification.schemas import (
    AggregatedResult,
    AggregationStrategy,
    FallbackStrategy,
    VerificationResult,
    VerifyOptions,
)


class VerificationOrchestrator:
    """Dispatches one claim to many adapters and aggregates what comes back.

    The orchestrator holds no per-request state; concurrent verify() calls
    are independent apart from the shared circuit breakers, stats and the
    concurrency pool.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        aggregator: Optional[ConfidenceAggregator] = None,
        *,
        default_timeout: float = 5.0,
        request_timeout: float = 10.0,
        max_concurrency: int = 10,
        max_claim_length: int = 10_000,
        fallback_strategy: FallbackStrategy = FallbackStrategy.PARTIAL,
        retry_policy: Optional[RetryPolicy] = None,
        precheck_availability: bool = False,
    ) -> None:
        """Initialize VerificationOrchestrator.

        Args:
            registry: Adapter registry snapshotted once per request.
            aggregator: Confidence aggregator (weighted-average by default).
            default_timeout: Per-adapter deadline when metadata has none.
            request_timeout: Overall deadline for one verify() call.
            max_concurrency: Maximum adapter calls in flight across all requests.
            max_claim_length: Longest accepted claim in characters.
            fallback_strategy: fail, partial or ignore.
            retry_policy: Default invocation retry policy (no retry if omitted).
            precheck_availability: Probe is_available() before dispatch.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.registry = registry
        self.aggregator = aggregator or ConfidenceAggregator()
        self.default_timeout = default_timeout
        self.request_timeout = request_timeout
        self.max_concurrency = max_concurrency
        # Shared by every request so the cap holds process-wide
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self.max_claim_length = max_claim_length
        self.fallback_strategy = FallbackStrategy(fallback_strategy)
        self.retry_policy = retry_policy or RetryPolicy()
        self.precheck_availability = precheck_availability
        self._abandoned: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        registry: AdapterRegistry,
        settings: Any,
        aggregator: Optional[ConfidenceAggregator] = None,
    ) -> "VerificationOrchestrator":
        """Build an orchestrator from FactGateSettings."""
        return cls(
            registry,
            aggregator or ConfidenceAggregator(settings.strategy),
            default_timeout=settings.default_timeout,
            request_timeout=settings.request_timeout,
            max_concurrency=settings.max_concurrency,
            max_claim_length=settings.max_claim_length,
            fallback_strategy=settings.fallback_strategy,
            retry_policy=RetryPolicy.from_settings(settings),
            precheck_availability=settings.precheck_availability,
        )

    def validate_claim(self, claim: Any) -> str:
        """Reject empty, non-string or oversized claims.

        Raises:
            InvalidClaim: If the claim cannot be verified.
        """
        if claim is None or not isinstance(claim, str):
            raise InvalidClaim(
                "Claim must be a non-empty string",
                context={"claim_type": type(claim).__name__},
            )
        if not claim.strip():
            raise InvalidClaim("Claim must not be empty")
        if len(claim) > self.max_claim_length:
            raise InvalidClaim(
                f"Claim exceeds maximum length of {self.max_claim_length} characters",
                context={"length": len(claim), "max_length": self.max_claim_length},
            )
        return claim

    async def verify(
        self,
        claim: str,
        options: Optional[VerifyOptions] = None,
    ) -> AggregatedResult:
        """Verify a claim against the selected adapters.

        Args:
            claim: Natural-language statement to verify.
            options: Adapter selection, strategy and adapter context.

        Returns:
            AggregatedResult, possibly partial.

        Raises:
            InvalidClaim: Claim rejected before dispatch.
            AdapterNotFound: An explicitly requested adapter is not registered.
            AllAdaptersFailed: No results and fallback strategy is ``fail``.
        """
        options = options or VerifyOptions()
        self.validate_claim(claim)

        logger = get_structured_logger("VerificationOrchestrator", request_id=get_correlation_id())
        started = time.perf_counter()

        snapshot = self.registry.snapshot()
        candidates, unavailable = self._select(snapshot, options.adapters)

        dispatchable: list[RegistryEntry] = []
        for entry in candidates:
            if entry.breaker.allow_request():
                dispatchable.append(entry)
                continue
            entry.stats.skipped += 1
            unavailable.append(entry.name)
            self._log_skip(entry, "circuit_open", logger)

        if self.precheck_availability and dispatchable:
            dispatchable = await self._precheck(dispatchable, unavailable, logger)

        logger.info(
            "dispatch_started",
            adapters=[e.name for e in dispatchable],
            skipped=list(unavailable),
        )

        remaining = max(0.0, self.request_timeout - (time.perf_counter() - started))
        results, failed = await self._dispatch(claim, options.context, dispatchable, remaining, logger)
        unavailable.extend(failed)
        processing_time = time.perf_counter() - started

        if not results and self.fallback_strategy == FallbackStrategy.FAIL:
            logger.error("all_adapters_failed", unavailable=unavailable)
            raise AllAdaptersFailed(claim, unavailable)

        reported = [] if self.fallback_strategy == FallbackStrategy.IGNORE else unavailable
        aggregated = self.aggregator.aggregate(
            results,
            reported,
            options.strategy,
            claim=claim,
            weights={e.name: e.metadata.weight for e in candidates},
            processing_time=processing_time,
            partial=bool(unavailable),
        )

        logger.info(
            "verification_complete",
            overall=aggregated.overall.value,
            confidence=round(aggregated.confidence, 4),
            sources=len(aggregated.sources),
            unavailable=aggregated.unavailable,
            partial=aggregated.partial,
            processing_time=round(processing_time, 4),
        )
        return aggregated

    def _select(
        self,
        snapshot: RegistrySnapshot,
        requested: Optional[list[str]],
    ) -> tuple[list[RegistryEntry], list[str]]:
        """Narrow the snapshot to the requested adapters.

        Returns:
            (enabled candidates in registration order, requested-but-disabled names)
        """
        if requested is None:
            return list(snapshot.entries), []

        wanted = list(dict.fromkeys(requested))
        missing = [name for name in wanted if name not in snapshot.registered]
        if missing:
            raise AdapterNotFound(missing)

        chosen = [entry for entry in snapshot if entry.name in wanted]
        enabled = {entry.name for entry in chosen}
        disabled = [name for name in wanted if name not in enabled]
        return chosen, disabled

    async def _precheck(
        self,
        entries: list[RegistryEntry],
        unavailable: list[str],
        logger: Any,
    ) -> list[RegistryEntry]:
        """Drop adapters whose is_available() probe fails or returns False."""
        probes = await asyncio.gather(*(self._probe(entry, logger) for entry in entries))

        available: list[RegistryEntry] = []
        for entry, ok in zip(entries, probes):
            if ok:
                available.append(entry)
                continue
            entry.breaker.release_trial()
            entry.stats.skipped += 1
            unavailable.append(entry.name)
            self._log_skip(entry, "unavailable", logger)
        return available

    async def _probe(self, entry: RegistryEntry, logger: Any) -> bool:
        try:
            async with asyncio.timeout(entry.metadata.timeout or self.default_timeout):
                return bool(await invoke(entry.adapter.is_available))
        except Exception as e:
            logger.warning(
                "availability_probe_failed",
                adapter=entry.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def _dispatch(
        self,
        claim: str,
        context: dict[str, Any],
        entries: list[RegistryEntry],
        request_timeout: float,
        logger: Any,
    ) -> tuple[list[VerificationResult], list[str]]:
        """Fan out to adapters and collect whatever settles before the deadline.

        Returns:
            (settled results, names of adapters that failed, timed out or were abandoned)
        """
        if not entries:
            return [], []

        tasks = {
            asyncio.create_task(
                self._run_adapter(entry, claim, context, logger),
                name=f"factgate-verify:{entry.name}",
            ): entry
            for entry in entries
        }

        try:
            done, pending = await asyncio.wait(tasks, timeout=request_timeout)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
                    self._abandoned.add(task)
                    task.add_done_callback(self._abandoned.discard)

        results: list[VerificationResult] = []
        failed: list[str] = []
        for task, entry in tasks.items():
            if task in done:
                result = task.result()
                if result is None:
                    failed.append(entry.name)
                else:
                    results.append(result)
            else:
                failed.append(entry.name)
                logger.warning("adapter_abandoned", **AdapterTimeout(entry.name, request_timeout).to_dict())

        return results, failed

    async def _run_adapter(
        self,
        entry: RegistryEntry,
        claim: str,
        context: dict[str, Any],
        logger: Any,
    ) -> Optional[VerificationResult]:
        """Run one adapter call under its deadline and retry policy.

        Never raises except for cancellation. Returns None on failure after
        updating the circuit breaker and stats.
        """
        timeout = entry.metadata.timeout or self.default_timeout
        policy = entry.metadata.retry or self.retry_policy
        dispatched = False

        try:
            async with self._semaphore:
                dispatched = True
                entry.stats.total_calls += 1
                call_started = time.perf_counter()
                deadline = asyncio.timeout(timeout)

                try:
                    async with deadline:
                        raw = await policy.call(
                            invoke,
                            entry.adapter.verify,
                            claim,
                            context,
                            on_retry=self._retry_hook(entry, logger),
                        )
                    result = self._coerce_result(entry, raw)
                except TimeoutError as e:
                    if deadline.expired():
                        self._record_timeout(entry, timeout, call_started, logger)
                    else:
                        self._record_error(entry, e, call_started, logger)
                    return None
                except Exception as e:
                    self._record_error(entry, e, call_started, logger)
                    return None

                entry.breaker.record_success()
                entry.stats.successes += 1
                entry.stats.record_response_time(time.perf_counter() - call_started)
                logger.debug(
                    "adapter_succeeded",
                    adapter=entry.name,
                    verdict=result.verdict.value,
                    confidence=result.confidence,
                )
                return result

        except asyncio.CancelledError:
            if dispatched:
                # Abandoned at the request deadline: counts as a timeout
                entry.breaker.record_failure()
                entry.stats.timeouts += 1
            else:
                entry.breaker.release_trial()
            raise

    def _coerce_result(self, entry: RegistryEntry, raw: Any) -> VerificationResult:
        """Accept a VerificationResult (or a dict that validates as one) from an adapter.

        The source_id is always the registered adapter name.
        """
        if isinstance(raw, dict):
            try:
                raw = VerificationResult.model_validate({"source_id": entry.name, **raw})
            except ValidationError as e:
                raise AdapterError(
                    entry.name,
                    f"Adapter '{entry.name}' returned an invalid result: {e.error_count()} error(s)",
                ) from e

        if not isinstance(raw, VerificationResult):
            raise AdapterError(
                entry.name,
                f"Adapter '{entry.name}' returned {type(raw).__name__}, expected VerificationResult",
            )

        if raw.source_id != entry.name:
            raw = raw.model_copy(update={"source_id": entry.name})
        return raw

    def _record_timeout(
        self,
        entry: RegistryEntry,
        timeout: float,
        call_started: float,
        logger: Any,
    ) -> None:
        entry.breaker.record_failure()
        entry.stats.timeouts += 1
        entry.stats.record_response_time(time.perf_counter() - call_started)
        logger.warning(
            "adapter_timeout",
            **AdapterTimeout(entry.name, timeout).to_dict(),
            consecutive_failures=entry.breaker.consecutive_failures,
        )

    def _record_error(
        self,
        entry: RegistryEntry,
        error: BaseException,
        call_started: float,
        logger: Any,
    ) -> None:
        entry.breaker.record_failure()
        entry.stats.errors += 1
        entry.stats.record_response_time(time.perf_counter() - call_started)
        logger.error(
            "adapter_failed",
            adapter=entry.name,
            error=str(error),
            error_type=type(error).__name__,
            consecutive_failures=entry.breaker.consecutive_failures,
        )

    @staticmethod
    def _log_skip(entry: RegistryEntry, reason: str, logger: Any) -> None:
        error = AdapterUnavailable(
            entry.name,
            f"Adapter '{entry.name}' skipped: {reason.replace('_', ' ')}",
            context={"reason": reason},
        )
        logger.warning("adapter_skipped", **error.to_dict())

    @staticmethod
    def _retry_hook(entry: RegistryEntry, logger: Any) -> Callable[[int, BaseException], None]:
        def on_retry(attempt: int, error: BaseException) -> None:
            entry.stats.retries += 1
            logger.info(
                "adapter_retry",
                adapter=entry.name,
                attempt=attempt,
                error=str(error),
                error_type=type(error).__name__,
            )

        return on_retry


__all__ = ["VerificationOrchestrator"]
