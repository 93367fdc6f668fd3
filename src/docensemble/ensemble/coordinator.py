"""Async coordinator for the fast/expert extraction ensemble.

Runs the two extraction agents against the same pages, either in
parallel or fast-first with an expert fallback, under a concurrency
limit created fresh for every document. Agent failures are captured as
failed outcomes rather than propagating; interpreting them is left to the
consensus engine.
"""
from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from typing import Any

import structlog

from docensemble.agents.base import ExtractionAgent
from docensemble.config import EnsembleConfig
from docensemble.core.enums import DocumentType, ExtractionSource
from docensemble.core.models import (
    EnsemblePolicy,
    EnsembleResult,
    ExtractionOutcome,
    PageImage,
)

logger = structlog.get_logger(__name__)

DEFAULT_FALLBACK_THRESHOLD = 0.7
NEUTRAL_CONFIDENCE = 0.5

AgentHook = Callable[[ExtractionSource], None]


def confidence_of(record: Any) -> float:
    """Confidence reported by a record, or a neutral 0.5 if it has none."""
    score = getattr(record, "confidence_score", None)
    if callable(score):
        return float(score())
    return NEUTRAL_CONFIDENCE


class ExtractionEnsemble:
    """Runs a fast and an expert extraction agent for one document at a time.

    Args:
        fast_agent: Cheap, lower-accuracy agent.
        expert_agent: Slower, higher-accuracy agent.
        fallback_threshold: In sequential mode, a fast result below this
            confidence also triggers the expert.
        on_agent_start: Called with the agent role once it holds a permit.
        on_agent_end: Called with the agent role before releasing the permit.
    """

    def __init__(
        self,
        fast_agent: ExtractionAgent,
        expert_agent: ExtractionAgent,
        fallback_threshold: float = DEFAULT_FALLBACK_THRESHOLD,
        on_agent_start: AgentHook | None = None,
        on_agent_end: AgentHook | None = None,
    ) -> None:
        self._agents = {
            ExtractionSource.FAST: fast_agent,
            ExtractionSource.EXPERT: expert_agent,
        }
        self._fallback_threshold = fallback_threshold
        self._on_agent_start = on_agent_start
        self._on_agent_end = on_agent_end

    @classmethod
    def from_config(
        cls,
        cfg: EnsembleConfig,
        fast_agent: ExtractionAgent,
        expert_agent: ExtractionAgent,
    ) -> ExtractionEnsemble:
        """Build a coordinator using the configured fallback threshold."""
        return cls(
            fast_agent,
            expert_agent,
            fallback_threshold=cfg.thresholds.fallback_confidence,
        )

    @property
    def fallback_threshold(self) -> float:
        return self._fallback_threshold

    async def extract(
        self,
        images: Sequence[PageImage],
        policy: EnsemblePolicy | None = None,
        document_type: DocumentType = DocumentType.INVOICE,
    ) -> EnsembleResult:
        """Run the agents for one document and return both raw outcomes.

        Args:
            images: Rendered pages of the document, in order (non-empty).
            policy: Parallel vs. sequential execution and the concurrency
                bound for this call. Defaults to parallel with two slots.
            document_type: Record type the agents should extract.

        Returns:
            EnsembleResult. ``expert_outcome`` is None when the sequential
            policy skipped the expert.

        Raises:
            ValueError: If ``images`` is empty or the concurrency bound is
                not positive.
        """
        pages = list(images)
        if not pages:
            raise ValueError("At least one page image is required.")
        policy = policy or EnsemblePolicy()
        if policy.max_concurrent_agents < 1:
            raise ValueError(
                f"max_concurrent_agents must be positive, got {policy.max_concurrent_agents}"
            )

        # Scoped to this document so concurrent documents never share permits
        limiter = asyncio.Semaphore(policy.max_concurrent_agents)

        logger.info(
            "ensemble_extract_start",
            document_type=str(document_type),
            n_pages=len(pages),
            run_parallel=policy.run_parallel,
            max_concurrent_agents=policy.max_concurrent_agents,
        )
        t0 = time.perf_counter()

        if policy.run_parallel:
            result = await self._extract_parallel(pages, document_type, limiter)
        else:
            result = await self._extract_with_fallback(pages, document_type, limiter)

        logger.info(
            "ensemble_extract_complete",
            document_type=str(document_type),
            fast_ok=result.fast_record is not None,
            expert_invoked=result.expert_invoked,
            expert_ok=result.expert_record is not None,
            duration_ms=round((time.perf_counter() - t0) * 1000),
        )
        return result

    def needs_expert(self, fast_outcome: ExtractionOutcome) -> bool:
        """True if the fast agent failed or reported low confidence."""
        if fast_outcome.failed:
            return True
        return confidence_of(fast_outcome.record) < self._fallback_threshold

    async def _extract_parallel(
        self,
        pages: list[PageImage],
        document_type: DocumentType,
        limiter: asyncio.Semaphore,
    ) -> EnsembleResult:
        fast_outcome, expert_outcome = await asyncio.gather(
            self._run_agent(ExtractionSource.FAST, pages, document_type, limiter),
            self._run_agent(ExtractionSource.EXPERT, pages, document_type, limiter),
        )
        return EnsembleResult(fast_outcome=fast_outcome, expert_outcome=expert_outcome)

    async def _extract_with_fallback(
        self,
        pages: list[PageImage],
        document_type: DocumentType,
        limiter: asyncio.Semaphore,
    ) -> EnsembleResult:
        fast_outcome = await self._run_agent(
            ExtractionSource.FAST, pages, document_type, limiter
        )

        if not self.needs_expert(fast_outcome):
            logger.info(
                "expert_skipped",
                fast_confidence=confidence_of(fast_outcome.record),
                threshold=self._fallback_threshold,
            )
            return EnsembleResult(fast_outcome=fast_outcome, expert_outcome=None)

        logger.info(
            "expert_fallback",
            fast_failed=fast_outcome.failed,
            fast_confidence=(
                None if fast_outcome.failed else confidence_of(fast_outcome.record)
            ),
            threshold=self._fallback_threshold,
        )
        expert_outcome = await self._run_agent(
            ExtractionSource.EXPERT, pages, document_type, limiter
        )
        return EnsembleResult(fast_outcome=fast_outcome, expert_outcome=expert_outcome)

    async def _run_agent(
        self,
        role: ExtractionSource,
        pages: list[PageImage],
        document_type: DocumentType,
        limiter: asyncio.Semaphore,
    ) -> ExtractionOutcome:
        """Run one agent inside a limiter permit, capturing any failure.

        Cancellation is not captured: it propagates and the permit is
        released by the ``async with`` block. An exception raised by the
        start hook is captured like an agent failure.
        """
        agent = self._agents[role]
        async with limiter:
            t0 = time.perf_counter()
            try:
                if self._on_agent_start is not None:
                    self._on_agent_start(role)
                record = await agent.extract(pages, document_type)
                duration_ms = round((time.perf_counter() - t0) * 1000)
                outcome = ExtractionOutcome.success(agent.agent_id, record, duration_ms)
            except Exception as e:  # noqa: BLE001
                duration_ms = round((time.perf_counter() - t0) * 1000)
                logger.warning(
                    "agent_call_failed",
                    role=str(role),
                    agent_id=agent.agent_id,
                    error_kind=type(e).__name__,
                    error=str(e),
                    duration_ms=duration_ms,
                )
                return ExtractionOutcome.failure(agent.agent_id, e, duration_ms)
            finally:
                if self._on_agent_end is not None:
                    self._on_agent_end(role)

        logger.info(
            "agent_call_ok",
            role=str(role),
            agent_id=agent.agent_id,
            confidence=confidence_of(record),
            duration_ms=duration_ms,
        )
        return outcome
