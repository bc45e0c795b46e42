"""Pipeline runner: sequences steps and routes output between them.

Per step: Resolving -> Requesting -> Routing. Any failure aborts the whole
run with a ``StepFailedError`` naming the step; later steps are never
touched. Completed steps keep their artifacts on disk.

Modes:
  chain      explicit folder list; step i's cleaned output overwrites
             step i+1's prompt.txt. The prompt override applies to step 0.
  recursive  every immediate subfolder of one parent, independently; the
             prompt override applies to every step; nothing is forwarded.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence

from goll.cancellation import CancellationToken
from goll.config.schemas.settings import ReasoningConfig, ToolSettings
from goll.errors import GollError, StepFailedError, map_exception
from goll.events import (
    PromptForwarded,
    RunFinished,
    RunStarted,
    StepCompleted,
    StepFailed,
    StepStarted,
    emit,
)
from goll.llm.client import GenerationClient
from goll.llm.postproc import strip_reasoning
from goll.llm.request_builder import build_request
from goll.llm.types import GenerationResult

from .artifacts import write_forwarded_prompt, write_result_log
from .base import (
    MODE_CHAIN,
    MODE_RECURSIVE,
    PipelineStep,
    ProgressIndicator,
    RunReport,
    StepOutcome,
)
from .steps import list_subfolders, load_step_config, resolve_prompt

logger = logging.getLogger(__name__)


class PipelineRunner:
    def __init__(
        self,
        client: GenerationClient,
        *,
        folder_base: str | Path = ".",
        timeout: Optional[float] = None,
        reasoning: ReasoningConfig | None = None,
        indicator: ProgressIndicator | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._client = client
        self._folder_base = Path(folder_base)
        # None -> the client's default timeout
        self._timeout = timeout
        self._reasoning = reasoning or ReasoningConfig()
        self._indicator = indicator
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        client: GenerationClient,
        settings: ToolSettings,
        indicator: ProgressIndicator | None = None,
    ) -> "PipelineRunner":
        return cls(
            client,
            folder_base=settings.folder_base_path,
            timeout=settings.timeout,
            reasoning=settings.reasoning,
            indicator=indicator,
        )

    def folder_path(self, name: str) -> Path:
        return self._folder_base / name

    async def run(
        self,
        token: CancellationToken,
        folders: Sequence[str],
        prompt_override: str | None = None,
        recursive: bool = False,
    ) -> RunReport:
        if recursive:
            if len(folders) != 1:
                raise ValueError("recursive mode takes exactly one folder")
            return await self.run_recursive(token, folders[0], prompt_override)
        return await self.run_chain(token, folders, prompt_override)

    async def run_chain(
        self,
        token: CancellationToken,
        folders: Sequence[str],
        prompt_override: str | None = None,
    ) -> RunReport:
        if not folders:
            raise ValueError("at least one folder is required")
        return await self._run(token, MODE_CHAIN, list(folders), prompt_override)

    async def run_recursive(
        self,
        token: CancellationToken,
        parent: str,
        prompt_override: str | None = None,
    ) -> RunReport:
        subs = list_subfolders(self.folder_path(parent))
        names = [f"{parent.rstrip('/')}/{p.name}" for p in subs]
        return await self._run(token, MODE_RECURSIVE, names, prompt_override)

    async def _run(
        self,
        token: CancellationToken,
        mode: str,
        names: list[str],
        prompt_override: str | None,
    ) -> RunReport:
        report = RunReport(mode=mode, steps=names)
        emit(
            RunStarted(
                mode=mode,
                steps=list(names),
                prompt_override=bool(prompt_override),
            )
        )
        status = "error"
        try:
            for index in range(len(names)):
                outcome = await self._run_step(
                    token, mode, names, index, prompt_override
                )
                report.outcomes.append(outcome)
            status = "ok"
        except StepFailedError as e:
            if map_exception(e) == "cancelled":
                status = "cancelled"
            raise
        finally:
            emit(
                RunFinished(
                    mode=mode,
                    completed=report.completed,
                    total=len(names),
                    status=status,
                )
            )
        return report

    async def _run_step(
        self,
        token: CancellationToken,
        mode: str,
        names: list[str],
        index: int,
        prompt_override: str | None,
    ) -> StepOutcome:
        name = names[index]
        try:
            # A cancellation between steps aborts like a mid-step one
            token.raise_if_cancelled()
            step = self._resolve(mode, names, index, prompt_override)
            emit(
                StepStarted(
                    step=name,
                    index=index,
                    total=len(names),
                    model=step.config.model,
                    prompt_source=step.prompt_source,
                    model_config=step.config.snapshot(),
                )
            )
            started = time.perf_counter()
            result = await self._request(token, step)
            latency_ms = int((time.perf_counter() - started) * 1000)
            return self._route(mode, names, step, result, latency_ms)
        except GollError as e:
            logger.error("step %d (%s) failed: %s", index, name, e)
            emit(
                StepFailed(
                    step=name,
                    index=index,
                    error_type=e.error_type,
                    message=str(e),
                )
            )
            raise StepFailedError(name, index, e) from e

    def _resolve(
        self,
        mode: str,
        names: list[str],
        index: int,
        prompt_override: str | None,
    ) -> PipelineStep:
        name = names[index]
        path = self.folder_path(name)
        config = load_step_config(path)
        prompt, source = resolve_prompt(
            path, mode=mode, index=index, prompt_override=prompt_override
        )
        logger.debug(
            "resolved step %d (%s) model=%s prompt_source=%s",
            index,
            name,
            config.model,
            source,
        )
        return PipelineStep(
            name=name,
            path=path,
            index=index,
            total=len(names),
            config=config,
            prompt=prompt,
            prompt_source=source,
        )

    async def _request(
        self, token: CancellationToken, step: PipelineStep
    ) -> GenerationResult:
        request = build_request(step.config, step.prompt)
        if self._indicator is not None:
            self._indicator.start()
        try:
            return await self._client.send(token, request, timeout=self._timeout)
        finally:
            if self._indicator is not None:
                await self._indicator.stop()

    def _route(
        self,
        mode: str,
        names: list[str],
        step: PipelineStep,
        result: GenerationResult,
        latency_ms: int,
    ) -> StepOutcome:
        cleaned = strip_reasoning(
            result.response,
            self._reasoning.open_tag,
            self._reasoning.close_tag,
        )
        forwarded_to: Path | None = None
        if mode == MODE_CHAIN and not step.is_last:
            next_name = names[step.index + 1]
            forwarded_to = write_forwarded_prompt(
                self.folder_path(next_name), cleaned
            )
            emit(
                PromptForwarded(
                    step=step.name,
                    next_step=next_name,
                    path=str(forwarded_to),
                    chars=len(cleaned),
                )
            )
        log_path = write_result_log(step, result, now=self._clock())
        emit(
            StepCompleted(
                step=step.name,
                index=step.index,
                mode=mode,
                model=result.model,
                response=result.response,
                eval_count=result.eval_count,
                eval_seconds=result.eval_seconds,
                tokens_per_second=result.tokens_per_second,
                latency_ms=latency_ms,
                log_path=str(log_path),
            )
        )
        return StepOutcome(
            step=step,
            result=result,
            cleaned_output=cleaned,
            log_path=log_path,
            latency_ms=latency_ms,
            forwarded_to=forwarded_to,
        )


__all__ = ["PipelineRunner"]
