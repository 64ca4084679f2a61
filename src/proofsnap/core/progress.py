"""ProofSnap — Verification step tracking and progress observers.

``StepTracker`` owns the 8-step list of one pipeline run. Every transition is
checked (waiting → running → success|error, one running step at a time) and an
immutable snapshot is pushed synchronously to the observer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from proofsnap.core.exceptions import IllegalTransitionError
from proofsnap.models.enums import STEP_TRANSITIONS, StepId, StepStatus
from proofsnap.models.schemas import VerificationStep

logger = logging.getLogger(__name__)

STEP_LABELS: tuple[tuple[StepId, str], ...] = (
    (StepId.HASH, "Generating cryptographic hash"),
    (StepId.SIGN, "Signing with device key"),
    (StepId.ANCHOR, "Anchoring on ledger"),
    (StepId.AUTHENTICITY, "AI deepfake analysis"),
    (StepId.ORIGINALITY, "Checking originality"),
    (StepId.SCORE, "Computing trust score"),
    (StepId.WATERMARK, "Applying watermark"),
    (StepId.CLOUD_SYNC, "Syncing to cloud"),
)


class ProgressObserver(Protocol):
    def on_step(self, steps: list[VerificationStep]) -> None: ...


class CallbackObserver:
    """Adapts a plain callable to the observer interface."""

    def __init__(self, callback: Callable[[list[VerificationStep]], None]) -> None:
        self.callback = callback

    def on_step(self, steps: list[VerificationStep]) -> None:
        self.callback(steps)


class QueueObserver:
    """Bounded channel of snapshots; the oldest snapshot is dropped when full."""

    def __init__(self, maxsize: int = 32) -> None:
        self.queue: asyncio.Queue[list[VerificationStep]] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def on_step(self, steps: list[VerificationStep]) -> None:
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(steps)


class StepTracker:
    def __init__(self, observer: ProgressObserver | None = None, run_id: str = "") -> None:
        self.observer = observer
        self.run_id = run_id
        self._steps = [VerificationStep(id=step_id, label=label) for step_id, label in STEP_LABELS]
        self._index = {step.id: i for i, step in enumerate(self._steps)}

    @property
    def steps(self) -> list[VerificationStep]:
        return [step.model_copy() for step in self._steps]

    def get(self, step_id: StepId) -> VerificationStep:
        return self._steps[self._index[step_id]].model_copy()

    @property
    def running(self) -> StepId | None:
        for step in self._steps:
            if step.status == StepStatus.RUNNING:
                return step.id
        return None

    def start(self, step_id: StepId) -> None:
        current = self.running
        if current is not None and current != step_id:
            raise IllegalTransitionError(f"Step {current.value} is still running", {"requested": step_id.value})
        self._set(step_id, StepStatus.RUNNING, None)

    def succeed(self, step_id: StepId, detail: str | None = None) -> None:
        self._set(step_id, StepStatus.SUCCESS, detail)

    def fail(self, step_id: StepId, detail: str | None = None) -> None:
        self._set(step_id, StepStatus.ERROR, detail)

    def abort_running(self, detail: str) -> None:
        """Close the running step (if any) as error after a fatal exception."""
        current = self.running
        if current is not None:
            self.fail(current, detail)

    def _set(self, step_id: StepId, status: StepStatus, detail: str | None) -> None:
        i = self._index[step_id]
        step = self._steps[i]
        if status not in STEP_TRANSITIONS[step.status]:
            raise IllegalTransitionError(
                f"Step {step_id.value}: {step.status.value} -> {status.value} not allowed",
                {"run_id": self.run_id},
            )
        self._steps[i] = step.model_copy(update={"status": status, "detail": detail})
        self._notify()

    def _notify(self) -> None:
        if self.observer is None:
            return
        try:
            self.observer.on_step(self.steps)
        except Exception:
            logger.exception("[%s] Progress observer raised; continuing", self.run_id)
