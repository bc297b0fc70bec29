"""
WebhookDeliveryService - Queued Webhook Delivery with Retry
============================================================

Owns a bounded job queue drained by a fixed pool of worker tasks.

Features:
    - Bounded queue; submitting never blocks past ``enqueue_timeout_seconds``
    - Fixed worker pool started once per run, stopped via a shared signal
    - HMAC-SHA256 request signing when the subscription has a secret
    - Per-request timeout so a hung endpoint cannot pin a worker
    - Retry by delayed re-submission (timer), never by a sleeping worker
    - Recent outcome history for operators

Outcome classification:
    2xx                              -> delivered
    connection error, timeout, 5xx,
    408                              -> retryable failure
    other 4xx, invalid URL, bad body -> permanent failure

A job makes at most ``max_retries + 1`` HTTP attempts.

Webhook Payload Format:
    ```json
    {
        "event": "Message",
        "sessionID": "session-1",
        "timestamp": 1700000000,
        "data": {"...": "..."}
    }
    ```
"""

from __future__ import annotations

import asyncio
import json
import time
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Deque, Dict, List, Optional, Set

import aiohttp
from loguru import logger

from sessionhooks.core.config import WebhookDeliveryConfig

from .models import DeliveryJob, DeliveryOutcome, WebhookConfig, WebhookEvent
from .signature import WebhookSignature


# Bytes of the endpoint's response kept for logs and test results
MAX_RESPONSE_BYTES = 1000


class WebhookDeliveryService:
    """
    Bounded-queue webhook delivery with a fixed worker pool.

    Example:
        ```python
        service = WebhookDeliveryService(WebhookDeliveryConfig(workers=4))
        await service.start()

        await service.submit(event, config)   # fire-and-forget
        outcome = await service.deliver_event(event, config)  # synchronous

        await service.stop()
        ```
    """

    def __init__(
        self,
        config: Optional[WebhookDeliveryConfig] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            config: Queue, pool and retry tuning
            http_session: Optional shared aiohttp session. When omitted each
                attempt opens and closes its own session.
        """
        self._config = config or WebhookDeliveryConfig()
        self._session = http_session

        self._queue: asyncio.Queue[DeliveryJob] = asyncio.Queue(
            maxsize=self._config.queue_capacity
        )

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._workers: List[asyncio.Task] = []
        # Workers still finishing an in-flight job after stop()
        self._draining: Set[asyncio.Task] = set()
        self._retry_handles: Set[asyncio.TimerHandle] = set()

        self._history: Deque[Dict[str, Any]] = deque(maxlen=self._config.history_size)

    # ======================================================================
    # Introspection
    # ======================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def workers(self) -> int:
        return self._config.workers

    @property
    def queue_size(self) -> int:
        return self._queue.qsize()

    @property
    def queue_capacity(self) -> int:
        return self._queue.maxsize

    @property
    def max_retries(self) -> int:
        return self._config.max_retries

    @property
    def retry_delay(self) -> float:
        return self._config.retry_delay_seconds

    @property
    def pending_retries(self) -> int:
        return len(self._retry_handles)

    def backoff_delay(self, attempt: int) -> float:
        """
        Delay before the retry that follows ``attempt`` (1-based).

        Non-decreasing in ``attempt`` for every strategy and capped at
        ``max_retry_delay_seconds``.
        """
        base = self._config.retry_delay_seconds
        attempt = max(attempt, 1)

        if self._config.backoff == "fixed":
            delay = base
        elif self._config.backoff == "exponential":
            delay = base * (2 ** (attempt - 1))
        else:
            delay = base * attempt

        return min(delay, self._config.max_retry_delay_seconds)

    # ======================================================================
    # Lifecycle
    # ======================================================================

    async def start(self) -> None:
        """Spawn the worker pool."""
        if self._running:
            return

        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._workers = [
            asyncio.create_task(
                self._worker_loop(worker_id, stop_event),
                name=f"webhook-worker-{worker_id}",
            )
            for worker_id in range(self._config.workers)
        ]
        self._running = True

        logger.info(
            f"[WebhookDelivery] Started {self._config.workers} workers "
            f"(queue_capacity={self.queue_capacity}, max_retries={self.max_retries})"
        )

    async def stop(self) -> None:
        """
        Signal workers to stop and wait for them to observe it.

        Idle workers exit at once. A worker in the middle of a delivery
        finishes and classifies that job first; stop() waits for it at most
        ``shutdown_grace_seconds``. Pending retry timers are cancelled and
        queued jobs stay where they are.
        """
        if not self._running:
            return

        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

        cancelled_retries = len(self._retry_handles)
        for handle in self._retry_handles:
            handle.cancel()
        self._retry_handles.clear()

        workers, self._workers = self._workers, []
        if workers:
            _, pending = await asyncio.wait(
                workers, timeout=self._config.shutdown_grace_seconds
            )
            for task in pending:
                self._draining.add(task)
                task.add_done_callback(self._draining.discard)
            if pending:
                logger.warning(
                    f"[WebhookDelivery] {len(pending)} workers still finishing "
                    f"in-flight deliveries after {self._config.shutdown_grace_seconds}s"
                )

        logger.info(
            f"[WebhookDelivery] Stopped (queued={self.queue_size}, "
            f"cancelled_retries={cancelled_retries})"
        )

    # ======================================================================
    # Submission
    # ======================================================================

    async def submit(self, event: WebhookEvent, config: WebhookConfig) -> bool:
        """Queue a fresh delivery job for (event, config)."""
        return await self.enqueue(DeliveryJob(event=event, config=config))

    async def enqueue(self, job: DeliveryJob) -> bool:
        """
        Put a job on the queue without blocking indefinitely.

        Returns:
            False if the queue stayed full and the job was dropped
        """
        timeout = self._config.enqueue_timeout_seconds

        if timeout > 0:
            try:
                await asyncio.wait_for(self._queue.put(job), timeout=timeout)
            except asyncio.TimeoutError:
                self._log_dropped(job, "queue full")
                return False
        else:
            try:
                self._queue.put_nowait(job)
            except asyncio.QueueFull:
                self._log_dropped(job, "queue full")
                return False

        logger.debug(
            f"[WebhookDelivery] Queued job {job.id} "
            f"(webhook={job.config.id}, event={job.event.id})"
        )
        return True

    def _log_dropped(self, job: DeliveryJob, reason: str) -> None:
        logger.warning(
            f"[WebhookDelivery] Dropping job {job.id} ({reason}): "
            f"webhook={job.config.id}, event={job.event.id}, attempt={job.attempt}"
        )

    # ======================================================================
    # Workers
    # ======================================================================

    async def _worker_loop(self, worker_id: int, stop_event: asyncio.Event) -> None:
        """Pull jobs until the stop signal is seen between jobs."""
        logger.debug(f"[WebhookDelivery] Worker {worker_id} started")

        while not stop_event.is_set():
            try:
                job = await asyncio.wait_for(
                    self._queue.get(),
                    timeout=self._config.idle_poll_seconds,
                )
            except asyncio.TimeoutError:
                continue

            try:
                await self._process_job(job, worker_id)
            except Exception:
                logger.exception(
                    f"[WebhookDelivery] Worker {worker_id} failed on job {job.id}"
                )
            finally:
                self._queue.task_done()

        logger.debug(f"[WebhookDelivery] Worker {worker_id} stopped")

    async def _process_job(self, job: DeliveryJob, worker_id: int) -> None:
        job.attempt += 1

        logger.debug(
            f"[WebhookDelivery] Worker {worker_id} processing job {job.id} "
            f"(webhook={job.config.id}, event={job.event.id}, attempt={job.attempt})"
        )

        outcome = await self._attempt_delivery(job.event, job.config)
        outcome.attempt = job.attempt
        self._record(job, outcome)

        if outcome.success:
            job.last_error = None
            logger.info(
                f"[WebhookDelivery] Delivered event {job.event.id} to {job.config.id} "
                f"(status={outcome.status_code}, latency={outcome.latency * 1000:.1f}ms, "
                f"attempt={job.attempt})"
            )
            return

        job.last_error = outcome.reason

        if outcome.retryable and job.attempt <= self._config.max_retries:
            self._schedule_retry(job)
            return

        logger.error(
            f"[WebhookDelivery] Delivery of event {job.event.id} to {job.config.id} "
            f"failed permanently after {job.attempt} attempts: {outcome.reason} "
            f"(status={outcome.status_code})"
        )

    def _schedule_retry(self, job: DeliveryJob) -> None:
        if not self._running:
            self._log_dropped(job, "service stopped before retry")
            return

        delay = self.backoff_delay(job.attempt)
        job.next_eligible_at = datetime.now(timezone.utc) + timedelta(seconds=delay)

        logger.info(
            f"[WebhookDelivery] Retrying job {job.id} for {job.config.id} in {delay:g}s "
            f"(next attempt {job.attempt + 1}/{self._config.max_retries + 1}): {job.last_error}"
        )

        loop = asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def _fire() -> None:
            self._retry_handles.discard(handle)
            self._requeue(job)

        handle = loop.call_later(delay, _fire)
        self._retry_handles.add(handle)

    def _requeue(self, job: DeliveryJob) -> None:
        if not self._running:
            self._log_dropped(job, "service stopped before retry")
            return
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            self._log_dropped(job, "queue full on retry")

    # ======================================================================
    # HTTP delivery
    # ======================================================================

    async def deliver_event(self, event: WebhookEvent, config: WebhookConfig) -> DeliveryOutcome:
        """
        Deliver once, synchronously, bypassing the queue and retry policy.

        Works whether or not the worker pool is running.
        """
        outcome = await self._attempt_delivery(event, config)
        logger.info(
            f"[WebhookDelivery] Direct delivery of {event.type} to {config.id}: "
            f"{outcome.status.value} (status={outcome.status_code})"
        )
        return outcome

    def _build_headers(self, event: WebhookEvent, config: WebhookConfig, body: bytes) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._config.user_agent,
            "X-Webhook-Event": event.type,
            "X-Webhook-Session": event.session_id,
            "X-Webhook-Timestamp": str(int(event.timestamp.timestamp())),
        }
        if config.secret:
            headers[WebhookSignature.SIGNATURE_HEADER] = WebhookSignature.sign(body, config.secret)
        return headers

    async def _attempt_delivery(self, event: WebhookEvent, config: WebhookConfig) -> DeliveryOutcome:
        """Single HTTP POST, classified. Never raises for delivery problems."""
        start = time.monotonic()

        try:
            body = json.dumps(event.to_payload(), separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            return DeliveryOutcome.permanent_failure(f"failed to serialize payload: {e}")

        headers = self._build_headers(event, config, body)
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout_seconds)

        close_session = False
        session = self._session
        if session is None:
            session = aiohttp.ClientSession()
            close_session = True

        try:
            async with session.post(
                config.url,
                data=body,
                headers=headers,
                timeout=timeout,
            ) as response:
                try:
                    raw = await response.content.read(MAX_RESPONSE_BYTES)
                    response_body = raw.decode("utf-8", errors="replace")
                except aiohttp.ClientError:
                    response_body = None

                return self._classify_response(
                    response.status, time.monotonic() - start, response_body
                )

        except aiohttp.InvalidURL as e:
            return DeliveryOutcome.permanent_failure(
                f"invalid webhook URL: {e}", time.monotonic() - start
            )
        except asyncio.TimeoutError:
            return DeliveryOutcome.retryable_failure(
                f"timeout after {self._config.request_timeout_seconds:g}s",
                time.monotonic() - start,
            )
        except aiohttp.ClientError as e:
            return DeliveryOutcome.retryable_failure(
                f"request failed: {e}", time.monotonic() - start
            )
        except ValueError as e:
            # aiohttp rejects header values with control characters
            return DeliveryOutcome.permanent_failure(
                f"failed to build request: {e}", time.monotonic() - start
            )
        finally:
            if close_session:
                await session.close()

    @staticmethod
    def _classify_response(status: int, latency: float, body: Optional[str]) -> DeliveryOutcome:
        if 200 <= status < 300:
            return DeliveryOutcome.delivered(status, latency, body)
        if status >= 500 or status == 408:
            return DeliveryOutcome.retryable_failure(f"HTTP {status}", latency, status, body)
        return DeliveryOutcome.permanent_failure(f"HTTP {status}", latency, status, body)

    # ======================================================================
    # History
    # ======================================================================

    def _record(self, job: DeliveryJob, outcome: DeliveryOutcome) -> None:
        self._history.append({
            "job_id": job.id,
            "webhook_id": job.config.id,
            "event_id": job.event.id,
            "event_type": job.event.type,
            "recorded_at": datetime.now(timezone.utc).isoformat(),
            "outcome": outcome,
        })

    def recent_outcomes(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent attempt records, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]
