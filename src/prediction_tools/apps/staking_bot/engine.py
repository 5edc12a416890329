"""Async staking engine for binary-round prediction markets.

Run three producers (a ticker, a round event watcher and a bankroll
refresh timer) that put typed events on one ``asyncio.Queue``, and a
single consumer that handles them one at a time. Every mutation of
streams and stakes happens inside that consumer, so a placement (window
check, submission and ledger write) can never interleave with a
settlement.

Each tick reads the current and next round, picks the round in its late
bet window and asks the stream registry for the next eligible stream;
that stream's stake is sized by the staking policy, capped by the risk
governor and submitted. Round ends settle stakes, drive the claim
scheduler and refresh the bankroll; round locks advance cooldowns.

Recoverable failures are logged, reported through the notifier and
skipped. SIGINT and SIGTERM stop the engine gracefully.
"""

import asyncio
import logging
import random
import signal
import time
from collections.abc import Callable
from typing import Any

from prediction_tools.apps.staking_bot import messages
from prediction_tools.apps.staking_bot.bet_window import (
    is_bettable,
    read_candidate_rounds,
    select_target_round,
)
from prediction_tools.apps.staking_bot.claim_scheduler import ClaimScheduler
from prediction_tools.apps.staking_bot.cooldown import CooldownManager
from prediction_tools.apps.staking_bot.events import (
    EngineEvent,
    ProviderFailure,
    RefreshBankroll,
    RoundEnded,
    RoundLocked,
    Tick,
)
from prediction_tools.apps.staking_bot.models import (
    Stake,
    StakingRunResult,
    StrategyConfig,
    Stream,
)
from prediction_tools.apps.staking_bot.position_pickers import build_position_picker
from prediction_tools.apps.staking_bot.protocols import PositionPicker
from prediction_tools.apps.staking_bot.risk_governor import RiskGovernor
from prediction_tools.apps.staking_bot.round_watcher import RoundEventWatcher
from prediction_tools.apps.staking_bot.settlement import SettlementEngine
from prediction_tools.apps.staking_bot.staking_policy import base_amount, decide, reset_stream
from prediction_tools.apps.staking_bot.stream_registry import StakingState, StreamRegistry
from prediction_tools.clients.prediction.client import PredictionClient
from prediction_tools.clients.prediction.exceptions import PredictionError, ProviderError
from prediction_tools.clients.prediction.models import Round
from prediction_tools.core.protocols import Notifier

logger = logging.getLogger(__name__)


def _log_task_exception(task: asyncio.Task[Any]) -> None:
    """Log unhandled exceptions from background tasks.

    Attach as a ``done_callback`` so that a crashed producer (ticker,
    event watcher, bankroll timer) is surfaced in the logs rather than
    silently swallowed.

    Args:
        task: The completed asyncio task.

    """
    if not task.cancelled() and task.exception() is not None:
        logger.error(
            "Background task %s failed: %s",
            task.get_name(),
            task.exception(),
            exc_info=task.exception(),
        )


class StakingEngine:
    """Event-driven engine that places, settles and claims stakes.

    Args:
        client: Contract client with a configured wallet.
        config: Strategy configuration.
        notifier: Sink for human-readable reports.
        rng: Random source for the position picker.
        clock: Source of the current Unix time in seconds.
        picker: Position picker; built from ``config.position_picker`` when
            omitted.

    """

    def __init__(  # noqa: PLR0913
        self,
        client: PredictionClient,
        config: StrategyConfig,
        notifier: Notifier,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
        picker: PositionPicker | None = None,
    ) -> None:
        """Initialize the staking engine.

        Args:
            client: Contract client with a configured wallet.
            config: Strategy configuration.
            notifier: Sink for human-readable reports.
            rng: Random source for the position picker.
            clock: Source of the current Unix time in seconds.
            picker: Optional position picker overriding the configured one.

        """
        self._client = client
        self._config = config
        self._notifier = notifier
        self._clock = clock
        self._picker = picker or build_position_picker(
            config.position_picker,
            min_liquidity=config.min_liquidity,
            rng=rng,
        )
        self._queue: asyncio.Queue[EngineEvent] = asyncio.Queue()
        self._state = StakingState(registry=StreamRegistry(config.max_streams, 0))
        self._risk = RiskGovernor(client, config, clock)
        self._claims = ClaimScheduler(
            client,
            self._state.ledger,
            notifier,
            policy=config.claim_policy,
            streak_length=config.claim_streak_length,
        )
        self._settlement = SettlementEngine(
            client, self._state, config, self._risk, notifier, clock
        )
        self._cooldown = CooldownManager(self._state.registry, config)
        self._watcher = RoundEventWatcher(client, self._queue, config.event_poll_seconds)
        self._tick_pending = False
        self._shutdown = False
        self._events_processed = 0
        self._initial_bankroll = 0

    @property
    def state(self) -> StakingState:
        """Return the streams and ledger owned by the engine."""
        return self._state

    @property
    def risk(self) -> RiskGovernor:
        """Return the engine's risk governor."""
        return self._risk

    @property
    def queue(self) -> asyncio.Queue[EngineEvent]:
        """Return the engine's event queue."""
        return self._queue

    async def initialize(self) -> None:
        """Read the bankroll and set every stream to the base stake.

        Raises:
            ProviderError: When the balance or minimum bet cannot be read.

        """
        risk = await self._risk.refresh()
        self._initial_bankroll = risk.bankroll
        for stream in self._state.registry:
            requested = reset_stream(stream, self._config, risk)
            if stream.current_amount < requested:
                self._notifier.notify(
                    messages.stake_clamped(stream.id, requested, stream.current_amount)
                )
        logger.info(
            "Engine ready: %d streams, picker %s, base stake %d wei",
            self._config.max_streams,
            self._picker.name,
            self._state.registry.get(1).current_amount,
        )

    async def run(self, *, max_events: int | None = None) -> StakingRunResult:
        """Process events until stopped or ``max_events`` have been handled.

        Install SIGINT and SIGTERM handlers for graceful shutdown and
        cancel the producers on exit.

        Args:
            max_events: Stop after this many events (``None`` for unlimited).

        Returns:
            Summary of the run.

        Raises:
            ProviderError: When the initial bankroll read fails.

        """
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.stop)

        await self.initialize()
        self._notifier.notify(
            f"🚀 Staking bot started with {self._config.max_streams} streams "
            f"({self._config.kind.value}, picker {self._picker.name})"
        )

        tasks = [
            asyncio.create_task(self._ticker_loop(), name="ticker"),
            asyncio.create_task(self._watcher.run(), name="round-watcher"),
            asyncio.create_task(self._bankroll_loop(), name="bankroll"),
        ]
        for task in tasks:
            task.add_done_callback(_log_task_exception)

        handled = 0
        try:
            while not self._shutdown:
                event = await self._queue.get()
                await self.handle(event)
                handled += 1
                if max_events is not None and handled >= max_events:
                    break
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.info("Engine stopped after %d events", self._events_processed)
        return self.result()

    def stop(self) -> None:
        """Ask the engine to exit after the event in progress."""
        logger.info("Shutdown requested")
        self._shutdown = True

    async def handle(self, event: EngineEvent) -> None:
        """Process one event from the queue.

        Args:
            event: Event to process.

        """
        self._events_processed += 1
        match event:
            case Tick():
                self._tick_pending = False
                await self._on_tick()
            case RoundLocked(epoch=epoch, lock_price=lock_price):
                await self._on_round_locked(epoch, lock_price)
            case RoundEnded(epoch=epoch):
                await self._on_round_ended(epoch)
            case ProviderFailure(error=error):
                self._notifier.notify(messages.failure("Provider error", error))
            case RefreshBankroll():
                await self._refresh_risk()

    def result(self) -> StakingRunResult:
        """Return a summary of the engine state so far."""
        return StakingRunResult(
            initial_bankroll=self._initial_bankroll,
            final_bankroll=self._risk.snapshot.bankroll,
            stakes=tuple(self._state.ledger.stakes),
            streams=self._state.registry.streams,
            events_processed=self._events_processed,
        )

    async def _on_tick(self) -> None:
        """Place at most one stake if a round is in its bet window."""
        now = int(self._clock())
        try:
            current, upcoming = await read_candidate_rounds(self._client)
        except ProviderError as exc:
            logger.warning("Failed to read rounds", exc_info=True)
            self._notifier.notify(messages.failure("Round read failed", exc))
            return

        target = select_target_round(current, upcoming, now)
        if not is_bettable(
            target,
            now,
            self._config.bet_window_seconds,
            self._state.ledger,
            exclusive=self._config.exclusive_rounds,
        ):
            return

        stream = self._state.registry.select_stream_for_bet(target.epoch, self._state.ledger)
        if stream is None:
            return
        await self._place(stream, target, now)

    async def _place(self, stream: Stream, round_: Round, now: int) -> None:
        """Size, submit and record one stake for ``stream``.

        Args:
            stream: Stream placing the stake.
            round_: Round being bet on.
            now: Current Unix time in seconds.

        """
        risk = self._risk.snapshot
        decision = decide(stream, round_, self._picker, risk)
        if decision.clamped:
            logger.warning(
                "Stream #%d stake capped from %d to %d wei",
                stream.id,
                decision.requested_amount,
                decision.amount,
            )
            self._notifier.notify(
                messages.stake_clamped(stream.id, decision.requested_amount, decision.amount)
            )
        if decision.amount < risk.min_bet_amount:
            logger.warning(
                "Stream #%d stake %d wei below minimum bet %d wei, skipping round #%d",
                stream.id,
                decision.amount,
                risk.min_bet_amount,
                round_.epoch,
            )
            self._notifier.notify(
                messages.stake_below_minimum(
                    stream.id, round_.epoch, decision.amount, risk.min_bet_amount
                )
            )
            return

        logger.info(
            "Stream #%d betting %d wei on %s in round #%d",
            stream.id,
            decision.amount,
            decision.position.value,
            round_.epoch,
        )
        try:
            await self._client.ensure_balance(decision.amount)
            tx_hash = await self._client.submit_bet(
                round_.epoch, decision.position, decision.amount
            )
        except PredictionError as exc:
            logger.warning(
                "Bet for stream #%d in round #%d failed", stream.id, round_.epoch, exc_info=True
            )
            self._notifier.notify(
                messages.failure(f"Stream #{stream.id} bet in round #{round_.epoch} failed", exc)
            )
            return

        self._state.ledger.record(
            Stake(
                epoch=round_.epoch,
                position=decision.position,
                amount=decision.amount,
                stream_id=stream.id,
                tx_hash=tx_hash,
                placed_at=now,
            )
        )
        self._state.registry.mark_placed(stream, round_.epoch)
        self._notifier.notify(messages.bet_placed(stream, round_.epoch, decision, tx_hash))

    async def _on_round_locked(self, epoch: int, lock_price: int) -> None:
        """Advance cooldowns and report the locked round's pools."""
        risk = self._risk.snapshot
        for stream in self._cooldown.on_round_locked(epoch, risk):
            self._notifier.notify(messages.stream_reactivated(stream))
            requested = base_amount(self._config, risk)
            if stream.current_amount < requested:
                self._notifier.notify(
                    messages.stake_clamped(stream.id, requested, stream.current_amount)
                )

        try:
            round_ = await self._client.get_round(epoch)
        except ProviderError:
            logger.warning("Failed to read locked round #%d", epoch, exc_info=True)
            return
        self._notifier.notify(messages.round_locked(round_, lock_price))

    async def _on_round_ended(self, epoch: int) -> None:
        """Settle stakes up to ``epoch``, claim winnings and refresh the bankroll."""
        outcomes = await self._settlement.settle_through(epoch)
        claimed = await self._claims.maybe_claim()
        if outcomes or claimed:
            await self._refresh_risk()

    async def _refresh_risk(self) -> None:
        """Refresh the risk snapshot, keeping the previous one on failure."""
        try:
            await self._risk.refresh()
        except ProviderError as exc:
            logger.warning("Failed to refresh bankroll", exc_info=True)
            self._notifier.notify(messages.failure("Bankroll refresh failed", exc))

    async def _ticker_loop(self) -> None:
        """Enqueue a tick every ``tick_seconds`` unless one is still pending."""
        while True:
            await asyncio.sleep(self._config.tick_seconds)
            if not self._tick_pending:
                self._tick_pending = True
                await self._queue.put(Tick())

    async def _bankroll_loop(self) -> None:
        """Enqueue a bankroll refresh every ``balance_refresh_seconds``."""
        while True:
            await asyncio.sleep(self._config.balance_refresh_seconds)
            await self._queue.put(RefreshBankroll())
