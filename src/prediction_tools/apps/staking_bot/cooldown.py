"""Round-lock driven cooldown countdown for deactivated streams."""

import logging

from prediction_tools.apps.staking_bot.models import RiskState, StrategyConfig, Stream
from prediction_tools.apps.staking_bot.staking_policy import reset_stream
from prediction_tools.apps.staking_bot.stream_registry import StreamRegistry

logger = logging.getLogger(__name__)


class CooldownManager:
    """Count down paused streams and reactivate them at zero.

    Args:
        registry: Stream pool to scan.
        config: Strategy configuration used for the reset amount.

    """

    def __init__(self, registry: StreamRegistry, config: StrategyConfig) -> None:
        """Initialize the cooldown manager."""
        self._registry = registry
        self._config = config

    def on_round_locked(self, epoch: int, risk: RiskState) -> list[Stream]:
        """Advance every cooldown by one round.

        Args:
            epoch: Round that just locked.
            risk: Latest risk snapshot, used to size the reset stake.

        Returns:
            Streams reactivated by this lock.

        """
        reactivated: list[Stream] = []
        for stream in self._registry:
            if stream.cooldown_remaining <= 0:
                continue
            stream.cooldown_remaining -= 1
            logger.debug(
                "Stream #%d cooldown %d rounds left after lock #%d",
                stream.id,
                stream.cooldown_remaining,
                epoch,
            )
            if stream.cooldown_remaining == 0:
                reset_stream(stream, self._config, risk)
                logger.info("Stream #%d reactivated at %d wei", stream.id, stream.current_amount)
                reactivated.append(stream)
        return reactivated
