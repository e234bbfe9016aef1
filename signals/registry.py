"""
Static producer registry and the parallel signal collector.

Producers are a closed set: adding a strategy means adding a class here.
"""

import inspect
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional

from core.config import StrategyConfig
from core.exceptions import ConfigurationError, InvariantViolation
from .congressional import CongressionalProducer
from .contracts import ContractsProducer
from .insider import InsiderProducer
from .lobbying import LobbyingProducer
from .signal_base import ProducerContext, Signal, SignalProducer


logger = logging.getLogger(__name__)

PRODUCERS: dict[str, type[SignalProducer]] = {
    CongressionalProducer.name: CongressionalProducer,
    InsiderProducer.name: InsiderProducer,
    LobbyingProducer.name: LobbyingProducer,
    ContractsProducer.name: ContractsProducer,
}

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


@dataclass
class StrategyResult:
    """Outcome of one producer run."""

    name: str
    status: str = STATUS_SUCCESS
    signal_count: int = 0
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass
class CollectedSignals:
    """All signals of a pass plus per-strategy outcomes."""

    signals: list[Signal] = field(default_factory=list)
    results: dict[str, StrategyResult] = field(default_factory=dict)

    @property
    def failed_strategies(self) -> list[str]:
        return [name for name, r in self.results.items() if not r.succeeded]


def build_producers(strategy_configs: Iterable[StrategyConfig]) -> list[SignalProducer]:
    """
    Instantiate enabled strategies in registry order.

    Raises:
        ConfigurationError: Unknown strategy or parameter
    """
    configs = {c.name: c for c in strategy_configs}

    unknown = sorted(set(configs) - set(PRODUCERS))
    if unknown:
        raise ConfigurationError(
            f"No producer registered for: {', '.join(unknown)}",
            {"known": ", ".join(PRODUCERS)},
        )

    producers = []
    for name, cls in PRODUCERS.items():
        cfg = configs.get(name)
        if cfg is None or not cfg.enabled:
            continue

        accepted = set(inspect.signature(cls.__init__).parameters) - {"self"}
        bad = sorted(set(cfg.params) - accepted)
        if bad:
            raise ConfigurationError(
                f"Unknown params for strategy '{name}': {', '.join(bad)}",
                {"accepted": ", ".join(sorted(accepted))},
            )

        producers.append(cls(**cfg.params))

    logger.info(f"Built producers: {', '.join(p.name for p in producers) or 'none'}")
    return producers


def _run_producer(producer: SignalProducer, context: ProducerContext) -> tuple[list[Signal], float]:
    started = time.monotonic()
    signals = producer.generate_signals(context)
    return list(signals), time.monotonic() - started


def collect_signals(
    producers: list[SignalProducer],
    context: ProducerContext,
    max_workers: int = 4,
) -> CollectedSignals:
    """
    Run producers in parallel and concatenate their signals.

    Producers share no mutable state, so they run on a thread pool. Output
    order follows the producer list regardless of completion order.

    A producer that fails is recorded and logged and the rest of the pass
    continues. Configuration errors and invariant violations propagate.
    """
    collected = CollectedSignals()
    if not producers:
        return collected

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(producers)))) as pool:
        futures = [(p, pool.submit(_run_producer, p, context)) for p in producers]

        for producer, future in futures:
            try:
                signals, duration = future.result()
            except (ConfigurationError, InvariantViolation) as e:
                logger.error(f"[{producer.name}] Fatal producer error: {e}")
                raise
            except Exception as e:
                logger.exception(f"[{producer.name}] Producer failed: {e}")
                collected.results[producer.name] = StrategyResult(
                    name=producer.name, status=STATUS_FAILED, error=str(e)
                )
                continue

            collected.signals.extend(signals)
            collected.results[producer.name] = StrategyResult(
                name=producer.name,
                signal_count=len(signals),
                duration_seconds=round(duration, 3),
            )
            logger.info(f"[{producer.name}] Generated {len(signals)} signals in {duration:.2f}s")

    return collected
