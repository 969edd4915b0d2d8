from __future__ import annotations
from typing import Callable, List, Tuple

from ..attack.controller import AttackerController, AttackResult
from ..cache.compressed_cache import CompressedCacheSet
from ..cache.memory import MainMemory
from ..config import SimConfig, SUPPORTED_SECRET_LENGTHS
from ..errors import InvalidConfiguration
from ..utils.logging import get_logger
from ..victim.buffer import ByteSource, RandomByteSource, VictimBuffer

logger = get_logger(__name__)


def initialize(secret_length: int, secret_source: ByteSource | None = None,
               config: SimConfig | None = None) -> Tuple[VictimBuffer, AttackerController]:
    """
    Builds a fresh trial: main memory, the shared cache set, the victim and its attacker.

    The cache set is lent to both actors; it is reachable as `victim.cache`.
    """
    if secret_length not in SUPPORTED_SECRET_LENGTHS:
        raise InvalidConfiguration(
            f"Unsupported secret length {secret_length}; expected one of {SUPPORTED_SECRET_LENGTHS}.")
    if config is None:
        config = SimConfig(secret_length=secret_length)
    if secret_source is None:
        secret_source = RandomByteSource(config.seed)

    memory = MainMemory()
    cache = CompressedCacheSet(memory)
    victim = VictimBuffer.generate(cache, secret_length, secret_source,
                                   base_address=config.victim_base_address,
                                   max_draws=config.max_secret_draws)
    attacker = AttackerController(victim, cache, base_address=config.attacker_base_address)
    return victim, attacker


def run_trial(config: SimConfig, secret_source: ByteSource | None = None) -> AttackResult:
    """Runs a single trial to completion."""
    _, attacker = initialize(config.secret_length, secret_source, config)
    return attacker.run()


def run(config: SimConfig, source_factory: Callable[[int], ByteSource] | None = None) -> List[AttackResult]:
    """
    Runs `config.trials` independent trials.

    `source_factory(trial_index)` supplies each trial's secret source. By default one
    seeded numpy generator is shared by all trials, so a seed reproduces the whole run.
    """
    if source_factory is None:
        shared = RandomByteSource(config.seed)
        source_factory = lambda _: shared

    logger.info(f"Running {config.trials} trials with a {config.secret_length}-byte secret")
    results = []
    for trial in range(config.trials):
        result = run_trial(config, source_factory(trial))
        logger.debug(f"Trial {trial}: {result}")
        results.append(result)
    logger.info(f"{sum(r.success for r in results)}/{len(results)} trials recovered the secret")
    return results
