import pytest

from cca_sim.config import SimConfig
from cca_sim.errors import InvalidConfiguration, SecretGenerationFailure
from cca_sim.runtime.simulator import initialize, run, run_trial
from cca_sim.victim.buffer import RandomByteSource, SequenceByteSource
from cca_sim.victim.debug import reveal_secret


def test_initialize_rejects_unsupported_lengths():
    for length in (0, 5, 16):
        with pytest.raises(InvalidConfiguration):
            initialize(length, SequenceByteSource([1, 2, 3, 4, 5]))


def test_initialize_shares_one_cache():
    victim, attacker = initialize(4, SequenceByteSource([3, 1, 2, 4]))

    assert attacker.cache is victim.cache
    assert attacker.victim is victim
    assert victim.secret_length == 4
    assert reveal_secret(victim) == bytes([3, 1, 2, 4])


def test_initialize_uses_config_addresses():
    config = SimConfig(victim_base_address=0x2000, attacker_base_address=0x4000)
    victim, attacker = initialize(4, SequenceByteSource([3, 1, 2, 4]), config)

    assert victim.base_address == 0x2000
    assert attacker.eviction_lines[0] == 0x4000


def test_initialize_propagates_source_failure():
    with pytest.raises(SecretGenerationFailure):
        initialize(8, SequenceByteSource([1, 2, 3]))


def test_run_trial_with_fixed_secret():
    config = SimConfig(secret_length=4, trials=1)
    result = run_trial(config, SequenceByteSource([3, 1, 2, 4]))

    assert result.success
    assert result.guesses_used == 1
    assert result.secret == bytes([3, 1, 2, 4])


def test_run_uses_source_factory():
    config = SimConfig(secret_length=4, trials=2)
    secrets = [[3, 1, 2, 4], [2, 1, 3, 5]]

    results = run(config, source_factory=lambda trial: SequenceByteSource(secrets[trial]))

    assert [r.secret for r in results] == [bytes(s) for s in secrets]
    assert all(r.success for r in results)


@pytest.mark.slow
def test_random_four_byte_secrets_need_one_guess():
    config = SimConfig(secret_length=4, trials=8)
    # Small byte values keep the linear searches short
    results = run(config, source_factory=lambda trial: RandomByteSource(seed=trial, high=24))

    assert all(r.success for r in results)
    assert all(r.guesses_used == 1 for r in results)


@pytest.mark.slow
def test_random_eight_byte_secrets_take_one_or_two_guesses():
    config = SimConfig(secret_length=8, trials=16)
    results = run(config, source_factory=lambda trial: RandomByteSource(seed=100 + trial, high=24))

    assert all(r.success for r in results)
    # Word order is unknown to the attacker, so both outcomes show up
    assert {r.guesses_used for r in results} == {1, 2}


@pytest.mark.slow
def test_full_range_four_byte_secrets():
    config = SimConfig(secret_length=4, trials=3)
    results = run(config, source_factory=lambda trial: RandomByteSource(seed=trial))

    assert all(r.success for r in results)
    assert all(r.guesses_used == 1 for r in results)


@pytest.mark.slow
def test_full_range_eight_byte_secrets():
    config = SimConfig(secret_length=8, trials=3)
    results = run(config, source_factory=lambda trial: RandomByteSource(seed=1000 + trial))

    assert all(r.success for r in results)
    assert all(r.guesses_used in (1, 2) for r in results)
