from __future__ import annotations
from dataclasses import dataclass
import yaml
from pathlib import Path

from .errors import InvalidConfiguration

SUPPORTED_SECRET_LENGTHS = (4, 8)

# Must match the cache geometry in cache/compressed_cache.py
_SUPERBLOCK_BYTES = 256
_EVICTION_LINES = 8


@dataclass
class SimConfig:
    """Compressed-cache attack simulator configuration."""
    # Trial parameters
    secret_length: int = 4
    trials: int = 100
    seed: int | None = None
    max_secret_draws: int = 1024

    # Address layout
    victim_base_address: int = 0x0001_0000
    attacker_base_address: int = 0x0010_0000

    # Config file
    config_file: str = ""

    # Reporting
    report_dir: str = "out/default_run"
    log_level: str = "INFO"

    def __post_init__(self):
        if self.secret_length not in SUPPORTED_SECRET_LENGTHS:
            raise InvalidConfiguration(
                f"Unsupported secret length {self.secret_length}; expected one of {SUPPORTED_SECRET_LENGTHS}.")
        if self.trials <= 0:
            raise InvalidConfiguration("Number of trials must be positive.")
        if self.max_secret_draws < self.secret_length:
            raise InvalidConfiguration("max_secret_draws cannot be smaller than the secret length.")

        for name in ("victim_base_address", "attacker_base_address"):
            address = getattr(self, name)
            if address < 0 or address % _SUPERBLOCK_BYTES != 0:
                raise InvalidConfiguration(f"{name} must be a non-negative multiple of {_SUPERBLOCK_BYTES}.")

        victim_end = self.victim_base_address + _SUPERBLOCK_BYTES
        attacker_end = self.attacker_base_address + _EVICTION_LINES * _SUPERBLOCK_BYTES
        if self.victim_base_address < attacker_end and self.attacker_base_address < victim_end:
            raise InvalidConfiguration("Victim buffer overlaps the attacker's eviction buffer.")

    @property
    def secret_words(self) -> int:
        """Number of 4-byte words the secret spans."""
        return self.secret_length // 4

    def update_from_yaml(self, yaml_path: str):
        """Updates config fields from a YAML file."""
        with open(yaml_path, 'r') as f:
            yaml_config = yaml.safe_load(f) or {}
        for key, value in yaml_config.items():
            if hasattr(self, key):
                setattr(self, key, value)

    @classmethod
    def from_args(cls, args) -> SimConfig:
        """Factory method to create a SimConfig from parsed argparse arguments."""
        config = cls()

        # 1. Load from YAML config file if provided
        if hasattr(args, 'config') and args.config:
            config.config_file = args.config
            if Path(config.config_file).exists():
                config.update_from_yaml(config.config_file)
            else:
                print(f"Warning: Config file {config.config_file} not found.")

        # 2. Override with command-line arguments
        arg_dict = vars(args)
        for key, value in arg_dict.items():
            if value is not None and hasattr(config, key):
                setattr(config, key, value)

        config.__post_init__()
        return config
