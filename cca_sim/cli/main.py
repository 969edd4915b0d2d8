from __future__ import annotations
import argparse
from ..codec.cpack import LINE_SIZE_BYTES, WORD_SIZE_BYTES, compress
from ..runtime.simulator import run as run_sim
from ..config import SimConfig, SUPPORTED_SECRET_LENGTHS
from ..utils.logging import get_logger
from ..utils.reporting import generate_report


def cmd_compress(args):
    """Handles the 'compress' command."""
    line = bytes.fromhex(args.line)
    if len(line) < LINE_SIZE_BYTES:
        line += bytes(LINE_SIZE_BYTES - len(line))
    compressed = compress(line)

    for i, word in enumerate(compressed.words):
        raw = line[i * WORD_SIZE_BYTES:(i + 1) * WORD_SIZE_BYTES]
        print(f"  word {i:>2}: {raw.hex()}  {word.pattern}  {word.bits:>2} bits")
    print(f"Compressed size: {compressed.size_bits} bits ({compressed.size_bytes} bytes)")
    return compressed


def cmd_run(args):
    """Handles the 'run' command."""
    config = SimConfig.from_args(args)
    get_logger("cca_sim", config.log_level)

    print("--- Simulator Configuration ---")
    print(config)
    print("-----------------------------")

    results = run_sim(config)
    generate_report(results, config)

    print(f"[OK] Simulation finished. Reports are in {config.report_dir}")
    return results


def build_parser():
    p = argparse.ArgumentParser(
        prog="cca-sim",
        description="Compressed cache side-channel attack simulator",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # --- Compress Command ---
    pc = sub.add_parser("compress", help="Show how one 64-byte line compresses",
                        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    pc.add_argument("line", help="Line contents in hex (zero-padded to 64 bytes)")
    pc.set_defaults(func=cmd_compress)

    # --- Run Command ---
    pr = sub.add_parser("run", help="Run attack trials and report statistics",
                        formatter_class=argparse.ArgumentDefaultsHelpFormatter)

    # Config file
    pr.add_argument("-c", "--config", type=str, default=None,
                    help="Path to YAML config file to override defaults")

    # Core args (set default=None to allow override from YAML)
    pr.add_argument("--secret-length", type=int, default=None, dest="secret_length",
                    choices=list(SUPPORTED_SECRET_LENGTHS), help="Secret length in bytes")
    pr.add_argument("--trials", type=int, default=None,
                    help="Number of independent trials")
    pr.add_argument("--seed", type=int, default=None,
                    help="Seed for secret generation")
    pr.add_argument("--report", type=str, default=None, dest="report_dir",
                    help="Directory to save simulation reports")
    pr.add_argument("--log-level", type=str, default=None, dest="log_level",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")

    pr.set_defaults(func=cmd_run)

    return p


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    main()
