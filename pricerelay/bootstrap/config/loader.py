import argparse
import os
from functools import lru_cache
from pathlib import Path


@lru_cache
def get_cli_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pricerelay",
        description=(
            "Start the pricing relay.\n\n"
            "Accepts JSON pricing requests from websocket clients and relays them\n"
            "as binary frames to the pricer daemon, one pricer connection per client."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help=(
            "Path to an optional YAML configuration file.\n"
            "Environment variables (WS_PORT, PRICER_HOST, PRICER_PORT, ...)\n"
            "take precedence over values from the file."
        )
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity for the relay.\n"
            "Choose among: DEBUG, INFO, WARNING, ERROR, CRITICAL.\n\n"
            "DEBUG    → per-request tracing (frame sizes, session phases).\n"
            "INFO     → connection lifecycle (default).\n"
            "WARNING  → bad requests and overflows.\n"
            "ERROR    → pricer failures only.\n"
            "CRITICAL → only critical failures.\n\n"
            "Example:\n"
            "  --log-level DEBUG"
        ),
    )

    return parser.parse_args()


@lru_cache
def get_configfile() -> Path | None:
    args = get_cli_args()

    # Priority: CLI > ENV > no file
    raw = args.config or os.getenv("PRICERELAYCONFIG")

    if raw is None:
        return None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the PRICERELAYCONFIG environment variable\n"
            "  - Or omit both and configure through environment variables only."
        )

    return file
