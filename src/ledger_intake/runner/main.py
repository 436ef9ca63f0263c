"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from ..classification import RegistryResolver
from ..config import ConfigValidationError, IntakeConfig, create_default_config, load_config
from ..extractors import ImportRouter
from ..llm import LLMService
from ..schemas import Currency, summarize
from ..toon import ToonParser, format_toon

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ledger-intake",
        description="Extract candidate transactions from statements, receipts and notes",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # analyze command
    analyze_parser = subparsers.add_parser(
        "analyze", help="Extract transactions from a CSV, workbook, PDF, image or text file"
    )
    analyze_parser.add_argument("file", type=Path, help="File to analyze")
    analyze_parser.add_argument(
        "--raw-text",
        action="store_true",
        help="Only print the extracted text",
    )
    analyze_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )

    # toon command
    toon_parser = subparsers.add_parser("toon", help="Parse informal notes into TOON transactions")
    toon_parser.add_argument("text", nargs="+", help="Notes to parse (one argument per note)")
    toon_parser.add_argument(
        "--registry",
        type=Path,
        help="YAML file with accounts/categories to resolve ids against",
    )
    toon_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )

    # prompt command
    subparsers.add_parser("prompt", help="Print the TOON system prompt for today")

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument("path", type=Path, help="Where to write the config file")

    return parser


def cmd_analyze(config: IntakeConfig, file: Path, raw_text: bool, as_json: bool) -> int:
    """Run the document pipeline on one file."""
    with ImportRouter(config) as router:
        result = router.analyze_file(file, raw_text_only=raw_text)

    if raw_text:
        if not result.succeeded:
            print(f"❌ {result.error or 'No text extracted'}")
            return 1
        print(result.raw_text)
        return 0

    summary = summarize(
        result.transactions,
        Currency.parse(config.toon.primary_currency) or Currency.ARS,
    )

    if as_json:
        output = result.to_dict()
        output["summary"] = summary.to_dict()
        print(json.dumps(output, indent=2, ensure_ascii=False))
        return 0 if result.succeeded else 1

    if not result.succeeded:
        print(f"❌ No transactions found in {file}" + (f": {result.error}" if result.error else ""))
        return 1

    print(f"\n📄 {file.name} ({result.format_tag}, via {result.strategy})")
    print("=" * 60)
    for tx in result.transactions:
        currency = tx.currency.value if tx.currency else ""
        print(
            f"  {tx.date}  {tx.direction.value:<8} {tx.amount:>12} {currency:<3}  {tx.description}"
        )
    print("-" * 60)
    print(f"  Transactions: {summary.total_transactions}")
    for code, total in summary.totals.items():
        print(f"  Total {code}:    {total}")
    if summary.start_date:
        print(f"  Period:       {summary.start_date} .. {summary.end_date}")
    print()
    return 0


def _load_registry(path: Path) -> RegistryResolver:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return RegistryResolver.from_mapping(data)


def cmd_toon(
    config: IntakeConfig, texts: list[str], registry: Path | None, as_json: bool
) -> int:
    """Parse informal notes."""
    resolver = None
    if registry is not None:
        try:
            resolver = _load_registry(registry)
        except (OSError, yaml.YAMLError, KeyError, ValueError, TypeError) as e:
            print(f"❌ Failed to load registry: {e}")
            return 1

    llm = LLMService(config.llm) if config.llm.enabled else None
    try:
        parser = ToonParser(config.toon, llm=llm)
        result = parser.parse_text(texts[0]) if len(texts) == 1 else parser.parse_entries(texts)
    finally:
        if llm is not None:
            llm.close()

    prepared = resolver.prepare_for_insert(result.transactions) if resolver else []

    if as_json:
        output = {
            "succeeded": result.succeeded,
            "strategy": result.strategy,
            "error": result.error,
            "transactions": [tx.to_dict() for tx in result.transactions],
        }
        if resolver:
            output["prepared"] = [p.to_dict() for p in prepared]
        print(json.dumps(output, indent=2, ensure_ascii=False))
        return 0 if result.succeeded else 1

    if not result.succeeded:
        print("❌ No transactions found" + (f": {result.error}" if result.error else ""))
        return 1

    print(format_toon(result.transactions))
    if resolver:
        print(f"\n✓ {len(prepared)} of {len(result.transactions)} ready to insert")
        for p in prepared:
            print(
                f"  {p.date}  {p.amount} {p.currency.value}  "
                f"{p.source_account_id} -> {p.destination_account_id}  "
                f"category={p.category_id}  {p.description}"
            )
    return 0


def cmd_prompt(config: IntakeConfig) -> int:
    """Print the TOON system prompt."""
    print(ToonParser(config.toon).system_prompt())
    return 0


def cmd_init_config(path: Path) -> int:
    """Write a default config file."""
    if path.exists():
        print(f"❌ {path} already exists")
        return 1
    create_default_config(path)
    print(f"✓ Wrote default config to {path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.path)

    # Load config
    try:
        config = load_config(parsed.config, strict=True)
    except ConfigValidationError as e:
        print(f"❌ Invalid config: {e}")
        return 1
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    # Route to command
    if parsed.command == "analyze":
        return cmd_analyze(config, parsed.file, parsed.raw_text, parsed.json)
    elif parsed.command == "toon":
        return cmd_toon(config, parsed.text, parsed.registry, parsed.json)
    elif parsed.command == "prompt":
        return cmd_prompt(config)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
