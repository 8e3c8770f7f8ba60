import asyncio
import argparse
import json
import logging
import sys
from core.engine import Engine
from core.analyzer_registry import AnalyzerRegistry, filter_by_slots
from core.context import DetectionInput
from core.corpus_store import CorpusStore
from core.rules_validator import print_validation_report
from rules.rules_loader import DEFAULT_RULES_DIR, load_corpus


def main():
    parser = argparse.ArgumentParser(description="Website technology fingerprinting CLI")
    parser.add_argument("url", nargs="?", help="Target URL (e.g., https://example.com)")
    parser.add_argument("--input-file", type=str, help="Analyze a JSON file of retrieved artifacts (url, htmlContent, headers, cookies, robotsTxtContent, tlsInfo) instead of fetching")
    parser.add_argument("--rules-dir", type=str, default=DEFAULT_RULES_DIR, help="Directory containing signature YAML files")
    parser.add_argument("--confidence-threshold", type=float, default=0.0, help="Minimum confidence to include")
    parser.add_argument("--value-max-length", type=int, default=200, help="Maximum length for matched values (default: 200, use 0 for unlimited)")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity level (default: INFO)")
    parser.add_argument("--exclude", type=str, nargs="+", help="Exclude specific analyzers (e.g., --exclude html js cookies)")
    parser.add_argument("--list-analyzers", action="store_true", help="List all available analyzers and exit")
    parser.add_argument("--validate-rules", action="store_true", help="Print a validation report of the signature corpus and exit")
    parser.add_argument("--timeout", type=float, default=None, help="Ceiling in seconds for each retrieval call (page, robots.txt, DNS, TLS)")
    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, args.log_level),
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)

    store = CorpusStore(loader=lambda: load_corpus(args.rules_dir))

    # List analyzers if requested
    if args.list_analyzers:
        corpus = store.snapshot()
        print("Available analyzers:")
        for name in AnalyzerRegistry.get_all_names():
            slots = AnalyzerRegistry.get_slots(name)
            count = len(filter_by_slots(corpus, set(slots)))
            print(f"  - {name} ({', '.join(slots)}): {count} signatures")
        return

    if args.validate_rules:
        diagnostics = print_validation_report(store.snapshot())
        sys.exit(1 if diagnostics else 0)

    # Require a target if not listing analyzers
    if not args.url and not args.input_file:
        parser.error("URL or --input-file is required unless using --list-analyzers or --validate-rules")

    exclude_set = set(args.exclude) if args.exclude else set()
    available_analyzers = set(AnalyzerRegistry.get_all_names())
    invalid_excludes = exclude_set - available_analyzers
    if invalid_excludes:
        logger.error(f"Invalid analyzer names: {', '.join(sorted(invalid_excludes))}")
        logger.info(f"Available analyzers: {', '.join(sorted(available_analyzers))}")
        sys.exit(2)

    engine_options = {"corpus_store": store, "exclude_analyzers": exclude_set}
    if args.timeout:
        engine_options["retrieval_timeout"] = args.timeout
    engine = Engine(**engine_options)
    max_len = None if args.value_max_length == 0 else args.value_max_length

    if args.input_file:
        try:
            with open(args.input_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.error(f"Input file not found: {args.input_file}")
            sys.exit(1)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in input file: {e}")
            sys.exit(1)
        if not isinstance(data, dict):
            logger.error("Input file must contain a JSON object")
            sys.exit(1)

        technologies = engine.detect(DetectionInput.from_dict(data))
        filtered = [t for t in technologies if t.confidence >= args.confidence_threshold]
        logger.info(f"After confidence filtering: {len(filtered)} of {len(technologies)} technologies")
        print(json.dumps([t.to_dict(max_len) for t in filtered], indent=2))
        return

    logger.info(f"Starting scan of {args.url} with confidence threshold {args.confidence_threshold}")

    async def run():
        result = await engine.analyze_website(args.url)
        result.detected_technologies = [
            t for t in result.detected_technologies if t.confidence >= args.confidence_threshold
        ]
        logger.info(result.analysis_summary)
        print(json.dumps(result.to_dict(value_max_length=max_len), indent=2))
        return result

    result = asyncio.run(run())
    if result.error:
        sys.exit(1)


if __name__ == "__main__":
    main()
