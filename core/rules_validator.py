"""
Utility functions to validate a loaded signature corpus for dangling references,
duplications and overlapping evidence.
"""

from typing import Dict, List, Set
from collections import defaultdict

from core.categories import CATEGORIES
from models.signature import CorpusDiagnostic, SignatureCorpus


def detect_duplicate_names(corpus: SignatureCorpus) -> List[CorpusDiagnostic]:
    """Signatures sharing a name; only the last one is reachable by name."""
    counts: Dict[str, int] = defaultdict(int)
    for signature in corpus:
        counts[signature.name] += 1
    return [
        CorpusDiagnostic(message=f"Duplicate signature name ({count} definitions)", signature=name)
        for name, count in sorted(counts.items())
        if count > 1
    ]


def detect_dangling_references(corpus: SignatureCorpus) -> List[CorpusDiagnostic]:
    """`implies`, `requires` and `excludes` entries naming no signature."""
    diagnostics = []
    for signature in corpus:
        references = {
            "implies": [implied.name for implied in signature.implies],
            "requires": list(signature.requires),
            "excludes": list(signature.excludes),
        }
        for slot, names in references.items():
            for name in names:
                if name not in corpus:
                    diagnostics.append(
                        CorpusDiagnostic(
                            message=f"References unknown technology '{name}'",
                            signature=signature.name,
                            slot=slot,
                        )
                    )
    return diagnostics


def detect_unknown_categories(corpus: SignatureCorpus) -> List[CorpusDiagnostic]:
    diagnostics = []
    for signature in corpus:
        for slot in ("cats", "requires_category"):
            for cat_id in getattr(signature, slot):
                if cat_id not in CATEGORIES:
                    diagnostics.append(
                        CorpusDiagnostic(message=f"Unknown category id {cat_id}", signature=signature.name, slot=slot)
                    )
    return diagnostics


def detect_implication_cycles(corpus: SignatureCorpus) -> List[List[str]]:
    """
    Find cycles in the implication graph.

    Returns:
        Each cycle as the list of names along it, starting and ending with the
        same name (e.g. ["A", "B", "A"])
    """
    graph = {
        signature.name: sorted({implied.name for implied in signature.implies if implied.name in corpus})
        for signature in corpus
    }
    cycles: List[List[str]] = []
    seen_cycles: Set[frozenset] = set()
    done: Set[str] = set()

    def visit(name: str, path: List[str]):
        if name in path:
            cycle = path[path.index(name):] + [name]
            key = frozenset(cycle)
            if key not in seen_cycles:
                seen_cycles.add(key)
                cycles.append(cycle)
            return
        if name in done:
            return
        path.append(name)
        for target in graph.get(name, []):
            visit(target, path)
        path.pop()
        done.add(name)

    for name in sorted(graph):
        visit(name, [])
    return cycles


def validate_corpus(corpus: SignatureCorpus) -> List[CorpusDiagnostic]:
    """
    Reference-level validation on top of the load-time pattern diagnostics.

    Returns:
        Load diagnostics followed by duplicate, dangling-reference,
        unknown-category and implication-cycle diagnostics
    """
    diagnostics = list(corpus.diagnostics)
    diagnostics.extend(detect_duplicate_names(corpus))
    diagnostics.extend(detect_dangling_references(corpus))
    diagnostics.extend(detect_unknown_categories(corpus))
    for cycle in detect_implication_cycles(corpus):
        diagnostics.append(
            CorpusDiagnostic(message=f"Implication cycle: {' -> '.join(cycle)}", signature=cycle[0], slot="implies")
        )
    return diagnostics


def _keyed_overlaps(corpus: SignatureCorpus, slot: str) -> Dict[str, List[str]]:
    keys_map = defaultdict(list)
    for signature in corpus:
        for rule in getattr(signature, slot):
            keys_map[rule.key.lower()].append(signature.name)
    return {key: names for key, names in keys_map.items() if len(names) > 1}


def detect_cookie_overlaps(corpus: SignatureCorpus) -> Dict[str, List[str]]:
    """
    Detect cookies used by multiple technologies.

    Returns:
        Dictionary with cookie names as keys and list of technologies as values
    """
    return _keyed_overlaps(corpus, "cookies")


def detect_header_overlaps(corpus: SignatureCorpus) -> Dict[str, List[str]]:
    """
    Detect headers used by multiple technologies.

    Returns:
        Dictionary with header names as keys and list of technologies as values
    """
    return _keyed_overlaps(corpus, "headers")


def detect_pattern_overlaps(corpus: SignatureCorpus) -> Dict[str, List[str]]:
    """
    Detect HTML patterns used by multiple technologies.

    Returns:
        Dictionary with pattern expressions as keys and list of technologies as values
    """
    patterns_map = defaultdict(list)
    for signature in corpus:
        for pattern in signature.html:
            patterns_map[pattern.expression].append(signature.name)
    return {pattern: names for pattern, names in patterns_map.items() if len(names) > 1}


def detect_all_overlaps(corpus: SignatureCorpus) -> Dict[str, Dict[str, List[str]]]:
    return {
        'cookie_overlaps': detect_cookie_overlaps(corpus),
        'header_overlaps': detect_header_overlaps(corpus),
        'pattern_overlaps': detect_pattern_overlaps(corpus),
    }


def print_validation_report(corpus: SignatureCorpus, verbose: bool = True) -> List[CorpusDiagnostic]:
    """
    Print a comprehensive validation report of the corpus.

    Args:
        corpus: Loaded signature corpus
        verbose: Whether to print every overlapping pattern

    Returns:
        The diagnostics found, so callers can decide on an exit status
    """
    diagnostics = validate_corpus(corpus)

    print("\n" + "="*70)
    print("SIGNATURE CORPUS VALIDATION REPORT")
    print("="*70)
    print(f"\nTotal Signatures: {len(corpus)} (corpus v{corpus.version})")

    if diagnostics:
        print(f"\n⚠ DIAGNOSTICS: {len(diagnostics)}")
        for diagnostic in diagnostics:
            print(f"  {diagnostic}")
    else:
        print("\n✓ No diagnostics")

    overlaps = detect_all_overlaps(corpus)
    for title, found in (
        ("COOKIE OVERLAPS", overlaps['cookie_overlaps']),
        ("HEADER OVERLAPS", overlaps['header_overlaps']),
        ("PATTERN OVERLAPS", overlaps['pattern_overlaps']),
    ):
        if found:
            print(f"\n⚠ {title}: {len(found)}")
            if verbose or title != "PATTERN OVERLAPS":
                for key, names in sorted(found.items()):
                    print(f"  '{key}' -> {', '.join(names)}")
        else:
            print(f"\n✓ No {title.lower()}")

    total_patterns = sum(
        len(getattr(signature, slot))
        for signature in corpus
        for slot in signature.declared_slots()
    )
    technologies = len(set(corpus.names()))

    print("\nStatistics:")
    print(f"  - Unique Technologies: {technologies}")
    print(f"  - Total Patterns: {total_patterns}")
    if technologies:
        print(f"  - Avg Patterns per Technology: {total_patterns / technologies:.1f}")

    print("\n" + "="*70)
    return diagnostics


if __name__ == "__main__":
    import sys
    import argparse
    import yaml
    from rules.rules_loader import DEFAULT_RULES_DIR, load_corpus

    parser = argparse.ArgumentParser(
        description="Validate the signature corpus for dangling references, duplications and overlaps",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate the bundled rules
  python -m core.rules_validator

  # Validate another rules directory, failing on any diagnostic
  python -m core.rules_validator --rules-dir ./my-rules --strict
        """
    )

    parser.add_argument(
        '--rules-dir',
        default=DEFAULT_RULES_DIR,
        help='Directory containing signature YAML files'
    )

    parser.add_argument(
        '--strict',
        action='store_true',
        help='Exit with status 1 when any diagnostic is found'
    )

    parser.add_argument(
        '--no-verbose',
        action='store_false',
        dest='verbose',
        default=True,
        help='Do not list every overlapping pattern'
    )

    args = parser.parse_args()

    try:
        corpus = load_corpus(args.rules_dir)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    found = print_validation_report(corpus, verbose=args.verbose)
    if args.strict and found:
        sys.exit(1)
