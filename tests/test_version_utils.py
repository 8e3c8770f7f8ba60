"""Tests for version template utilities."""
import regex

from core.version_utils import (
    apply_version_template,
    parse_version_template,
    substitute_backreferences,
)
from models.signature import VersionTemplateKind


def _match(expression, text):
    return regex.search(expression, text)


def test_parse_substitution_template():
    """Anything that is not a ternary is a substitution."""
    template = parse_version_template("v\\1.\\2")
    assert template.kind == VersionTemplateKind.SUBSTITUTION
    assert template.raw == "v\\1.\\2"


def test_parse_ternary_template():
    template = parse_version_template("\\1?4.x:3.x")
    assert template.kind == VersionTemplateKind.TERNARY
    assert template.group == 1
    assert template.true_value == "4.x"
    assert template.false_value == "3.x"


def test_parse_ternary_without_false_branch():
    template = parse_version_template("\\2?beta")
    assert template.kind == VersionTemplateKind.TERNARY
    assert template.group == 2
    assert template.true_value == "beta"
    assert template.false_value is None


def test_substitution_joins_several_groups():
    match = _match(r"(\d+)_(\d+)", "release 6_2")
    template = parse_version_template("\\1.\\2")
    assert apply_version_template(match, template) == "6.2"


def test_substitution_with_nonexistent_group_is_empty():
    """A reference to a group the pattern does not define substitutes nothing."""
    match = _match(r"lib-(\d+)", "lib-7")
    assert substitute_backreferences("\\1\\5", match) == "7"


def test_result_is_trimmed_and_empty_means_none():
    match = _match(r"app(-[a-z]+)?", "app")
    assert apply_version_template(match, parse_version_template(" \\1 ")) is None


def test_ternary_branch_is_substituted():
    match = _match(r"v(\d)(-rc)?", "v5-rc")
    template = parse_version_template("\\2?\\1-preview:\\1")
    assert apply_version_template(match, template) == "5-preview"


def test_no_template_means_no_version():
    assert apply_version_template(_match("x", "x"), None) is None
