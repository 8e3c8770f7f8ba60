"""
Utility functions for parsing and applying `version:` directive templates.

A template is either a substitution (literal text with `\\N` placeholders that
are replaced by capture group N) or a ternary (`\\N?trueValue:falseValue`,
false branch optional) that picks a branch depending on whether group N
captured anything.
"""
import re
from typing import Optional

from models.signature import VersionTemplate, VersionTemplateKind


BACKREFERENCE = re.compile(r'\\(\d+)')
TERNARY = re.compile(r'^\\(\d+)\?([^:]*)(?::(.*))?$', re.DOTALL)


def parse_version_template(template: str) -> VersionTemplate:
    """
    Parse the text following `version:` into a typed template.

    Examples:
        - "\\1" -> substitution
        - "\\1?4.x:3.x" -> ternary on group 1, true "4.x", false "3.x"
        - "\\2?beta" -> ternary on group 2 with no false branch
    """
    ternary = TERNARY.match(template)
    if ternary:
        return VersionTemplate(
            kind=VersionTemplateKind.TERNARY,
            raw=template,
            group=int(ternary.group(1)),
            true_value=ternary.group(2),
            false_value=ternary.group(3),
        )
    return VersionTemplate(kind=VersionTemplateKind.SUBSTITUTION, raw=template)


def _group_text(match, index: int) -> str:
    """Captured text of group `index`, or '' when it did not participate or does not exist."""
    try:
        return match.group(index) or ""
    except IndexError:
        return ""


def substitute_backreferences(text: str, match) -> str:
    return BACKREFERENCE.sub(lambda ref: _group_text(match, int(ref.group(1))), text)


def apply_version_template(match, template: Optional[VersionTemplate]) -> Optional[str]:
    """
    Derive a version string from a regex match.

    Args:
        match: The match object produced by the tagged pattern's regex
        template: Parsed version template (None means no version)

    Returns:
        The trimmed version, or None when the template yields nothing
    """
    if match is None or template is None:
        return None

    if template.kind is VersionTemplateKind.TERNARY:
        if _group_text(match, template.group):
            chosen = template.true_value
        elif template.false_value is not None:
            chosen = template.false_value
        else:
            return None
    else:
        chosen = template.raw

    version = substitute_backreferences(chosen, match).strip()
    return version or None
