"""Classify source files into artifact kinds using ordered prefix rules."""

from dataclasses import dataclass

from toolsync.artifacts.models import ArtifactKind

# Extensions that can be deployed as artifacts; anything else is skipped
SUPPORTED_EXTENSIONS = (".md", ".js", ".ts", ".mjs")


@dataclass(frozen=True)
class ClassificationRule:
    """Paths starting with prefix (and having something after it) are of this kind."""

    prefix: str
    kind: ArtifactKind


# First match wins. .claude/ layouts are listed before bare directories.
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(prefix=".claude/commands/", kind="command"),
    ClassificationRule(prefix=".claude/agents/", kind="agent"),
    ClassificationRule(prefix=".claude/hooks/", kind="hook"),
    ClassificationRule(prefix="commands/", kind="command"),
    ClassificationRule(prefix="agents/", kind="agent"),
    ClassificationRule(prefix="hooks/", kind="hook"),
)


def normalize_source_path(source_path: str) -> str:
    """Normalize to forward slashes without a leading "./"."""
    normalized = source_path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def has_supported_extension(source_path: str) -> bool:
    return source_path.endswith(SUPPORTED_EXTENSIONS)


def match_rule(
    source_path: str,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> ClassificationRule | None:
    """Return the first rule matching the path, or None.

    Matching is case-sensitive and operates on the normalized path.
    """
    normalized = normalize_source_path(source_path)
    if "/" not in normalized:
        return None
    if not has_supported_extension(normalized):
        return None
    for rule in rules:
        if normalized.startswith(rule.prefix) and len(normalized) > len(rule.prefix):
            return rule
    return None


def classify(
    source_path: str,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> ArtifactKind:
    """Classify a checkout-relative path.

    Examples:
        >>> classify("commands/review.md")
        'command'
        >>> classify(".claude/agents/devrun.md")
        'agent'
        >>> classify("scripts/build.sh")
        'unrecognized'
        >>> classify("commands.md")
        'unrecognized'
    """
    rule = match_rule(source_path, rules)
    if rule is None:
        return "unrecognized"
    return rule.kind
