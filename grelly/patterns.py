"""
Version patterns for branch names, tag names and release commit subjects.

A pattern says where the version numbers sit inside a piece of text:

    release/<major>[.<minor>]        branch names
    v<major>.<minor>[.<patch>]       tag names
    release: <major>.<minor>.<patch> commit subjects

Syntax:
    <major> <minor> <patch>  capture a non-negative integer (each at most once)
    [ ... ]                  optional section, may nest
    anything else            literal text

A pattern starting with ``re:`` is a raw regular expression that names its
groups ``major``, ``minor`` and ``patch`` instead. Raw patterns can match
but cannot be rendered back into a tag name or commit message.

Matching is case-insensitive.
"""

import re
from typing import Dict, FrozenSet, List, Optional, Tuple

from .exit_codes import ConfigError

PLACEHOLDERS = ('major', 'minor', 'patch')
RAW_PREFIX = 're:'

DEFAULT_BRANCH_PATTERN = 'release/<major>[.<minor>]'
DEFAULT_TAG_PATTERN = 'v<major>.<minor>[.<patch>]'
DEFAULT_RELEASE_PATTERN = 'release: <major>.<minor>.<patch>'

# (major, minor, patch) as captured; minor and patch may be missing
VersionParts = Tuple[int, Optional[int], Optional[int]]

# Parsed template nodes: ('lit', text) | ('field', name) | ('opt', [nodes])
_Node = Tuple[str, object]


def _parse_template(template: str) -> Tuple[List[_Node], FrozenSet[str]]:
    """Parse a template into nodes, returning the nodes and the placeholders used."""
    root: List[_Node] = []
    stack = [root]
    seen = set()
    literal: List[str] = []

    def flush():
        if literal:
            stack[-1].append(('lit', ''.join(literal)))
            literal.clear()

    i = 0
    while i < len(template):
        ch = template[i]
        if ch == '<':
            end = template.find('>', i)
            if end == -1:
                raise ConfigError(f"Unclosed placeholder in pattern {template!r}")
            name = template[i + 1:end].strip().lower()
            if name not in PLACEHOLDERS:
                raise ConfigError(
                    f"Unknown placeholder <{name}> in pattern {template!r} "
                    f"(expected one of: {', '.join(PLACEHOLDERS)})"
                )
            if name in seen:
                raise ConfigError(f"Placeholder <{name}> used twice in pattern {template!r}")
            seen.add(name)
            flush()
            stack[-1].append(('field', name))
            i = end + 1
            continue

        if ch == '[':
            flush()
            section: List[_Node] = []
            stack[-1].append(('opt', section))
            stack.append(section)
        elif ch == ']':
            if len(stack) == 1:
                raise ConfigError(f"Unbalanced ']' in pattern {template!r}")
            flush()
            stack.pop()
        elif ch == '>':
            raise ConfigError(f"Stray '>' in pattern {template!r}")
        else:
            literal.append(ch)
        i += 1

    if len(stack) != 1:
        raise ConfigError(f"Unclosed '[' in pattern {template!r}")
    flush()
    return root, frozenset(seen)


def _to_regex(nodes: List[_Node]) -> str:
    parts = []
    for kind, value in nodes:
        if kind == 'lit':
            parts.append(re.escape(value))
        elif kind == 'field':
            parts.append(rf'(?P<{value}>\d+)')
        else:
            parts.append(f'(?:{_to_regex(value)})?')
    return ''.join(parts)


def _render(nodes: List[_Node], values: Dict[str, Optional[int]], optional: bool) -> Optional[str]:
    out = []
    for kind, value in nodes:
        if kind == 'lit':
            out.append(value)
        elif kind == 'field':
            number = values.get(value)
            if number is None:
                if optional:
                    return None
                number = 0
            out.append(str(number))
        else:
            section = _render(value, values, optional=True)
            if section is not None:
                out.append(section)
    return ''.join(out)


class VersionPattern:
    """
    A compiled version pattern.

    Example:
        pattern = VersionPattern.compile("v<major>.<minor>[.<patch>]")
        pattern.match("v2.3")        -> (2, 3, None)
        pattern.match("nightly")     -> None
        pattern.render(2, 4)         -> "v2.4"
    """

    def __init__(self, source: str, regex: 're.Pattern', fields: FrozenSet[str],
                 nodes: Optional[List[_Node]] = None):
        self.source = source
        self.regex = regex
        self.fields = fields
        self._nodes = nodes

    @classmethod
    def compile(cls, source: str, require_minor: bool = False, label: str = "pattern") -> 'VersionPattern':
        """
        Compile a template or ``re:`` pattern.

        Args:
            source: Pattern text
            require_minor: Reject patterns that cannot capture a minor version
            label: Name of the setting, used in error messages

        Raises:
            ConfigError: If the pattern is malformed
        """
        if not isinstance(source, str) or not source.strip():
            raise ConfigError(f"Empty {label}")

        if source.startswith(RAW_PREFIX):
            expression = source[len(RAW_PREFIX):]
            try:
                regex = re.compile(expression, re.IGNORECASE)
            except re.error as e:
                raise ConfigError(f"Invalid regular expression in {label} {source!r}: {e}") from e
            unknown = set(regex.groupindex) - set(PLACEHOLDERS)
            if unknown:
                raise ConfigError(
                    f"Unknown named group(s) {', '.join(sorted(unknown))} in {label} {source!r}"
                )
            fields = frozenset(regex.groupindex)
            nodes = None
        else:
            nodes, fields = _parse_template(source)
            regex = re.compile(_to_regex(nodes), re.IGNORECASE)

        if 'major' not in fields:
            raise ConfigError(f"The {label} {source!r} does not capture <major>")
        if require_minor and 'minor' not in fields:
            raise ConfigError(f"The {label} {source!r} does not capture <minor>")

        return cls(source, regex, fields, nodes)

    @property
    def is_template(self) -> bool:
        return self._nodes is not None

    def match(self, text: str, prefix: bool = False) -> Optional[VersionParts]:
        """
        Match text against the pattern.

        Args:
            text: Branch name, tag name or commit subject
            prefix: Match at the start only (commit subjects) instead of the whole text

        Returns:
            (major, minor, patch) with None for uncaptured fields, or None
        """
        text = text.strip()
        m = self.regex.match(text) if prefix else self.regex.fullmatch(text)
        if not m:
            return None

        groups = m.groupdict()
        try:
            major = int(groups['major'])
            minor = int(groups['minor']) if groups.get('minor') is not None else None
            patch = int(groups['patch']) if groups.get('patch') is not None else None
        except (TypeError, ValueError):
            # raw patterns may capture non-numeric text
            return None
        return major, minor, patch

    def render(self, major: int, minor: Optional[int] = None, patch: Optional[int] = None) -> str:
        """
        Render a version into the pattern's text form.

        Optional sections are kept only when every placeholder inside them
        has a value; required placeholders without a value render as 0.

        Raises:
            ConfigError: If the pattern is a raw regular expression
        """
        if self._nodes is None:
            raise ConfigError(f"Cannot render raw pattern {self.source!r}; use a template pattern")
        values = {'major': major, 'minor': minor, 'patch': patch}
        return _render(self._nodes, values, optional=False)

    def __repr__(self) -> str:
        return f"VersionPattern({self.source!r})"
