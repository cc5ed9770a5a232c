"""Gitignore-style rule engine used to filter package contents."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Pattern


@dataclass(frozen=True)
class IgnoreRule:
    """A single compiled line from an ignore source."""

    pattern: str
    regex: Pattern[str]
    directory_only: bool
    negate: bool

    def matches(self, rel_path: str) -> bool:
        """Return True when the rule applies to ``rel_path`` or one of its parents.

        Directory-only rules never match the leaf itself; ``rel_path`` always
        names a file.
        """
        parts = rel_path.split("/")
        for depth in range(1, len(parts)):
            if self.regex.match("/".join(parts[:depth])):
                return True
        if self.directory_only:
            return False
        return self.regex.match(rel_path) is not None


def _translate(pattern: str) -> str:
    """Translate a slash-separated glob into a regex body (no anchors)."""
    out: List[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "*":
            if pattern.startswith("**", index):
                at_segment_start = index == 0 or pattern[index - 1] == "/"
                after = index + 2
                if at_segment_start and pattern.startswith("/", after):
                    # "**/" matches zero or more leading directories
                    out.append("(?:.*/)?")
                    index = after + 1
                    continue
                if at_segment_start and after == length:
                    out.append(".*")
                    index = after
                    continue
                out.append("[^/]*")
                index = after
                continue
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            close = pattern.find("]", index + 1)
            if close == -1:
                out.append(re.escape(char))
            else:
                body = pattern[index + 1 : close]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body.replace(chr(92), chr(92) * 2)}]")
                index = close
        elif char == "\\" and index + 1 < length:
            index += 1
            out.append(re.escape(pattern[index]))
        else:
            out.append(re.escape(char))
        index += 1
    return "".join(out)


def compile_rule(line: str) -> Optional[IgnoreRule]:
    """Compile one ignore-file line, returning None for blanks and comments."""
    text = line.rstrip("\r\n")
    # trailing spaces are insignificant unless escaped
    while text.endswith(" ") and not text.endswith("\\ "):
        text = text[:-1]
    if not text or text.startswith("#"):
        return None

    negate = False
    if text.startswith("!"):
        negate = True
        text = text[1:]
    elif text.startswith(("\\#", "\\!")):
        text = text[1:]

    directory_only = text.endswith("/")
    body = text.rstrip("/")
    if not body:
        return None

    anchored = "/" in body
    body = body.lstrip("/")
    if not body:
        return None

    prefix = "" if anchored else "(?:.*/)?"
    regex = re.compile(f"^{prefix}{_translate(body)}$", re.DOTALL)
    return IgnoreRule(
        pattern=text,
        regex=regex,
        directory_only=directory_only,
        negate=negate,
    )


class IgnoreRuleSet:
    """Ordered rules gathered from one or more ignore sources.

    Sources are appended in the order given; the last rule that matches a
    path decides whether it is ignored, so later sources can re-include what
    earlier ones excluded.
    """

    def __init__(self, sources: Iterable[str] = ()) -> None:
        self._rules: List[IgnoreRule] = []
        for source in sources:
            self.add(source)

    @property
    def rules(self) -> List[IgnoreRule]:
        return list(self._rules)

    def add(self, source: str) -> "IgnoreRuleSet":
        for line in source.splitlines():
            rule = compile_rule(line)
            if rule is not None:
                self._rules.append(rule)
        return self

    def ignores(self, rel_path: str) -> bool:
        path = rel_path.replace("\\", "/").lstrip("/")
        if path.startswith("./"):
            path = path[2:]
        ignored = False
        for rule in self._rules:
            if rule.matches(path):
                ignored = not rule.negate
        return ignored

    def __len__(self) -> int:
        return len(self._rules)


def build_ignore_predicate(sources: Iterable[str]) -> Callable[[str], bool]:
    """Compile ``sources`` once and return a ``rel_path -> ignored`` predicate."""
    return IgnoreRuleSet(sources).ignores


__all__ = ["IgnoreRule", "IgnoreRuleSet", "build_ignore_predicate", "compile_rule"]
