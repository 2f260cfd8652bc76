import re

from loguru import logger

from .exceptions import PatternError

__all__ = ("URLRewriteTable",)


class URLRewriteTable:
    def __init__(self, rules: list[tuple[str, str]] | tuple[tuple[str, str], ...] = ()):
        compiled = []
        for i, (pattern, replacement) in enumerate(rules):
            try:
                compiled.append((re.compile(pattern), replacement))
            except re.error as e:
                raise PatternError(f"invalid rewrite rule #{i} {pattern!r}: {e}") from e
        self._rules: tuple[tuple[re.Pattern[str], str], ...] = tuple(compiled)
        logger.debug(f"URL rewrite table compiled with {len(self._rules)} rules")

    @property
    def rules(self) -> tuple[tuple[str, str], ...]:
        return tuple((p.pattern, r) for p, r in self._rules)

    def rewrite(self, url: str) -> tuple[int, str] | None:
        for i, (pattern, replacement) in enumerate(self._rules):
            if pattern.search(url):
                return i, pattern.sub(replacement, url)
        return None

    def __len__(self) -> int:
        return len(self._rules)
