import re

from loguru import logger

from .exceptions import PatternError

__all__ = ("PatternACL",)


class PatternACL:
    """Ordered list of regular expressions; the first matching rule wins."""

    def __init__(self, rules: list[str] | tuple[str, ...] = ()):
        self._rules: tuple[str, ...] = tuple(rules)
        compiled = []
        for i, rule in enumerate(self._rules):
            try:
                compiled.append(re.compile(rule))
            except re.error as e:
                raise PatternError(f"invalid ACL rule #{i} {rule!r}: {e}") from e
        self._compiled: tuple[re.Pattern[str], ...] = tuple(compiled)
        logger.debug(f"ACL compiled with {len(self._rules)} rules")

    @property
    def rules(self) -> tuple[str, ...]:
        return self._rules

    def match(self, identity: str) -> tuple[int, str] | None:
        for i, pattern in enumerate(self._compiled):
            if pattern.search(identity):
                return i, self._rules[i]
        return None

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"PatternACL({list(self._rules)!r})"
