"""Fuzzy name resolution policy.

Pure functions only: the policy takes a query and a candidate list and decides
which candidate (if any) the query refers to. Rules run in precedence order and
the first rule that produces a unique winner decides:

1. exact normalized-name equality
2. unique prefix match (in either direction)
3. token-set Jaccard overlap >= 0.8 with a strict maximum
4. bounded edit distance with a strict minimum

When no rule has a unique winner but some rule tied, the earliest tie is
reported as ambiguous.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

JACCARD_THRESHOLD = 0.8
SHORT_QUERY_LENGTH = 8


class ResolutionKind(StrEnum):
    """Outcome of resolving a name."""

    MATCHED = "matched"
    CREATED = "created"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class MatchCandidate:
    """An entity that a free-form name may refer to."""

    id: int
    name: str
    aliases: tuple[str, ...] = ()

    def keys(self) -> tuple[str, ...]:
        """Return the distinct normalized names the candidate answers to."""
        seen: list[str] = []
        for value in (self.name, *self.aliases):
            if not value:
                continue
            key = normalize_name(value)
            if key and key not in seen:
                seen.append(key)
        return tuple(seen)


@dataclass(frozen=True)
class Resolution:
    """Result of the resolution policy."""

    kind: ResolutionKind
    query: str
    match: MatchCandidate | None = None
    candidates: tuple[MatchCandidate, ...] = ()
    rule: str | None = None


def normalize_name(value: str, known: Iterable[str] | None = None) -> str:
    """Lowercase, trim and collapse whitespace.

    A single trailing ``s`` is stripped only when the shortened form is a
    known singular name.
    """
    normalized = " ".join(value.lower().split())
    if known is not None and normalized.endswith("s") and len(normalized) > 1:
        singular = normalized[:-1]
        if singular in known:
            return singular
    return normalized


def jaccard(left: str, right: str) -> float:
    """Jaccard overlap of whitespace-split tokens."""
    left_tokens = set(left.split())
    right_tokens = set(right.split())
    if not left_tokens or not right_tokens:
        return 0.0
    return len(left_tokens & right_tokens) / len(left_tokens | right_tokens)


def edit_distance(left: str, right: str, limit: int | None = None) -> int:
    """Levenshtein distance, returning ``limit + 1`` once it is exceeded."""
    if limit is not None and abs(len(left) - len(right)) > limit:
        return limit + 1
    previous = list(range(len(right) + 1))
    for row, left_char in enumerate(left, start=1):
        current = [row]
        for column, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current.append(
                min(
                    previous[column] + 1,
                    current[column - 1] + 1,
                    previous[column - 1] + cost,
                )
            )
        if limit is not None and min(current) > limit:
            return limit + 1
        previous = current
    return previous[-1]


def distance_bound(query: str) -> int:
    return 2 if len(query) <= SHORT_QUERY_LENGTH else 3


def resolve_name(
    query: str,
    candidates: Sequence[MatchCandidate],
    *,
    allow_create: bool = False,
) -> Resolution:
    """Resolve ``query`` against ``candidates``.

    Returns ``CREATED`` (with no match) when nothing qualifies and the caller
    permits creation, ``NOT_FOUND`` otherwise.
    """
    keyed = [(candidate, candidate.keys()) for candidate in candidates]
    known = frozenset(key for _, keys in keyed for key in keys)
    normalized = normalize_name(query)
    if normalized not in known:
        normalized = normalize_name(query, known)

    first_tie: tuple[str, list[MatchCandidate]] | None = None
    for rule, scorer in _RULES:
        winners = _best(normalized, keyed, scorer)
        if len(winners) == 1:
            return Resolution(
                kind=ResolutionKind.MATCHED,
                query=query,
                match=winners[0],
                candidates=tuple(winners),
                rule=rule,
            )
        if len(winners) > 1 and first_tie is None:
            first_tie = (rule, winners)

    if first_tie is not None:
        rule, winners = first_tie
        return Resolution(
            kind=ResolutionKind.AMBIGUOUS,
            query=query,
            candidates=tuple(_ordered(winners)),
            rule=rule,
        )
    kind = ResolutionKind.CREATED if allow_create else ResolutionKind.NOT_FOUND
    return Resolution(kind=kind, query=query)


def _exact(query: str, key: str) -> float | None:
    return 0.0 if key == query else None


def _prefix(query: str, key: str) -> float | None:
    if key.startswith(query) or query.startswith(key):
        return 0.0
    return None


def _overlap(query: str, key: str) -> float | None:
    score = jaccard(query, key)
    if score >= JACCARD_THRESHOLD:
        return -score
    return None


def _distance(query: str, key: str) -> float | None:
    bound = distance_bound(query)
    distance = edit_distance(query, key, bound)
    if distance <= bound:
        return float(distance)
    return None


# Lower score is better; None means the key does not qualify under the rule.
_RULES: tuple[tuple[str, Callable[[str, str], float | None]], ...] = (
    ("exact", _exact),
    ("prefix", _prefix),
    ("token_overlap", _overlap),
    ("edit_distance", _distance),
)


def _best(
    query: str,
    keyed: list[tuple[MatchCandidate, tuple[str, ...]]],
    scorer: Callable[[str, str], float | None],
) -> list[MatchCandidate]:
    if not query:
        return []
    best_score: float | None = None
    winners: dict[int, MatchCandidate] = {}
    for candidate, keys in keyed:
        scores = [score for key in keys if (score := scorer(query, key)) is not None]
        if not scores:
            continue
        score = min(scores)
        if best_score is None or score < best_score:
            best_score = score
            winners = {candidate.id: candidate}
        elif score == best_score:
            winners.setdefault(candidate.id, candidate)
    return list(winners.values())


def _ordered(candidates: Iterable[MatchCandidate]) -> list[MatchCandidate]:
    return sorted(candidates, key=lambda item: (normalize_name(item.name), item.id))
