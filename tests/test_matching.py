"""Tests for the name resolution policy."""

from tandoor_gateway.domain.matching import (
    MatchCandidate,
    ResolutionKind,
    edit_distance,
    jaccard,
    normalize_name,
    resolve_name,
)


def _candidates(*names: str) -> list[MatchCandidate]:
    return [MatchCandidate(id=index, name=name) for index, name in enumerate(names, 1)]


def test_exact_match_precedes_other_rules() -> None:
    result = resolve_name("tomato", _candidates("Tomato", "Tomatoes"))

    assert result.kind is ResolutionKind.MATCHED
    assert result.match is not None
    assert result.match.name == "Tomato"
    assert result.rule == "exact"


def test_plural_query_matches_known_singular() -> None:
    result = resolve_name("Carrots", _candidates("Carrot", "Parrot"))

    assert result.kind is ResolutionKind.MATCHED
    assert result.match is not None
    assert result.match.id == 1
    assert result.rule == "exact"


def test_plural_alias_is_matched_exactly() -> None:
    candidates = [
        MatchCandidate(id=7, name="Egg", aliases=("Eggs",)),
        MatchCandidate(id=8, name="Eggplant"),
    ]

    result = resolve_name("eggs", candidates)

    assert result.match is not None
    assert result.match.id == 7


def test_resolution_is_deterministic() -> None:
    candidates = _candidates("Red Onion", "Red Pepper", "Onion", "Garlic")
    outcomes = {
        (result.kind, result.match.id if result.match else None)
        for result in (resolve_name("onion", candidates) for _ in range(20))
    }
    reversed_result = resolve_name("onion", list(reversed(candidates)))

    assert outcomes == {(ResolutionKind.MATCHED, 3)}
    assert reversed_result.match is not None
    assert reversed_result.match.id == 3


def test_prefix_match_when_unique() -> None:
    result = resolve_name("parm", _candidates("Parmesan", "Milk"))

    assert result.kind is ResolutionKind.MATCHED
    assert result.rule == "prefix"
    assert result.match is not None
    assert result.match.name == "Parmesan"


def test_tied_prefix_is_ambiguous_with_sorted_candidates() -> None:
    result = resolve_name("red", _candidates("Red Pepper", "Red Onion", "Milk"))

    assert result.kind is ResolutionKind.AMBIGUOUS
    assert result.match is None
    assert [candidate.name for candidate in result.candidates] == [
        "Red Onion",
        "Red Pepper",
    ]


def test_ambiguous_candidates_do_not_depend_on_input_order() -> None:
    candidates = _candidates("Red Onion", "Red Pepper")

    forward = resolve_name("red", candidates)
    backward = resolve_name("red", list(reversed(candidates)))

    assert forward.candidates == backward.candidates


def test_later_unique_rule_breaks_an_earlier_tie() -> None:
    result = resolve_name("red", _candidates("Red Onion", "Red Pepper", "Rod"))

    assert result.kind is ResolutionKind.MATCHED
    assert result.rule == "edit_distance"
    assert result.match is not None
    assert result.match.name == "Rod"


def test_token_overlap_matches_reordered_words() -> None:
    result = resolve_name(
        "olive oil extra virgin", _candidates("Extra Virgin Olive Oil", "Milk")
    )

    assert result.kind is ResolutionKind.MATCHED
    assert result.rule == "token_overlap"
    assert result.match is not None
    assert result.match.id == 1


def test_edit_distance_matches_typos() -> None:
    result = resolve_name("tomatto", _candidates("Tomato", "Basil"))

    assert result.kind is ResolutionKind.MATCHED
    assert result.rule == "edit_distance"
    assert result.match is not None
    assert result.match.name == "Tomato"


def test_no_match_is_not_found_unless_creation_allowed() -> None:
    candidates = _candidates("Milk", "Butter")

    missing = resolve_name("saffron", candidates)
    created = resolve_name("saffron", candidates, allow_create=True)

    assert missing.kind is ResolutionKind.NOT_FOUND
    assert created.kind is ResolutionKind.CREATED
    assert created.match is None


def test_blank_query_matches_nothing() -> None:
    result = resolve_name("   ", _candidates("Milk"))

    assert result.kind is ResolutionKind.NOT_FOUND


def test_normalize_name_strips_plural_only_for_known_singulars() -> None:
    assert normalize_name("  Red   Onions ", {"red onion"}) == "red onion"
    assert normalize_name("Red Onions") == "red onions"
    assert normalize_name("Asparagus", {"tomato"}) == "asparagus"


def test_jaccard_and_edit_distance() -> None:
    assert jaccard("olive oil", "oil olive") == 1.0
    assert jaccard("olive oil", "") == 0.0
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("kitten", "sitting", limit=1) == 2
