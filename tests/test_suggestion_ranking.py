import pytest
from pydantic import ValidationError

from search.catalog import CATEGORIES, Service
from search.models import SearchForm, Suggestion, SuggestionType
from search.suggestions import (
    apply_selection,
    empty_query_suggestions,
    rank_suggestions,
    score_categories,
    score_salons,
    score_services,
)

SERVICES = [
    Service("s1", "Haircut", category="hair", description="Wash and cut"),
    Service("s2", "Keratin Hair Treatment", category="hair"),
    Service("s3", "Gel Manicure", category="nails", description="Hair-free finish"),
    Service("s4", "Deep Tissue Massage", category="massage"),
    Service("s5", "Bridal Makeup", category="makeup"),
]


def _scores(suggestions):
    return [(s.id, s.relevance_score) for s in suggestions]


def test_empty_query_panel_layout() -> None:
    suggestions = empty_query_suggestions()

    assert suggestions[0].type is SuggestionType.ALL
    assert suggestions[1].type is SuggestionType.HEADER
    assert suggestions[1].title == "Top categories"
    popular = [c.id for c in CATEGORIES if c.popular]
    assert [s.id for s in suggestions[2 : 2 + len(popular)]] == popular
    more = suggestions[2 + len(popular)]
    assert more.type is SuggestionType.HEADER
    assert more.title == "More services"
    assert all(s.relevance_score is None for s in suggestions)


def test_empty_query_panel_omits_more_header_when_all_popular() -> None:
    popular_only = [c for c in CATEGORIES if c.popular]

    suggestions = empty_query_suggestions(popular_only)

    assert [s.title for s in suggestions if s.type is SuggestionType.HEADER] == [
        "Top categories",
    ]


def test_category_exact_match_outranks_substring() -> None:
    ranked = score_categories("hair")

    assert ranked[0].id == "hair"
    assert ranked[0].relevance_score == 100
    assert ("hair-removal", 90) in _scores(ranked)


def test_category_substring_score() -> None:
    assert _scores(score_categories("skin")) == [("facials", 70)]


def test_service_scores_and_truncation() -> None:
    ranked = score_services("hair", SERVICES)

    assert _scores(ranked) == [("s1", 95), ("s2", 85), ("s3", 60)]


def test_service_category_match() -> None:
    assert _scores(score_services("makeup", SERVICES)) == [("s5", 85)]
    assert _scores(score_services("nails", SERVICES)) == [("s3", 75)]


def test_service_pass_keeps_top_five() -> None:
    services = [Service(f"s{i}", f"Hair {i}") for i in range(8)]

    assert len(score_services("hair", services)) == 5


def test_salon_scores() -> None:
    salons = [
        {"id": 1, "name": "Hair Studio", "address": "HSR"},
        {"id": 2, "name": "Glow Spa", "address": "BTM"},
        {"name": "no id"},
    ]

    assert _scores(score_salons("hair", salons)) == [("1", 80), ("2", 60)]


def test_rank_is_stable_and_capped() -> None:
    def scored(kind, ident, score):
        return Suggestion(type=kind, id=ident, title=ident, relevance_score=score)

    categories = [scored(SuggestionType.CATEGORY, "c1", 90)]
    services = [
        scored(SuggestionType.SERVICE, f"s{i}", score)
        for i, score in enumerate([95, 85, 85, 60, 60])
    ]
    salons = [
        scored(SuggestionType.SALON, "a", 80),
        scored(SuggestionType.SALON, "b", 60),
        scored(SuggestionType.SALON, "c", 60),
    ]

    ranked = rank_suggestions(categories, services, salons)

    assert [s.id for s in ranked] == ["s0", "c1", "s1", "s2", "a", "s3", "s4", "b"]


def test_apply_selection_semantics() -> None:
    form = SearchForm(service_text="ha", categories=["nails"])
    category = Suggestion(type=SuggestionType.CATEGORY, id="hair", title="Hair")
    service = Suggestion(
        type=SuggestionType.SERVICE,
        id="s1",
        title="Haircut",
        payload={"serviceId": "s1"},
    )
    salon = Suggestion(type=SuggestionType.SALON, id="9", title="Hair Studio")
    everything = Suggestion(type=SuggestionType.ALL, id="all", title="All")
    header = Suggestion(type=SuggestionType.HEADER, id="h", title="Top categories")

    after_category = apply_selection(form, category)
    assert after_category.categories == ["nails", "hair"]
    assert after_category.service_text == ""
    assert apply_selection(after_category, category).categories == ["nails", "hair"]

    after_service = apply_selection(form, service)
    assert after_service.service_text == "Haircut"
    assert after_service.specific_services == ["s1"]

    after_salon = apply_selection(form, salon)
    assert after_salon.service_text == "Hair Studio"
    assert after_salon.categories == ["nails"]
    assert after_salon.specific_services == []

    after_all = apply_selection(form, everything)
    assert after_all.service_text == ""
    assert after_all.categories == []

    assert apply_selection(form, header) is None


@pytest.mark.parametrize(
    "kind",
    [SuggestionType.HEADER, SuggestionType.ALL, SuggestionType.CURRENT, SuggestionType.ERROR],
)
def test_structural_suggestions_reject_relevance_score(kind) -> None:
    with pytest.raises(ValidationError):
        Suggestion(type=kind, id="x", title="X", relevance_score=50)


def test_scored_suggestions_accept_camel_case_score() -> None:
    suggestion = Suggestion.model_validate(
        {"type": "salon", "id": "1", "title": "Glow", "relevanceScore": 80},
    )

    assert suggestion.relevance_score == 80
    assert suggestion.to_payload()["relevanceScore"] == 80
