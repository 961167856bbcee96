from eufunding.core.domain_models import PartnerProfile
from eufunding.rank import PartnerRelevanceRanker, rank_partners


def partner(name, description=None, experience=None, keywords=None):
    return PartnerProfile(
        id=name.lower(),
        name=name,
        description=description,
        experience=experience,
        keywords=keywords or [],
    )


def names(scored):
    return [s.partner.name for s in scored]


def test_keyword_match_outranks_token_overlap():
    a = partner("A", keywords=["AI"])
    b = partner("B", description="machine learning research")

    ranked = rank_partners([b, a], "AI research proposal")

    assert names(ranked) == ["A", "B"]
    assert ranked[0].relevance_score == 10
    assert ranked[0].match_reasons == ["Keyword match: AI"]
    assert ranked[1].relevance_score == 1
    assert ranked[1].match_reasons == []


def test_empty_context_keeps_input_order_with_zero_scores():
    partners = [partner("C", keywords=["x"]), partner("A"), partner("B", description="anything")]

    for context in ("", None):
        ranked = rank_partners(partners, context)
        assert names(ranked) == ["C", "A", "B"]
        assert all(s.relevance_score == 0 for s in ranked)
        assert all(s.match_reasons == [] for s in ranked)


def test_one_keyword_beats_nine_token_matches():
    context = "alpha bravo charlie delta echoes foxtrot golfing hotel india quantum"
    tokens_partner = partner(
        "Tokens",
        description="alpha bravo charlie delta echoes foxtrot golfing hotel india",
    )
    keyword_partner = partner("Keyword", keywords=["quantum"])

    ranked = rank_partners([tokens_partner, keyword_partner], context)

    assert ranked[0].partner.name == "Keyword"
    assert ranked[0].relevance_score == 10
    assert ranked[1].relevance_score == 9


def test_ties_keep_input_order():
    partners = [
        partner("First", description="renewable energy"),
        partner("Second"),
        partner("Third", description="energy renewable"),
        partner("Fourth"),
    ]

    ranked = rank_partners(partners, "Renewable energy storage")

    assert names(ranked) == ["First", "Third", "Second", "Fourth"]
    assert [s.relevance_score for s in ranked] == [2, 2, 0, 0]


def test_repeated_context_words_count_once():
    p = partner("P", description="research infrastructure")

    ranked = rank_partners([p], "research research research")

    assert ranked[0].relevance_score == 1


def test_short_tokens_are_ignored():
    p = partner("P", description="the art and ai of fun")

    ranked = rank_partners([p], "the art and ai of fun")

    assert ranked[0].relevance_score == 0


def test_description_and_experience_score_separately():
    p = partner("P", description="climate adaptation", experience="led climate projects")

    ranked = rank_partners([p], "Climate adaptation pilots")

    # "climate" in both fields, "adaptation" in description only
    assert ranked[0].relevance_score == 3


def test_token_match_is_substring_based():
    p = partner("P", description="biotechnology startups")

    ranked = rank_partners([p], "technology")

    assert ranked[0].relevance_score == 1


def test_keyword_match_is_case_insensitive_and_keeps_original_spelling():
    p = partner("P", keywords=["Machine Learning"])

    ranked = rank_partners([p], "applied MACHINE LEARNING for health")

    assert ranked[0].relevance_score == 10
    assert ranked[0].match_reasons == ["Keyword match: Machine Learning"]


def test_reasons_capped_at_three_but_all_keywords_score():
    p = partner("P", keywords=["solar", "wind", "hydro", "grid"])

    ranked = rank_partners([p], "solar wind hydro grid integration")

    assert ranked[0].relevance_score >= 40
    assert ranked[0].match_reasons == [
        "Keyword match: solar",
        "Keyword match: wind",
        "Keyword match: hydro",
    ]


def test_empty_keyword_matches_any_context():
    a = partner("A", keywords=[""])
    b = partner("B", keywords=[" "])

    ranked = rank_partners([a, b], "AI research proposal")

    assert [s.relevance_score for s in ranked] == [10, 10]
    assert ranked[0].match_reasons == ["Keyword match: "]


def test_whitespace_keyword_needs_a_space_in_context():
    ranked = rank_partners([partner("P", keywords=[" "])], "innovation")

    assert ranked[0].relevance_score == 0


def test_tokens_split_on_non_ascii_letters():
    # "Förderung" yields the token "rderung", found inside "Anforderungen"
    p = partner("P", description="Anforderungen an Partner")

    ranked = rank_partners([p], "Förderung")

    assert ranked[0].relevance_score == 1


def test_partner_without_fields_scores_zero():
    p = PartnerProfile(id="1", name="Empty", keywords=None)

    ranked = rank_partners([p], "digital innovation")

    assert ranked[0].relevance_score == 0
    assert ranked[0].match_reasons == []


def test_rank_does_not_mutate_input():
    partners = [partner("B"), partner("A", keywords=["robotics"])]
    original = [p.to_dict() for p in partners]

    rank_partners(partners, "robotics for agriculture")

    assert [p.name for p in partners] == ["B", "A"]
    assert [p.to_dict() for p in partners] == original


def test_ranking_is_deterministic():
    partners = [
        partner("A", description="marine biology"),
        partner("B", keywords=["ocean"]),
        partner("C", experience="ocean monitoring and marine data"),
    ]
    ranker = PartnerRelevanceRanker()
    context = "Ocean observation with marine sensors"

    first = ranker.rank(partners, context)
    second = ranker.rank(partners, context)

    assert [(s.partner.id, s.relevance_score) for s in first] == \
        [(s.partner.id, s.relevance_score) for s in second]
