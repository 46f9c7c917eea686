import pytest

from brewpress.core.article import AnalysisResult, ImageOutcome
from brewpress.core.resolver import CategoryResolver, decide_status

FEATURED = 1677


@pytest.mark.parametrize("importance", [None, 1, 2, 3])
def test_low_importance_never_gets_featured(categories, importance):
    assignment = categories.resolve(AnalysisResult(importance=importance, category="買う"))

    assert assignment.ids == [2085]
    assert FEATURED not in assignment.ids


@pytest.mark.parametrize("importance", [4, 5])
def test_high_importance_always_gets_featured(categories, importance):
    assignment = categories.resolve(AnalysisResult(importance=importance, category="体験する"))

    assert assignment.ids == [2083, FEATURED]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("選ぶ", 2082),
        ("体験する", 2083),
        ("深掘り", 2084),
        ("買う", 2085),
        ("コミュニティ", 2086),
        ("ニュース", 2084),
        (None, 2084),
        ("", 2084),
    ],
)
def test_category_lookup_with_default_fallback(categories, name, expected):
    assert categories.resolve(AnalysisResult(category=name)).primary == expected


def test_irrelevant_article_is_skipped(categories):
    assert categories.resolve(AnalysisResult(relevant=False, importance=5, category="深掘り")) is None


def test_resolve_is_deterministic(categories):
    analysis = AnalysisResult(importance=4, category="コミュニティ", tags=["a"])

    assert categories.resolve(analysis) == categories.resolve(analysis)


def test_unknown_default_category_is_rejected():
    with pytest.raises(ValueError):
        CategoryResolver({"選ぶ": 2082}, "深掘り", FEATURED)


def test_status_is_publish_only_with_a_cover_image():
    assert decide_status(True, ImageOutcome.not_needed()) == "publish"
    assert decide_status(False, ImageOutcome.resolved(900, attached=True)) == "publish"
    assert decide_status(False, ImageOutcome.resolved(900, attached=False)) == "publish"
    assert decide_status(False, ImageOutcome.skipped("no-image-found")) == "draft"
    assert decide_status(False, ImageOutcome.skipped("download-failed")) == "draft"
    assert decide_status(False, ImageOutcome.skipped("upload-failed")) == "draft"
