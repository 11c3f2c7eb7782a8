from newsdesk.localization import normalize_locale, project_item, project_items
from newsdesk.models import NewsItem


def _item(**overrides) -> NewsItem:
    data = {"slug": "a", "title": "Hello", "title_ar": "أهلاً"}
    data.update(overrides)
    return NewsItem.from_dict(data)


def test_arabic_locale_uses_arabic_title():
    assert project_item(_item(), "ar").title == "أهلاً"


def test_english_locale_keeps_english_title():
    assert project_item(_item(), "en").title == "Hello"


def test_empty_or_missing_arabic_falls_back_to_english():
    assert project_item(_item(title_ar=""), "ar").title == "Hello"
    assert project_item(_item(title_ar=None), "ar").title == "Hello"


def test_arabic_overlay_covers_descriptions():
    item = _item(
        shortDescription="Short",
        shortDescription_ar="قصير",
        description=["One", "Two"],
        description_ar=[],
    )
    projected = project_item(item, "ar")
    assert projected.short_description == "قصير"
    assert projected.description == ("One", "Two")
    assert projected.title_ar == "أهلاً"


def test_only_exact_ar_selects_arabic():
    assert normalize_locale("ar") == "ar"
    for value in ("en", "AR", "ar-EG", "fr", "", None):
        assert normalize_locale(value) == "en"
    assert project_item(_item(), "AR").title == "Hello"


def test_collection_projection_keeps_order():
    items = [_item(slug="a"), _item(slug="b", title="Bye", title_ar="")]
    projected = project_items(items, "ar")
    assert [item.slug for item in projected] == ["a", "b"]
    assert [item.title for item in projected] == ["أهلاً", "Bye"]
    assert items[0].title == "Hello"
