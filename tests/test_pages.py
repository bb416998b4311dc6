from bs4 import BeautifulSoup

import makerprofiles.pages as pages
from makerprofiles.config import TAG_OPTIONS
from makerprofiles.models import Profile, TopCourse


def _profile(handle, updated_at=1_000, **overrides):
    values = dict(
        handle=handle,
        name=handle.title(),
        maker_id="ABC-123-DEF",
        edit_secret="s" * 24,
        created_at=500,
        updated_at=updated_at,
    )
    values.update(overrides)
    return Profile(**values)


def _soup(body: bytes) -> BeautifulSoup:
    return BeautifulSoup(body.decode("utf-8"), "html.parser")


def test_filter_profiles_matches_search_and_tag_newest_first():
    older = _profile("mario", updated_at=1_000, bio="Speedrun courses", tags=["スピードラン"])
    newer = _profile("luigi", updated_at=2_000, bio="Music levels", tags=["演奏"])
    both = _profile("peach", updated_at=3_000, bio="speedrun music", tags=["演奏", "スピードラン"])
    everyone = [older, newer, both]

    assert pages.filter_profiles(everyone) == [both, newer, older]
    assert pages.filter_profiles(everyone, q="SPEEDRUN") == [both, older]
    assert pages.filter_profiles(everyone, tag="演奏") == [both, newer]
    assert pages.filter_profiles(everyone, q="speed", tag="演奏") == [both]
    assert pages.filter_profiles(everyone, q="luig") == [newer]
    assert pages.filter_profiles(everyone, q="スピード") == [both, older]
    assert pages.filter_profiles(everyone, tag="スピ") == []


def test_tag_counts_sorted_by_frequency_and_capped():
    profiles = [
        _profile("a", tags=["演奏", "TROLL"]),
        _profile("b", tags=["TROLL"]),
        _profile("c", tags=["TROLL", "謎解き"]),
        _profile("d", tags=["謎解き"]),
    ]
    assert pages.tag_counts(profiles) == [("TROLL", 3), ("謎解き", 2), ("演奏", 1)]
    assert pages.tag_counts(profiles, limit=1) == [("TROLL", 3)]

    many = [_profile(f"p{i}", tags=[f"tag{i}"]) for i in range(30)]
    assert len(pages.tag_counts(many)) == 24


def test_format_date_uses_japanese_order(monkeypatch):
    monkeypatch.setenv("TZ", "UTC")
    stamp = 1_709_942_400_000  # 2024-03-09T00:00:00Z
    assert pages.format_date(stamp) == "2024/3/9"
    assert pages.format_datetime(stamp + 5 * 60_000 + 7_000) == "2024/3/9 0:05:07"


def test_profile_page_escapes_user_text_and_ranks_courses():
    profile = _profile(
        "mario",
        name="<b>Mario</b>",
        bio="<script>alert(1)</script>",
        tags=["TROLL"],
        top10=[
            TopCourse("First & best", "Y2T-XLV-YDF", "note <i>"),
            TopCourse("", "", "note only"),
            TopCourse("Third", "N9Q-LSP-LQG"),
        ],
    )
    body = pages.render_profile_page(profile)
    html = body.decode("utf-8")
    soup = _soup(body)

    assert soup.find("script") is None
    assert soup.find("b") is None
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    items = soup.select("ol.top10 li strong")
    assert [item.get_text() for item in items] == ["#1 First & best", "#2 (未入力)", "#3 Third"]
    assert soup.select_one("h1").get_text() == "<b>Mario</b>"


def test_profile_page_without_courses_shows_placeholder():
    soup = _soup(pages.render_profile_page(_profile("mario")))
    assert soup.select("ol.top10") == []
    assert "お気に入りのコースは未登録です。" in soup.get_text()


def test_home_page_renders_tag_shortcuts_and_active_filter():
    profiles = [
        _profile("mario", tags=["TROLL"], top10=[TopCourse("Top pick", "AAA-BBB-CCC")]),
        _profile("luigi", tags=["演奏"]),
    ]
    soup = _soup(pages.render_home_page(profiles, q="", tag="TROLL"))

    summary = [a.get_text() for a in soup.select(".tag-summary a.tag")]
    assert summary == ["TROLL (1)", "演奏 (1)"]
    cards = soup.select("div.card strong a")
    assert [a.get_text() for a in cards] == ["Mario"]
    assert cards[0]["href"] == "/u/mario"
    assert "Top1: Top pick" in soup.get_text()
    assert "絞り込み中" in soup.get_text()


def test_home_page_escapes_query_value():
    soup = _soup(pages.render_home_page([], q='"><script>x</script>'))
    assert soup.find("script") is None
    assert soup.select_one("input[name=q]")["value"] == '"><script>x</script>'
    assert "まだプロフィールがありません" in soup.get_text()


def test_makers_page_lists_everyone_newest_first():
    profiles = [_profile("old", updated_at=1_000), _profile("new", updated_at=5_000)]
    soup = _soup(pages.render_makers_page(profiles))
    assert [a.get_text() for a in soup.select("div.card strong a")] == ["New", "Old"]
    assert "(2)" in soup.select_one("h1").get_text()


def test_new_profile_page_offers_every_tag_and_ten_course_slots():
    soup = _soup(pages.render_new_profile_page())
    form = soup.select_one("form[action='/new']")
    assert form["method"] == "POST"
    values = [box["value"] for box in form.select("input[name=tags]")]
    assert values == list(TAG_OPTIONS)
    assert len(form.select(".course-slot")) == 10
    assert form.select_one("input[name=c_title_10]") is not None
    assert form.select_one("input[name=makerId]")["maxlength"] == "11"


def test_edit_page_prefills_profile_values():
    profile = _profile(
        "mario",
        name='Mario "Jumpman"',
        bio="Hello <there>",
        tags=["TROLL"],
        top10=[TopCourse("First", "Y2T-XLV-YDF", "note")],
    )
    soup = _soup(pages.render_edit_page(profile))
    form = soup.select_one("form[action='/edit']")
    assert form.select_one("input[name=name]")["value"] == 'Mario "Jumpman"'
    assert form.select_one("textarea[name=bio]").get_text() == "Hello <there>"
    checked = [box["value"] for box in form.select("input[name=tags][checked]")]
    assert checked == ["TROLL"]
    assert form.select_one("input[name=c_title_1]")["value"] == "First"
    assert form.select_one("input[name=c_note_1]")["value"] == "note"
    assert form.select_one("input[name=c_title_2]")["value"] == ""
    assert len(form.select(".course-slot")) == 10


def test_error_pages_escape_messages():
    soup = _soup(pages.render_bad_request_page("<bad>", "/edit"))
    assert soup.select_one("p.error").get_text() == "<bad>"
    assert soup.select_one("p a[href='/edit']") is not None
    assert soup.find("bad") is None
    assert "<oops>" in _soup(pages.render_server_error_page("<oops>")).get_text()
