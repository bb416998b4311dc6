from makerprofiles.models import Profile, TopCourse


def _profile(**overrides):
    values = dict(
        handle="mario",
        name="Mario",
        maker_id="ABC-123-DEF",
        edit_secret="s" * 24,
        bio="Standard courses",
        tags=["ギミック"],
        top10=[TopCourse("First", "Y2T-XLV-YDF", "great"), TopCourse("Second", "N9Q-LSP-LQG")],
        created_at=1_000,
    )
    values.update(overrides)
    return Profile(**values)


def test_profile_defaults_updated_at_to_created_at():
    profile = _profile()
    assert profile.updated_at == 1_000
    assert profile.id


def test_profile_record_round_trip():
    profile = _profile()
    record = profile.to_record()
    assert record["makerId"] == "ABC-123-DEF"
    assert record["top10"][0] == {"title": "First", "courseId": "Y2T-XLV-YDF", "note": "great"}
    assert "note" not in record["top10"][1]
    assert Profile.from_record(record) == profile


def test_profile_from_record_fills_missing_optional_fields():
    profile = Profile.from_record({"handle": "luigi", "name": "Luigi", "makerId": "AAA-BBB-CCC"})
    assert profile.bio == ""
    assert profile.tags == []
    assert profile.top10 == []
    assert profile.id


def test_profile_from_record_requires_handle():
    try:
        Profile.from_record({"name": "nobody"})
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")


def test_edited_overwrites_mutable_fields_and_moves_updated_at_forward():
    profile = _profile()
    edited = profile.edited(
        name="Mario 2",
        maker_id="XYZ-999-AAA",
        bio="",
        tags=[],
        top10=[],
        at=500,
    )
    assert edited.handle == profile.handle
    assert edited.edit_secret == profile.edit_secret
    assert edited.created_at == profile.created_at
    assert edited.name == "Mario 2"
    assert edited.updated_at == profile.updated_at + 1
    assert profile.name == "Mario"


def test_search_text_and_top_course():
    profile = _profile()
    assert profile.search_text() == "mario mario standard courses ギミック"
    assert profile.top_course.title == "First"
    assert _profile(top10=[]).top_course is None
    assert TopCourse().is_empty() is True
