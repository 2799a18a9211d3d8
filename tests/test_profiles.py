"""Tests for profile updates, follow edges and name search."""
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.core.errors import CannotFollowSelf, InvalidUsernameFormat, UserNotFound, UsernameTaken
from app.core.messages import ResultCode
from app.models.follower import Follower
from app.services.profiles import ProfileManager


@pytest.fixture()
def alice(make_user):
    return make_user("alice@example.com", name="Alice Smith", username="alice_s")


@pytest.fixture()
def bob(make_user):
    return make_user("bob@example.com", name="Bob Jones", username="bobby")


def edge_count(db) -> int:
    return db.execute(select(func.count()).select_from(Follower)).scalar_one()


# ---- profile ----

def test_profile_has_no_secrets(profiles, alice):
    out = profiles.get_profile(alice.id).model_dump()
    assert out["email"] == "alice@example.com"
    for secret in ("password_hash", "email_verify_token", "forgot_password_token"):
        assert secret not in out


def test_get_unknown_profile(profiles):
    with pytest.raises(UserNotFound):
        profiles.get_profile(uuid4())


def test_partial_update_touches_only_given_fields(profiles, alice):
    profiles.update_profile(alice.id, {"bio": "hello", "avatar_url": "https://img/a.png"})
    out = profiles.update_profile(alice.id, {"location": "Lisbon"})

    assert out.bio == "hello"
    assert out.avatar_url == "https://img/a.png"
    assert out.location == "Lisbon"
    assert out.name == "Alice Smith"
    assert out.username == "alice_s"


def test_none_clears_optional_fields_but_not_name(profiles, alice):
    profiles.update_profile(alice.id, {"avatar_url": "https://img/a.png"})
    out = profiles.update_profile(alice.id, {"avatar_url": None, "name": None})
    assert out.avatar_url is None
    assert out.name == "Alice Smith"


def test_taken_username_leaves_record_unchanged(profiles, store, alice, bob):
    with pytest.raises(UsernameTaken):
        profiles.update_profile(alice.id, {"username": "bobby", "bio": "changed"})

    user = store.find_user_by_id(alice.id)
    assert user.username == "alice_s"
    assert user.bio is None


def test_keeping_own_username_is_allowed(profiles, alice):
    out = profiles.update_profile(alice.id, {"username": "alice_s", "bio": "same name"})
    assert out.username == "alice_s"
    assert out.bio == "same name"


@pytest.mark.parametrize("username", ["abcd", "a" * 16, ".alice", "alice.", "al..ice", "ali ce"])
def test_bad_username_format(profiles, store, alice, username):
    with pytest.raises(InvalidUsernameFormat):
        profiles.update_profile(alice.id, {"username": username})
    assert store.find_user_by_id(alice.id).username == "alice_s"


@pytest.mark.parametrize("username", ["alice", "a.l.i.c.e", "alice_2024", "a" * 15])
def test_good_username_format(profiles, alice, username):
    assert profiles.update_profile(alice.id, {"username": username}).username == username


def test_update_unknown_user(profiles):
    with pytest.raises(UserNotFound):
        profiles.update_profile(uuid4(), {"bio": "ghost"})


def test_username_taken_check(profiles, alice):
    assert profiles.is_username_taken("alice_s")
    assert not profiles.is_username_taken("alice_s", by_other_than=alice.id)
    assert not profiles.is_username_taken("nobody")


# ---- follow ----

def test_follow_twice_keeps_one_edge(profiles, db, alice, bob):
    first = profiles.follow(alice.id, bob.id)
    second = profiles.follow(alice.id, bob.id)

    assert first.code is None
    assert second.code == ResultCode.ALREADY_FOLLOWING
    assert edge_count(db) == 1


def test_follow_race_on_insert(profiles, store, db, alice, bob, monkeypatch):
    profiles.follow(alice.id, bob.id)
    # the existence check misses an edge inserted concurrently
    monkeypatch.setattr(store, "exists_follow_edge", lambda *a: False)

    result = profiles.follow(alice.id, bob.id)

    assert result.code == ResultCode.ALREADY_FOLLOWING
    assert edge_count(db) == 1


def test_follow_is_directed(profiles, store, alice, bob):
    profiles.follow(alice.id, bob.id)
    assert store.exists_follow_edge(alice.id, bob.id)
    assert not store.exists_follow_edge(bob.id, alice.id)


def test_cannot_follow_self(profiles, alice):
    with pytest.raises(CannotFollowSelf):
        profiles.follow(alice.id, str(alice.id))


def test_cannot_follow_missing_user(profiles, alice):
    with pytest.raises(UserNotFound):
        profiles.follow(alice.id, uuid4())


def test_unfollow(profiles, db, alice, bob):
    profiles.follow(alice.id, bob.id)

    assert profiles.unfollow(alice.id, bob.id).code is None
    assert edge_count(db) == 0
    result = profiles.unfollow(alice.id, bob.id)
    assert result.ok
    assert result.code == ResultCode.NOT_FOLLOWING


# ---- search ----

def test_search_is_case_insensitive_substring(profiles, alice, bob, make_user):
    make_user("carol@example.com", name="Carol SMITHERS")

    names = [u.name for u in profiles.search_by_name("smith")]

    assert names == ["Alice Smith", "Carol SMITHERS"]


def test_search_treats_wildcards_literally(profiles, alice, make_user):
    make_user("pct@example.com", name="100% Real")
    make_user("under@example.com", name="snake_case")

    assert [u.name for u in profiles.search_by_name("%")] == ["100% Real"]
    assert [u.name for u in profiles.search_by_name("_")] == ["snake_case"]


def test_search_without_match_or_query(profiles, alice):
    assert profiles.search_by_name("zzz") == []
    assert profiles.search_by_name("   ") == []


def test_search_respects_limit(store, make_user):
    for i in range(5):
        make_user(f"u{i}@example.com", name=f"Sam {i}")
    assert len(ProfileManager(store, search_limit=3).search_by_name("sam")) == 3
