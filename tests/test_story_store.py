"""
Unit tests for the story and user stores.

Covers owner scoping, listing order, character serialization, and the
degradation policy when the database is unavailable.
"""
import json
import threading
from datetime import datetime
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import OperationalError

from shared.database import DatabaseHandle, StoryStore, UserStore
from shared.database import config as db_config
from shared.errors import PersistenceError


def make_story(store: StoryStore, id: str, user_id: str = "user-1", **overrides):
    fields = dict(
        id=id,
        user_id=user_id,
        image_url=f"https://store/stories/{id}.jpg",
        image_description="a cat in rain",
        story="Once upon a time.",
        title="The Alley Cat",
        genre="fantasy",
        mood="whimsical",
        characters=json.dumps(["Whiskers"]),
        setting="a rainy alley"
    )
    fields.update(overrides)
    return store.create(**fields)


class TestStoryCreate:
    """Test story creation and read-back."""

    def test_create_returns_persisted_story(self, story_store):
        story = make_story(story_store, "s1")

        assert story is not None
        assert story.id == "s1"
        assert story.user_id == "user-1"
        assert story.title == "The Alley Cat"
        assert story.created_at is not None
        assert story.updated_at is not None

    def test_characters_round_trip(self, story_store):
        make_story(story_store, "s1", characters='["A","B"]')

        story = story_store.get_by_id("s1")
        assert story.characters == '["A","B"]'
        assert story.character_list() == ["A", "B"]

    def test_duplicate_id_returns_none(self, story_store):
        assert make_story(story_store, "s1") is not None
        assert make_story(story_store, "s1") is None

        # The original row is untouched
        assert len(story_store.list_by_user("user-1")) == 1

    def test_connection_lost_during_write_propagates(self, db_handle):
        store = StoryStore(db_handle)
        session = Mock()
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("server has gone away"))

        with patch.object(db_handle, "get_session", return_value=session), \
             patch.object(db_handle, "reset") as reset:
            with pytest.raises(PersistenceError):
                make_story(store, "s1")

        session.rollback.assert_called_once()
        session.close.assert_called_once()
        reset.assert_called_once()


class TestStoryQueries:
    """Test listing, lookup, and deletion."""

    def test_list_by_user_only_returns_own_stories(self, story_store):
        make_story(story_store, "a1", user_id="alice")
        make_story(story_store, "a2", user_id="alice")
        make_story(story_store, "b1", user_id="bob")

        stories = story_store.list_by_user("alice")

        assert {s.id for s in stories} == {"a1", "a2"}
        assert all(s.user_id == "alice" for s in stories)
        assert story_store.list_by_user("nobody") == []

    def test_list_by_user_most_recent_first(self, story_store):
        make_story(story_store, "old", created_at=datetime(2024, 1, 1, 9, 0, 0))
        make_story(story_store, "new", created_at=datetime(2024, 1, 3, 9, 0, 0))
        make_story(story_store, "mid", created_at=datetime(2024, 1, 2, 9, 0, 0))

        ids = [s.id for s in story_store.list_by_user("user-1")]
        assert ids == ["new", "mid", "old"]

    def test_list_order_is_stable_across_calls(self, story_store):
        same_time = datetime(2024, 1, 1, 12, 0, 0)
        for story_id in ["c", "a", "b"]:
            make_story(story_store, story_id, created_at=same_time)

        first = [s.id for s in story_store.list_by_user("user-1")]
        second = [s.id for s in story_store.list_by_user("user-1")]

        assert first == second
        assert len(first) == 3

    def test_later_insert_listed_first(self, story_store):
        for story_id in ["aaaa-first", "5555-second", "ffff-third"]:
            make_story(story_store, story_id)

        ids = [s.id for s in story_store.list_by_user("user-1")]
        assert ids == ["ffff-third", "5555-second", "aaaa-first"]

    def test_identical_timestamps_listed_by_insertion(self, story_store):
        same_time = datetime(2024, 1, 1, 12, 0, 0)
        for story_id in ["m", "z", "a"]:
            make_story(story_store, story_id, created_at=same_time)

        ids = [s.id for s in story_store.list_by_user("user-1")]
        assert ids == ["a", "z", "m"]

    def test_get_by_id_with_owner_filter(self, story_store):
        make_story(story_store, "s1", user_id="alice")

        assert story_store.get_by_id("s1").user_id == "alice"
        assert story_store.get_by_id("s1", user_id="alice") is not None
        assert story_store.get_by_id("s1", user_id="bob") is None
        assert story_store.get_by_id("missing") is None

    def test_delete_by_id(self, story_store):
        make_story(story_store, "s1")

        assert story_store.delete_by_id("s1") is True
        assert story_store.get_by_id("s1") is None


class TestDatabaseUnavailable:
    """Test graceful degradation without a database."""

    def test_operations_return_safe_values(self):
        store = StoryStore(DatabaseHandle(None))

        assert make_story(store, "s1") is None
        assert store.list_by_user("user-1") == []
        assert store.get_by_id("s1") is None
        assert store.delete_by_id("s1") is False

    def test_failed_connection_is_retried(self):
        real_build = db_config._build_engine
        failure = OperationalError("connect", {}, Exception("connection refused"))
        handle = DatabaseHandle("sqlite:///:memory:")

        with patch.object(db_config, "_build_engine", side_effect=[failure, real_build("sqlite:///:memory:")]):
            assert handle.get_engine() is None
            assert handle.is_connected is False

            assert handle.get_engine() is not None
            assert handle.is_connected is True

        store = StoryStore(handle)
        assert make_story(store, "s1") is not None
        handle.reset()

    def test_engine_is_memoized(self, db_handle):
        assert db_handle.get_engine() is db_handle.get_engine()

    def test_failed_connection_check_disposes_engine(self):
        engine = Mock()
        engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
        handle = DatabaseHandle("postgresql://db.internal/tales")

        with patch.object(db_config, "_build_engine", return_value=engine):
            assert handle.get_engine() is None

        engine.dispose.assert_called_once()
        assert handle.is_connected is False

    def test_sessions_survive_concurrent_resets(self):
        handle = DatabaseHandle("sqlite:///:memory:")
        errors = []

        def open_sessions():
            try:
                for _ in range(200):
                    session = handle.get_session()
                    if session is not None:
                        session.close()
            except Exception as e:
                errors.append(e)

        def reset_repeatedly():
            for _ in range(200):
                handle.reset()

        threads = [threading.Thread(target=open_sessions), threading.Thread(target=reset_repeatedly)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        session = handle.get_session()
        assert session is not None
        session.close()
        handle.reset()


class TestUserStore:
    """Test user upserts."""

    def test_upsert_creates_user(self, user_store):
        user = user_store.upsert_user("user-1", name="Ada", email="ada@example.com")

        assert user.id == "user-1"
        assert user.name == "Ada"
        assert user.role == "user"
        assert user.last_signed_in is not None

    def test_upsert_updates_only_given_fields(self, user_store):
        user_store.upsert_user("user-1", name="Ada", email="ada@example.com")
        user_store.upsert_user("user-1", name="Ada Lovelace")

        user = user_store.get_user("user-1")
        assert user.name == "Ada Lovelace"
        assert user.email == "ada@example.com"

    def test_owner_becomes_admin(self, user_store):
        assert user_store.upsert_user("owner-1").role == "admin"

    def test_explicit_role_wins(self, user_store):
        assert user_store.upsert_user("owner-1", role="user").role == "user"

    def test_upsert_requires_id(self, user_store):
        with pytest.raises(ValueError):
            user_store.upsert_user("")

    def test_unavailable_database(self):
        store = UserStore(DatabaseHandle(None))

        assert store.upsert_user("user-1") is None
        assert store.get_user("user-1") is None
