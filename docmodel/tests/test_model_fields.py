"""
docmodel Model -- Field Access Tests

Covers:
  - Constructor fields merged over default_fields
  - get / set / unset, nested and dotted
  - set on an equal value is not a change
  - previous / changed tracking
  - Argument validation raises UsageError immediately
  - Subclass registries are copied, collection names derived
"""

import pytest

from docmodel import Model, UsageError
from docmodel.kernel import actions as A
from docmodel.kernel.types import PassThrough

# ============================================================================
# 1. Construction
# ============================================================================


class TestConstruction:
    def test_empty(self, Post):
        assert Post().get() == {}

    def test_default_fields(self, database):
        class Article(Model):
            default_fields = {"status": "draft", "meta": {"lang": "en"}}

        article = Article({"title": "x", "meta": {"words": 10}})
        assert article.get() == {"status": "draft", "title": "x", "meta": {"lang": "en", "words": 10}}

    def test_constructor_fields_win(self, database):
        class Article(Model):
            default_fields = {"status": "draft"}

        assert Article({"status": "published"}).get("status") == "published"

    def test_default_fields_not_shared(self, database):
        class Article(Model):
            default_fields = {"tags": []}

        first = Article()
        first.get("tags").append("x")
        assert Article().get("tags") == []

    def test_fields_must_be_mapping(self, Post):
        with pytest.raises(UsageError):
            Post(["title"])

    def test_configure_runs_per_instance(self, database):
        class Article(Model):
            def configure(self):
                self.configured = True

        assert Article().configured is True

    def test_repr(self, Post):
        assert repr(Post({"title": "x"})) == "<Post {'title': 'x'}>"


# ============================================================================
# 2. get / set
# ============================================================================


class TestGetSet:
    def test_set_and_get(self, Post):
        post = Post()
        post.set("title", "x")
        assert post.get("title") == "x"
        assert post.get() == {"title": "x"}

    def test_set_mapping_merges(self, Post):
        post = Post({"author": {"name": "Ann", "email": "a@example.com"}})
        post.set({"author": {"name": "Bob"}, "views": 1})
        assert post.get() == {"author": {"name": "Bob", "email": "a@example.com"}, "views": 1}

    def test_set_dotted_key(self, Post):
        post = Post({"author": {"name": "Ann"}})
        post.set("author.email", "a@example.com")
        assert post.get("author") == {"name": "Ann", "email": "a@example.com"}

    def test_set_list_replaces(self, Post):
        post = Post({"tags": ["a", "b"]})
        post.set("tags", ["c"])
        assert post.get("tags") == ["c"]

    def test_set_equal_value_dispatches_nothing(self, Post):
        seen = []

        def spy(store, action):
            seen.append(action.type)
            return PassThrough(action)

        Post.use(spy)
        post = Post({"title": "x", "author": {"name": "Ann"}})
        seen.clear()

        post.set({"title": "x", "author": {"name": "Ann"}})

        assert A.SET not in seen
        assert post.get("title") == "x"

    def test_set_int_to_bool_is_a_change(self, Post):
        post = Post({"flag": 1})
        post.set("flag", True)
        assert post.get("flag") is True
        assert post.changed("flag")
        assert post.previous == {"flag": 1}

    def test_set_int_to_float_is_a_change(self, Post):
        post = Post({"score": 0})
        post.set({"score": 0.0})
        assert isinstance(post.get("score"), float)
        assert post.changed("score")

    def test_get_rejects_non_string_key(self, Post):
        with pytest.raises(UsageError):
            Post().get(1)

    def test_set_requires_value(self, Post):
        with pytest.raises(UsageError):
            Post().set("title")

    def test_set_rejects_bad_key(self, Post):
        with pytest.raises(UsageError):
            Post().set(1, "x")

    def test_set_mapping_with_value(self, Post):
        with pytest.raises(UsageError):
            Post().set({"a": 1}, 2)


# ============================================================================
# 3. unset
# ============================================================================


class TestUnset:
    def test_unset_string(self, Post):
        post = Post({"title": "x", "draft": True})
        post.unset("draft")
        assert post.get() == {"title": "x"}
        assert post.store.get_state()["unset"] == ["draft"]

    def test_unset_list_and_dotted(self, Post):
        post = Post({"a": 1, "author": {"name": "Ann", "email": "e"}})
        post.unset(["a", "author.email"])
        assert post.get() == {"author": {"name": "Ann"}}
        assert post.store.get_state()["unset"] == ["a", "author.email"]

    def test_unset_key_absent_from_fields(self, Post):
        post = Post({"a": 1})
        post.unset("a")
        state = post.store.get_state()
        for key in state["unset"]:
            assert key not in state["fields"]

    def test_unset_rejects_bad_keys(self, Post):
        with pytest.raises(UsageError):
            Post().unset(5)
        with pytest.raises(UsageError):
            Post().unset(["a", 5])


# ============================================================================
# 4. previous / changed
# ============================================================================


class TestChanged:
    def test_changed_after_set(self, Post):
        post = Post({"title": "x"})
        assert not post.changed("title")

        post.set("title", "y")

        assert post.changed("title")
        assert post.previous == {"title": "x"}

    def test_new_field_is_changed(self, Post):
        post = Post()
        post.set("views", 1)
        assert post.changed("views")
        assert post.previous == {"views": None}

    def test_equal_set_is_not_a_change(self, Post):
        post = Post({"title": "x"})
        post.set("title", "x")
        assert not post.changed("title")
        assert post.previous == {}

    def test_nested_previous(self, Post):
        post = Post({"author": {"name": "Ann"}})
        post.set({"author": {"name": "Bob"}})
        assert post.previous == {"author": {"name": "Ann"}}
        assert post.changed("author.name")


# ============================================================================
# 5. Class registries
# ============================================================================


class TestClassRegistries:
    def test_collection_name_from_class(self, database):
        class Article(Model):
            pass

        assert Article.collection == "articles"

    def test_explicit_collection_name(self, database):
        class Article(Model):
            collection = "entries"

        assert Article.collection == "entries"

    def test_subclass_copies_parent_registry(self, database):
        def plugin(store, action):
            return PassThrough(action)

        class Base(Model):
            pass

        Base.use(plugin)

        class Child(Base):
            pass

        Child.use(lambda store, action: PassThrough(action))

        assert Child.record_type.middleware[0] is plugin
        assert len(Child.record_type.middleware) == 2
        assert Base.record_type.middleware == [plugin]
        assert Child.collection == "childs"

    def test_subclass_inherits_registration(self, database):
        class Base(Model):
            pass

        class Child(Base):
            pass

        database.register(Base)
        assert Child.record_type.database is database

    def test_to_document(self, Post):
        assert Post({"title": "x"}).to_document() == {"title": "x"}
