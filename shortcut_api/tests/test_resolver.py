import pytest

from conftest import FakeFetcher, site_url

from shortcuts.environment import Environment


@pytest.fixture
def env(run):
    fetcher = FakeFetcher({
        site_url("o"): """
g 1:
  url: https://www.google.com/search?q={1}
  title: Google Web Search
  tags: [web-search]
g 0: https://www.google.com/
x 2: https://example.com/{1}/{2}
w 1:
  url: https://en.wikipedia.org/wiki/Special:Search?search={1}
  title: Wikipedia
any *: https://any.test/{1}/{2}/{3}
half 2: https://half.test/{1}
Maps 1: https://maps.test/?q={1}
nourl 0:
  title: Nothing here
""",
        site_url("de"): """
w 1:
  url: https://de.wikipedia.org/wiki/Special:Search?search={1}
  title: Wikipedia (DE)
wetter 1: https://wetter.test/{1}
""",
    })
    environment = Environment(fetcher=fetcher)
    run(environment.populate({"namespaces": ["o", "de"], "default_keyword": "g"}))
    return environment


class TestResolve:
    def test_arguments_are_substituted(self, env):
        result = env.resolve("x val1,val2")
        assert result.found
        assert result.status == "ok"
        assert result.url == "https://example.com/val1/val2"
        assert result.namespace == "o"
        assert result.key == "x 2"

    def test_highest_priority_wins(self, env):
        assert env.resolve("w berlin").url == "https://de.wikipedia.org/wiki/Special:Search?search=berlin"

    def test_forcing_reaches_unreachable_entry(self, env):
        result = env.resolve("o.w berlin")
        assert result.url == "https://en.wikipedia.org/wiki/Special:Search?search=berlin"
        assert result.namespace == "o"

    def test_forcing_other_namespace_does_not_see_stack(self, env):
        assert env.resolve("de.g foo").status == "no_match"

    def test_arity_selects_entry(self, env):
        assert env.resolve("g").url == "https://www.google.com/"
        assert env.resolve("g cats").url == "https://www.google.com/search?q=cats"

    def test_wildcard_accepts_any_count(self, env):
        result = env.resolve("any a,b")
        assert result.found
        assert result.url == "https://any.test/a/b/"
        assert result.missing_arguments == [3]

    def test_values_without_placeholder_are_reported(self, env):
        result = env.resolve("half one,two")
        assert result.status == "ok"
        assert result.url == "https://half.test/one"
        assert result.extra_arguments == 1
        assert result.reason

        wildcard = env.resolve("any a,b,c,d")
        assert wildcard.url == "https://any.test/a/b/c"
        assert wildcard.extra_arguments == 1

    def test_all_values_used_reports_no_extra(self, env):
        result = env.resolve("x val1,val2")
        assert result.extra_arguments == 0
        assert result.reason is None

    def test_keyword_matches_case_insensitively(self, env):
        assert env.resolve("maps berlin").url == "https://maps.test/?q=berlin"
        assert env.resolve("MAPS berlin").url == "https://maps.test/?q=berlin"
        assert env.resolve("o.Maps berlin").key == "maps 1"

    def test_argument_count_mismatch(self, env):
        result = env.resolve("x only-one")
        assert not result.found
        assert result.status == "argument_mismatch"
        assert result.available_argument_counts == ["2"]

    def test_unknown_keyword_uses_default_keyword(self, env):
        result = env.resolve("where is berlin")
        assert result.found
        assert result.used_default_keyword
        assert result.url == "https://www.google.com/search?q=where%20is%20berlin"

    def test_unknown_keyword_without_default(self, run):
        fetcher = FakeFetcher({site_url("o"): "g 0: https://g.test/\n"})
        environment = Environment(fetcher=fetcher)
        run(environment.populate({"namespaces": ["o"]}))
        result = environment.resolve("nope foo")
        assert result.status == "no_match"
        assert not result.found

    def test_empty_query_is_no_match(self, env):
        assert env.resolve("   ").status == "no_match"

    def test_entry_without_url_is_no_match(self, env):
        result = env.resolve("nourl")
        assert not result.found
        assert result.key == "nourl 0"


class TestSuggestions:
    def test_reachable_first_then_exact_before_prefix(self, env):
        keys = [(e.namespace, e.key) for e in env.get_suggestions("w")]
        assert keys[0] == ("de", "w 1")
        assert ("de", "wetter 1") in keys
        assert keys.index(("de", "wetter 1")) < keys.index(("o", "w 1"))
        assert keys[-1] == ("o", "w 1")

    def test_matches_title_and_tags(self, env):
        keys = [e.key for e in env.get_suggestions("web-search")]
        assert keys == ["g 1"]

    def test_forced_namespace_filters(self, env):
        assert {e.namespace for e in env.get_suggestions("o.w")} == {"o"}

    def test_empty_query(self, env):
        assert env.get_suggestions("") == []
