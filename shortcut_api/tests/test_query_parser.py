from shortcuts.query_parser import QueryParser, parse_query


class TestQueryParser:
    def test_keyword_and_arguments(self):
        q = parse_query("x val1,val2")
        assert q.keyword == "x"
        assert q.forced_namespace is None
        assert q.argument_values == ["val1", "val2"]
        assert q.argument_string == "val1,val2"

    def test_arguments_are_trimmed(self):
        q = parse_query("db  Berlin Hbf ,  München ")
        assert q.keyword == "db"
        assert q.argument_values == ["Berlin Hbf", "München"]

    def test_no_remainder_means_no_arguments(self):
        q = parse_query("g")
        assert q.argument_values == []

    def test_empty_query(self):
        for text in ["", "   ", None]:
            q = parse_query(text)
            assert q.empty
            assert q.keyword == ""
            assert q.argument_values == []

    def test_keyword_is_lowercased(self):
        assert parse_query("G foo").keyword == "g"

    def test_forced_namespace(self):
        q = parse_query("de.w berlin")
        assert q.forced_namespace == "de"
        assert q.keyword == "w"
        assert q.argument_values == ["berlin"]

    def test_forced_namespace_keeps_its_case(self):
        q = parse_query("MyAccount.W berlin")
        assert q.forced_namespace == "MyAccount"
        assert q.keyword == "w"

    def test_forced_country_namespace_keeps_leading_dot(self):
        q = parse_query(".us.w chicago")
        assert q.forced_namespace == ".us"
        assert q.keyword == "w"

    def test_dots_without_both_sides_do_not_force(self):
        assert parse_query(".us").forced_namespace is None
        assert parse_query("w.").forced_namespace is None
        assert parse_query("..w").forced_namespace is None

    def test_custom_delimiters(self):
        parser = QueryParser(namespace_delimiter=":", argument_delimiter=";")
        q = parser.parse("de:w a;b")
        assert q.forced_namespace == "de"
        assert q.argument_values == ["a", "b"]
