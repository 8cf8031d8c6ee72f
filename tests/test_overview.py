import io
from datetime import datetime, timezone

from overview import Article, load_overview, main, parse_overview_line, read_overview


LINE = ("42\tRe: Hello\tJoe <joe@example.org>\tMon, 01 Jan 2024 10:00:00 +0000"
        "\t<42@example.org>\t<40@example.org> <41@example.org>\t1024\t12")


class TestArticle:
    def test_defaults_to_dummy(self):
        article = Article()
        assert article.is_dummy()
        assert article.references == []

    def test_add_reference_splits_on_whitespace(self):
        article = Article(article_number=1)
        article.add_reference("<a@x>  <b@x>")
        article.add_reference("")
        article.add_reference("<c@x>")
        assert article.references == ["<a@x>", "<b@x>", "<c@x>"]

    def test_subject_cache_follows_subject(self):
        article = Article(article_number=1, subject="Re: Hello")
        assert article.simplified_subject == "Hello"
        assert article.subject_is_reply

        article.subject = "Goodbye"
        assert article.simplified_subject == "Goodbye"
        assert not article.subject_is_reply

    def test_make_dummy_copies_display_fields(self):
        article = Article(article_number=7, subject="Hi", from_addr="joe", date="today", article_id="<7>")
        dummy = article.make_dummy()
        assert dummy.is_dummy()
        assert dummy.subject == "Hi"
        assert dummy.from_addr == "joe"
        assert dummy.article_id == ""

    def test_date_sent(self):
        article = Article(date="Mon, 01 Jan 2024 10:00:00 +0000")
        assert article.date_sent == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert Article(date="").date_sent is None
        assert Article(date="not a date").date_sent is None


class TestParseOverviewLine:
    def test_parse(self):
        article = parse_overview_line(LINE + "\r\n")
        assert not article.is_dummy()
        assert article.article_number == 42
        assert article.subject == "Re: Hello"
        assert article.from_addr == "Joe <joe@example.org>"
        assert article.date == "Mon, 01 Jan 2024 10:00:00 +0000"
        assert article.message_id == "<42@example.org>"
        assert article.references == ["<40@example.org>", "<41@example.org>"]

    def test_no_references(self):
        article = parse_overview_line("1\tHello\tjoe\tdate\t<1@x>\t\t10\t1")
        assert article.references == []

    def test_too_few_fields(self):
        article = parse_overview_line("just some text")
        assert article.is_dummy()
        assert article.subject == "just some text"

    def test_bad_article_number(self):
        article = parse_overview_line("abc\tHello\tjoe\tdate\t<1@x>\t\t10\t1")
        assert article.is_dummy()


class TestReadOverview:
    def test_stops_at_terminator(self):
        lines = [LINE, ".", "1\tLater\tjoe\tdate\t<1@x>\t\t10\t1"]
        articles = list(read_overview(lines))
        assert [a.article_number for a in articles] == [42]

    def test_undoes_dot_stuffing(self):
        articles = list(read_overview(["..hidden\n", "\n"]))
        assert len(articles) == 1
        assert articles[0].subject == ".hidden"

    def test_load_overview(self, overview_file):
        articles = load_overview(overview_file)
        assert len(articles) == 7
        assert sum(1 for a in articles if a.is_dummy()) == 1

    def test_load_overview_from_stdin(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(LINE + "\n.\n"))
        articles = load_overview("-")
        assert [a.message_id for a in articles] == ["<42@example.org>"]


class TestMain:
    def test_prints_thread_tree(self, overview_file, capsys):
        assert main([overview_file]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "Meeting tomorrow\tAlice <alice@example.org>\t<1@example.org>"
        assert lines[1] == "==>Re: Meeting tomorrow\tBob <bob@example.org>\t<2@example.org>"
        assert lines[2].startswith("==>==>Re: Meeting tomorrow")
        assert lines[3].startswith("Release schedule")
        assert lines[4] == "Re: Lost thread\tDave <dave@example.org>\t"
        assert lines[5].endswith("<5@example.org>")
        assert lines[6].endswith("<6@example.org>")
        assert len(lines) == 7

    def test_flat_listing(self, overview_file, capsys):
        assert main([overview_file, "--flat"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "Meeting tomorrow\tAlice <alice@example.org>"
        assert lines[1] == "  ...\tBob <bob@example.org>"

    def test_empty_overview(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text(".\n")
        assert main([str(path)]) == 1
